"""PostgreSQL native enums for all domain models."""

import enum


# ── Core ─────────────────────────────────────────────────────────────────────


class UserRole(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    PROJECT_MANAGER = "project_manager"
    FOREMAN = "foreman"
    QC_INSPECTOR = "qc_inspector"
    WELDER = "welder"
    VIEWER = "viewer"


# ── Component Tracking ───────────────────────────────────────────────────────


class ComponentType(str, enum.Enum):
    SPOOL = "spool"
    FIELD_WELD = "field_weld"
    SUPPORT = "support"
    VALVE = "valve"
    FITTING = "fitting"
    FLANGE = "flange"
    INSTRUMENT = "instrument"
    TUBING = "tubing"
    HOSE = "hose"
    THREADED_PIPE = "threaded_pipe"
    MISC = "misc"


class StandardCategory(str, enum.Enum):
    """The five report columns every native milestone rolls up into."""

    RECEIVED = "received"
    INSTALLED = "installed"
    PUNCH = "punch"
    TESTED = "tested"
    RESTORED = "restored"


# ── Reporting ────────────────────────────────────────────────────────────────


class GroupingDimension(str, enum.Enum):
    AREA = "area"
    SYSTEM = "system"
    TEST_PACKAGE = "test_package"
