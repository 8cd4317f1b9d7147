"""API tests for progress report, export, saved configuration and template endpoints.

Service loaders are patched so no database is touched.
"""

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from app.auth.dependencies import get_current_user
from app.main import app
from app.models.enums import GroupingDimension, UserRole
from app.modules.progress_reports.exceptions import ConfigurationError, ValidationError
from app.schemas.auth import CurrentUser

SERVICE = "app.modules.progress_reports.service"
PROJECT_ID = uuid.UUID("00000000-0000-0000-0000-000000000010")
USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
BASE = f"/v1/projects/{PROJECT_ID}"


def _config(created_by: uuid.UUID = USER_ID, **overrides) -> SimpleNamespace:
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    values = {
        "id": uuid.uuid4(),
        "project_id": PROJECT_ID,
        "name": "Weekly by system",
        "description": None,
        "grouping_dimension": GroupingDimension.SYSTEM,
        "component_type_filter": ["spool"],
        "created_by": created_by,
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def as_role(make_user):
    """Swap the authenticated user for one with the given role."""

    def _as(role: UserRole, user_id: uuid.UUID = USER_ID) -> CurrentUser:
        user = make_user(role=role, user_id=user_id)

        async def _override() -> CurrentUser:
            return user

        app.dependency_overrides[get_current_user] = _override
        return user

    return _as


@pytest.fixture
def loaded_project(sample_project, catalog, make_component):
    """Patch the loaders with a small three-component project."""
    area = (uuid.uuid4(), "B-64")
    components = [
        make_component("spool", {"Receive": True, "Erect": True}, area=area),
        make_component("valve", {"Receive": True}),
        make_component("valve", {"Receive": 30}),
    ]
    with (
        patch(f"{SERVICE}.load_project", new_callable=AsyncMock, return_value=sample_project),
        patch(f"{SERVICE}.load_components", new_callable=AsyncMock, return_value=components),
        patch(f"{SERVICE}.load_groups", new_callable=AsyncMock, return_value=[]) as groups,
        patch(f"{SERVICE}.load_catalog", new_callable=AsyncMock, return_value=catalog),
    ):
        yield SimpleNamespace(project=sample_project, components=components, load_groups=groups)


# ── Report ───────────────────────────────────────────────────────────────────


class TestProgressReport:
    @pytest.mark.anyio
    async def test_project_not_found(self, api_client: AsyncClient):
        with patch(f"{SERVICE}.load_project", new_callable=AsyncMock, return_value=None):
            resp = await api_client.get(f"{BASE}/progress-report")
        assert resp.status_code == 404
        body = resp.json()
        assert body["error"] == "http_404"
        assert body["message"] == "Project not found"

    @pytest.mark.anyio
    async def test_report_by_area(self, api_client: AsyncClient, loaded_project):
        resp = await api_client.get(f"{BASE}/progress-report", params={"dimension": "area"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["title"] == "Plant 7 Expansion - Progress by Area"
        assert data["grouping_dimension"] == "area"
        assert [r["group_name"] for r in data["rows"]] == ["B-64", "(Unassigned)"]
        assert data["rows"][1]["group_id"] is None
        assert data["grand_total"]["group_name"] == "Grand Total"
        assert data["grand_total"]["budget"] == 2
        assert data["skipped_count"] == 1
        assert data["skipped_component_ids"] == [str(loaded_project.components[2].id)]

    @pytest.mark.anyio
    async def test_default_dimension_is_area(self, api_client: AsyncClient, loaded_project):
        resp = await api_client.get(f"{BASE}/progress-report")
        assert resp.json()["grouping_dimension"] == "area"

    @pytest.mark.anyio
    async def test_abort_returns_422_envelope(self, api_client: AsyncClient, loaded_project):
        resp = await api_client.get(f"{BASE}/progress-report", params={"on_invalid": "abort"})
        assert resp.status_code == 422
        body = resp.json()
        assert body["error"] == "invalid_component_data"
        assert body["detail"]["milestone"] == "Receive"

    @pytest.mark.anyio
    async def test_configuration_error_returns_500(self, api_client: AsyncClient, loaded_project):
        with patch(
            f"{SERVICE}.generate_project_report",
            new_callable=AsyncMock,
            side_effect=ConfigurationError("Unknown component type 'pipe'", component_type="pipe"),
        ):
            resp = await api_client.get(f"{BASE}/progress-report")
        assert resp.status_code == 500
        body = resp.json()
        assert body["error"] == "catalog_configuration_error"
        assert body["detail"] == {"component_type": "pipe"}

    @pytest.mark.anyio
    async def test_saved_config_applies_dimension_and_filter(self, api_client: AsyncClient, loaded_project):
        config = _config()
        with patch(f"{SERVICE}.get_config", new_callable=AsyncMock, return_value=config):
            resp = await api_client.get(f"{BASE}/progress-report", params={"config_id": str(config.id)})
        data = resp.json()
        assert data["grouping_dimension"] == "system"
        assert data["grand_total"]["budget"] == 1
        assert data["skipped_count"] == 0

    @pytest.mark.anyio
    async def test_explicit_dimension_beats_config(self, api_client: AsyncClient, loaded_project):
        config = _config()
        with patch(f"{SERVICE}.get_config", new_callable=AsyncMock, return_value=config):
            resp = await api_client.get(
                f"{BASE}/progress-report",
                params={"config_id": str(config.id), "dimension": "test_package"},
            )
        assert resp.json()["grouping_dimension"] == "test_package"

    @pytest.mark.anyio
    async def test_unknown_config(self, api_client: AsyncClient, loaded_project):
        with patch(f"{SERVICE}.get_config", new_callable=AsyncMock, return_value=None):
            resp = await api_client.get(f"{BASE}/progress-report", params={"config_id": str(uuid.uuid4())})
        assert resp.status_code == 404

    @pytest.mark.anyio
    async def test_invalid_dimension(self, api_client: AsyncClient, loaded_project):
        resp = await api_client.get(f"{BASE}/progress-report", params={"dimension": "pipe_rack"})
        assert resp.status_code == 422

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        ("direction", "expected"),
        [("asc", ["(Unassigned)", "B-64"]), ("desc", ["B-64", "(Unassigned)"])],
    )
    async def test_sorted_by_column(self, api_client: AsyncClient, loaded_project, direction, expected):
        resp = await api_client.get(
            f"{BASE}/progress-report", params={"sort": "pct_total", "direction": direction}
        )
        data = resp.json()
        assert [r["group_name"] for r in data["rows"]] == expected
        assert data["grand_total"]["group_name"] == "Grand Total"

    @pytest.mark.anyio
    async def test_unknown_sort_column(self, api_client: AsyncClient, loaded_project):
        resp = await api_client.get(f"{BASE}/progress-report", params={"sort": "group_id"})
        assert resp.status_code == 422


# ── Export ───────────────────────────────────────────────────────────────────


class TestExport:
    @pytest.mark.anyio
    @pytest.mark.parametrize(
        ("fmt", "content_type", "extension"),
        [
            ("pdf", "text/html", "html"),
            ("xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "xlsx"),
            ("csv", "text/csv", "csv"),
        ],
    )
    async def test_export_formats(self, api_client: AsyncClient, loaded_project, fmt, content_type, extension):
        resp = await api_client.get(
            f"{BASE}/progress-report/export", params={"format": fmt, "dimension": "system"}
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith(content_type)
        disposition = resp.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="PipeTrak_Plant 7 Expansion_System_')
        assert f".{extension}\"; filename*=UTF-8''PipeTrak_Plant%207%20Expansion_System_" in disposition
        assert disposition.endswith(f".{extension}")

    @pytest.mark.anyio
    async def test_non_ascii_project_name(self, api_client: AsyncClient, loaded_project):
        loaded_project.project.name = "Raffinerie Süd – Phase 2"
        resp = await api_client.get(f"{BASE}/progress-report/export", params={"format": "csv"})
        assert resp.status_code == 200
        disposition = resp.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="PipeTrak_Raffinerie Sud  Phase 2_Area_')
        assert "filename*=UTF-8''PipeTrak_Raffinerie%20S%C3%BCd%20%E2%80%93%20Phase%202_Area_" in disposition
        assert resp.text.splitlines()[0].startswith("Area,Budget")

    @pytest.mark.anyio
    async def test_sorted_export(self, api_client: AsyncClient, loaded_project):
        resp = await api_client.get(
            f"{BASE}/progress-report/export", params={"format": "csv", "sort": "pct_total"}
        )
        lines = resp.text.splitlines()
        assert lines[1].startswith("(Unassigned),1,")
        assert lines[2].startswith("B-64,1,")
        assert lines[-1].startswith("Grand Total,2,")

    @pytest.mark.anyio
    async def test_csv_body(self, api_client: AsyncClient, loaded_project):
        resp = await api_client.get(f"{BASE}/progress-report/export", params={"format": "csv"})
        lines = resp.text.splitlines()
        assert lines[0] == "Area,Budget,Received,Installed,Punch,Tested,Restored,% Complete"
        assert lines[-1].startswith("Grand Total,2,")

    @pytest.mark.anyio
    async def test_viewer_cannot_export(self, api_client: AsyncClient, loaded_project, as_role):
        as_role(UserRole.VIEWER)
        resp = await api_client.get(f"{BASE}/progress-report/export")
        assert resp.status_code == 403

    @pytest.mark.anyio
    async def test_welder_can_export(self, api_client: AsyncClient, loaded_project, as_role):
        as_role(UserRole.WELDER)
        resp = await api_client.get(f"{BASE}/progress-report/export", params={"format": "csv"})
        assert resp.status_code == 200


# ── Saved configurations ─────────────────────────────────────────────────────


class TestReportConfigs:
    @pytest.mark.anyio
    async def test_list(self, api_client: AsyncClient, sample_project):
        with (
            patch(f"{SERVICE}.load_project", new_callable=AsyncMock, return_value=sample_project),
            patch(f"{SERVICE}.list_configs", new_callable=AsyncMock, return_value=[_config(), _config(name="Other")]),
        ):
            resp = await api_client.get(f"{BASE}/report-configs")
        assert resp.status_code == 200
        assert resp.json()["total"] == 2

    @pytest.mark.anyio
    async def test_create(self, api_client: AsyncClient, sample_project):
        created = _config(name="Daily")
        with (
            patch(f"{SERVICE}.load_project", new_callable=AsyncMock, return_value=sample_project),
            patch(f"{SERVICE}.create_config", new_callable=AsyncMock, return_value=created) as create,
        ):
            resp = await api_client.post(
                f"{BASE}/report-configs",
                json={"name": "  Daily ", "grouping_dimension": "system", "component_type_filter": ["spool"]},
            )
        assert resp.status_code == 201
        assert resp.json()["name"] == "Daily"
        body = create.await_args.args[3]
        assert body.name == "Daily"

    @pytest.mark.anyio
    async def test_create_duplicate_name(self, api_client: AsyncClient, sample_project):
        with (
            patch(f"{SERVICE}.load_project", new_callable=AsyncMock, return_value=sample_project),
            patch(
                f"{SERVICE}.create_config",
                new_callable=AsyncMock,
                side_effect=ValueError("A report configuration named 'Daily' already exists"),
            ),
        ):
            resp = await api_client.post(
                f"{BASE}/report-configs", json={"name": "Daily", "grouping_dimension": "area"}
            )
        assert resp.status_code == 409

    @pytest.mark.anyio
    async def test_create_rejects_unknown_component_type(self, api_client: AsyncClient, sample_project):
        with patch(f"{SERVICE}.load_project", new_callable=AsyncMock, return_value=sample_project):
            resp = await api_client.post(
                f"{BASE}/report-configs",
                json={"name": "Pipes", "grouping_dimension": "area", "component_type_filter": ["pipe"]},
            )
        assert resp.status_code == 422

    @pytest.mark.anyio
    async def test_create_rejects_empty_type_filter(self, api_client: AsyncClient, sample_project):
        with (
            patch(f"{SERVICE}.load_project", new_callable=AsyncMock, return_value=sample_project),
            patch(f"{SERVICE}.create_config", new_callable=AsyncMock) as create,
        ):
            resp = await api_client.post(
                f"{BASE}/report-configs",
                json={"name": "Nothing", "grouping_dimension": "area", "component_type_filter": []},
            )
        assert resp.status_code == 422
        create.assert_not_awaited()

    @pytest.mark.anyio
    async def test_update_rejects_empty_type_filter(self, api_client: AsyncClient, sample_project):
        config = _config()
        with (
            patch(f"{SERVICE}.load_project", new_callable=AsyncMock, return_value=sample_project),
            patch(f"{SERVICE}.get_config", new_callable=AsyncMock, return_value=config),
        ):
            resp = await api_client.put(
                f"{BASE}/report-configs/{config.id}", json={"component_type_filter": []}
            )
        assert resp.status_code == 422

    @pytest.mark.anyio
    async def test_viewer_cannot_create(self, api_client: AsyncClient, as_role):
        as_role(UserRole.VIEWER)
        resp = await api_client.post(
            f"{BASE}/report-configs", json={"name": "Daily", "grouping_dimension": "area"}
        )
        assert resp.status_code == 403

    @pytest.mark.anyio
    async def test_update_by_non_creator_forbidden(self, api_client: AsyncClient, sample_project):
        config = _config(created_by=uuid.uuid4())
        with (
            patch(f"{SERVICE}.load_project", new_callable=AsyncMock, return_value=sample_project),
            patch(f"{SERVICE}.get_config", new_callable=AsyncMock, return_value=config),
            patch(f"{SERVICE}.update_config", new_callable=AsyncMock) as update,
        ):
            resp = await api_client.put(f"{BASE}/report-configs/{config.id}", json={"name": "Mine now"})
        assert resp.status_code == 403
        update.assert_not_awaited()

    @pytest.mark.anyio
    async def test_delete_by_creator(self, api_client: AsyncClient, sample_project):
        config = _config()
        with (
            patch(f"{SERVICE}.load_project", new_callable=AsyncMock, return_value=sample_project),
            patch(f"{SERVICE}.get_config", new_callable=AsyncMock, return_value=config),
            patch(f"{SERVICE}.delete_config", new_callable=AsyncMock) as delete,
        ):
            resp = await api_client.delete(f"{BASE}/report-configs/{config.id}")
        assert resp.status_code == 204
        delete.assert_awaited_once()

    @pytest.mark.anyio
    async def test_get_missing(self, api_client: AsyncClient, sample_project):
        with (
            patch(f"{SERVICE}.load_project", new_callable=AsyncMock, return_value=sample_project),
            patch(f"{SERVICE}.get_config", new_callable=AsyncMock, return_value=None),
        ):
            resp = await api_client.get(f"{BASE}/report-configs/{uuid.uuid4()}")
        assert resp.status_code == 404


# ── Milestone templates ──────────────────────────────────────────────────────


class TestMilestoneTemplates:
    @pytest.mark.anyio
    async def test_list_templates(self, api_client: AsyncClient, loaded_project):
        resp = await api_client.get(f"{BASE}/milestone-templates")
        assert resp.status_code == 200
        items = {t["component_type"]: t for t in resp.json()["items"]}
        assert len(items) == 11
        assert all(t["total_weight"] == 100 for t in items.values())
        threaded = items["threaded_pipe"]["milestones"]
        assert threaded[0] == {
            "name": "Fabricate", "weight": 16, "is_partial": True, "category": "installed", "order": 1,
        }

    @pytest.mark.anyio
    async def test_update_requires_manage_settings(self, api_client: AsyncClient, as_role):
        as_role(UserRole.FOREMAN)
        resp = await api_client.put(
            f"{BASE}/milestone-templates/valve", json={"weights": [{"name": "Install", "weight": 60}]}
        )
        assert resp.status_code == 403

    @pytest.mark.anyio
    async def test_update_weights(self, api_client: AsyncClient, loaded_project, catalog):
        updated = catalog.with_overrides("valve", {"Receive": 15, "Install": 55})
        with patch(
            f"{SERVICE}.update_template_weights", new_callable=AsyncMock, return_value=updated
        ) as update:
            resp = await api_client.put(
                f"{BASE}/milestone-templates/valve",
                json={"weights": [{"name": "Receive", "weight": 15}, {"name": "Install", "weight": 55}]},
            )
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_weight"] == 100
        assert update.await_args.args[2] == "valve"
        assert update.await_args.args[3] == {"Receive": 15, "Install": 55}

    @pytest.mark.anyio
    async def test_update_weights_must_total_100(self, api_client: AsyncClient, loaded_project):
        with patch(
            f"{SERVICE}.update_template_weights",
            new_callable=AsyncMock,
            side_effect=ValidationError("Weights must sum to 100% (got 110%)", total=110.0),
        ):
            resp = await api_client.put(
                f"{BASE}/milestone-templates/valve", json={"weights": [{"name": "Install", "weight": 70}]}
            )
        assert resp.status_code == 422
        assert resp.json()["detail"] == {"total": 110.0}

    @pytest.mark.anyio
    async def test_duplicate_names_in_request(self, api_client: AsyncClient, loaded_project):
        resp = await api_client.put(
            f"{BASE}/milestone-templates/valve",
            json={"weights": [{"name": "Install", "weight": 60}, {"name": "Install", "weight": 50}]},
        )
        assert resp.status_code == 422

    @pytest.mark.anyio
    async def test_unknown_component_type_path(self, api_client: AsyncClient, loaded_project):
        resp = await api_client.put(
            f"{BASE}/milestone-templates/pipe", json={"weights": [{"name": "Install", "weight": 60}]}
        )
        assert resp.status_code == 422


# ── Middleware ───────────────────────────────────────────────────────────────


@pytest.mark.anyio
async def test_version_header(api_client: AsyncClient):
    with patch(f"{SERVICE}.load_project", new_callable=AsyncMock, return_value=None):
        resp = await api_client.get(f"{BASE}/progress-report")
    assert resp.headers["x-api-version"] == "v1"
