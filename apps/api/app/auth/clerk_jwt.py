"""Clerk RS256 JWT verification via JWKS.

Fetches Clerk's public keys from the well-known JWKS endpoint, caches them
in-process for CLERK_JWKS_CACHE_TTL seconds, and verifies RS256-signed
tokens.
"""

import time

import httpx
import structlog
from jose import JWTError, jwt

from app.core.config import settings

logger = structlog.get_logger()

_jwks_cache: dict = {"keys": None, "fetched_at": 0.0}


async def _fetch_jwks() -> dict:
    """Return cached JWKS, refreshing from Clerk once the TTL has expired."""
    now = time.monotonic()
    cached = _jwks_cache["keys"]
    if cached is not None and now - _jwks_cache["fetched_at"] < settings.CLERK_JWKS_CACHE_TTL:
        return cached

    jwks_url = f"{settings.CLERK_ISSUER_URL}/.well-known/jwks.json"
    async with httpx.AsyncClient() as client:
        response = await client.get(jwks_url, timeout=10.0)
        response.raise_for_status()
        jwks = response.json()

    logger.info("clerk_jwks_refreshed", keys_count=len(jwks.get("keys", [])))
    _jwks_cache["keys"] = jwks
    _jwks_cache["fetched_at"] = now
    return jwks


def _get_signing_key(jwks: dict, token: str) -> dict:
    """Match the JWT header's kid to the correct JWKS key."""
    unverified_header = jwt.get_unverified_header(token)
    kid = unverified_header.get("kid")
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return key
    raise JWTError(f"No matching key found for kid={kid}")


async def verify_clerk_token(token: str) -> dict:
    """
    Verify a Clerk-issued RS256 JWT.

    Returns the decoded payload with claims (sub, email, etc.).
    Raises JWTError on any validation failure.
    """
    jwks = await _fetch_jwks()
    signing_key = _get_signing_key(jwks, token)

    return jwt.decode(
        token,
        signing_key,
        algorithms=["RS256"],
        issuer=settings.CLERK_ISSUER_URL,
        options={
            "verify_aud": False,  # Clerk may not set aud
            "verify_iss": bool(settings.CLERK_ISSUER_URL),
            "verify_exp": True,
        },
    )


def clear_jwks_cache() -> None:
    """Drop cached keys (key rotation, tests)."""
    _jwks_cache["keys"] = None
    _jwks_cache["fetched_at"] = 0.0
