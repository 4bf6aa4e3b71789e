"""Request identity and API key checks for write endpoints."""

from __future__ import annotations

from fastapi import Header, HTTPException, Security
from fastapi.security import APIKeyHeader

from ecomap.config import settings

_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def require_api_key(key: str | None = Security(_header)) -> str:
    """Dependency that enforces API key auth on admin endpoints.

    If no API_KEY is configured (empty string), all requests are allowed
    so local development works without extra setup.
    """
    if not settings.api_key:
        return ""
    if not key or key != settings.api_key:
        raise HTTPException(401, "Invalid or missing API key")
    return key


async def require_user(x_user_id: str | None = Header(None)) -> str:
    """Identity of the signed-in user, forwarded by the auth gateway."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(401, "Authentication required")
    return x_user_id.strip()
