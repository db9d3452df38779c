"""Bearer-token check for the HTTP API.

When ``API_TOKEN`` is configured every request (except public routes and
CORS preflight) must send ``Authorization: Bearer <API_TOKEN>``.  With no
token configured the middleware lets everything through, which suits a
single-user install on a private network.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from fitness_focus.config import Settings, get_settings

logger = logging.getLogger("fitness_focus.auth")

# Paths that do not require authentication
PUBLIC_PATHS: set[str] = {
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


def _is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc")


def _unauthorized(detail: str) -> Response:
    return Response(
        content=f'{{"detail":"{detail}"}}',
        status_code=401,
        media_type="application/json",
        headers={"WWW-Authenticate": "Bearer"},
    )


class ApiTokenMiddleware(BaseHTTPMiddleware):
    """Reject requests that do not carry the configured bearer token."""

    def __init__(self, app: Any, settings: Settings | None = None) -> None:
        super().__init__(app)
        self._settings = settings or get_settings()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        expected = self._settings.api_token
        if not expected or _is_public(request.url.path):
            return await call_next(request)

        # OPTIONS requests pass through (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return _unauthorized("Missing or invalid Authorization header")

        token = auth_header.removeprefix("Bearer ").strip()
        if not secrets.compare_digest(token.encode(), expected.encode()):
            logger.warning("Rejected request to %s: bad API token", request.url.path)
            return _unauthorized("Invalid token")

        return await call_next(request)
