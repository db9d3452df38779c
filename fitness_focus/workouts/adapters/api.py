"""HTTP client backend for the Fitness Focus service.

Used by offline-capable clients: every call goes through the service's
``/api/v1`` routes instead of the database.  Read paths and
``submit_workout`` turn transport failures into the safe defaults of the
``WorkoutBackend`` contract; snapshot and template writes raise
``StoreError``.

Endpoints used:
    GET  /health                : connectivity probe
    GET  /api/v1/templates/{day}: template for a day (404 = none)
    PUT  /api/v1/templates/{day}: replace a day's template
    GET  /api/v1/history        : all logged sets, newest first
    POST /api/v1/history        : log completed sets
    GET  /api/v1/state          : saved state slot (404 = empty)
    PUT  /api/v1/state          : overwrite the state slot
    POST /api/v1/suggestions    : AI exercise suggestion
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import TypeAdapter

from fitness_focus.config import Settings, get_settings
from fitness_focus.models.suggestion import SuggestionRequest, SuggestionResponse
from fitness_focus.models.workout import (
    AppStateSnapshot,
    HistoryEntry,
    LogWorkoutRequest,
    SaveTemplateRequest,
    SubmitResult,
    TemplateSaved,
    WorkoutExercise,
    WorkoutTemplate,
)
from fitness_focus.workouts.base import StoreError, SuggestionError, WorkoutBackend
from fitness_focus.workouts.normalizer import normalize_for_persistence

logger = logging.getLogger("fitness_focus.workouts.api")

_API_PREFIX = "/api/v1"

# Network failures, non-2xx statuses and unparsable bodies.
CLIENT_ERRORS: tuple[type[BaseException], ...] = (httpx.HTTPError, ValueError)

_history_adapter = TypeAdapter(list[HistoryEntry])


def _error_detail(exc: BaseException) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            detail = exc.response.json().get("detail")
        except (ValueError, AttributeError):
            detail = None
        if detail:
            return str(detail)
        return f"HTTP {exc.response.status_code}"
    return str(exc) or exc.__class__.__name__


class ApiWorkoutBackend(WorkoutBackend):
    """Persistence adapter over the service's HTTP API."""

    SOURCE_ID = "api"

    def __init__(
        self,
        base_url: str | None = None,
        api_token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url:    Service root (defaults to ``API_BASE_URL``).
            api_token:   Bearer token sent on every request, if the service wants one.
            http_client: Optional pre-configured httpx client (for testing).
            timeout:     Per-request timeout in seconds.
        """
        if base_url is None or timeout is None:
            settings = settings or get_settings()
            base_url = base_url or settings.api_base_url
            timeout = timeout or settings.request_timeout_seconds
            api_token = api_token or settings.api_token
        self._base_url = base_url.rstrip("/")
        self._api_token = api_token
        self._http_client = http_client
        self._timeout = timeout

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    async def ping(self) -> bool:
        """True if the service answers its health check."""
        try:
            await self._request("GET", "/health")
        except CLIENT_ERRORS as exc:
            logger.debug("Health probe failed: %s", exc)
            return False
        return True

    # ------------------------------------------------------------------
    # WorkoutBackend interface
    # ------------------------------------------------------------------

    async def fetch_template(self, day: int) -> WorkoutTemplate | None:
        try:
            response = await self._request(
                "GET", f"{_API_PREFIX}/templates/{day}", allow_status=(404,)
            )
            if response.status_code == 404:
                return None
            return WorkoutTemplate.model_validate(response.json())
        except CLIENT_ERRORS as exc:
            logger.error("Error fetching template for day %d: %s", day, exc)
            return None

    async def fetch_history(self) -> list[HistoryEntry]:
        try:
            response = await self._request("GET", f"{_API_PREFIX}/history")
            return _history_adapter.validate_python(response.json())
        except CLIENT_ERRORS as exc:
            logger.error("Error fetching workout history: %s", exc)
            return []

    async def submit_workout(
        self,
        week: int,
        day: int,
        workout: list[WorkoutExercise],
        submission_id: str | None = None,
    ) -> SubmitResult:
        body = LogWorkoutRequest(
            week=week,
            day=day,
            workout=normalize_for_persistence(workout),
            submission_id=submission_id,
        )
        try:
            response = await self._request(
                "POST", f"{_API_PREFIX}/history", json=body.to_wire()
            )
            return SubmitResult.model_validate(response.json())
        except CLIENT_ERRORS as exc:
            logger.error("Failed to log workout for week %d, day %d: %s", week, day, exc)
            return SubmitResult(success=False, logged_count=0, error=_error_detail(exc))

    async def get_snapshot(self) -> AppStateSnapshot | None:
        try:
            response = await self._request(
                "GET", f"{_API_PREFIX}/state", allow_status=(404,)
            )
            if response.status_code == 404:
                return None
            return AppStateSnapshot.model_validate(response.json())
        except CLIENT_ERRORS as exc:
            logger.error("Failed to load current state: %s", exc)
            raise StoreError(_error_detail(exc)) from exc

    async def put_snapshot(self, snapshot: AppStateSnapshot) -> None:
        try:
            await self._request("PUT", f"{_API_PREFIX}/state", json=snapshot.to_wire())
        except CLIENT_ERRORS as exc:
            logger.error("Failed to save current state: %s", exc)
            raise StoreError(_error_detail(exc)) from exc

    async def save_template(self, day: int, workout: list[WorkoutExercise]) -> int:
        body = SaveTemplateRequest(exercises=normalize_for_persistence(workout))
        try:
            response = await self._request(
                "PUT", f"{_API_PREFIX}/templates/{day}", json=body.to_wire()
            )
            return TemplateSaved.model_validate(response.json()).rows_written
        except CLIENT_ERRORS as exc:
            logger.error("Failed to save template for day %d: %s", day, exc)
            raise StoreError(_error_detail(exc)) from exc

    async def suggest_exercise(self, request: SuggestionRequest) -> SuggestionResponse:
        try:
            response = await self._request(
                "POST", f"{_API_PREFIX}/suggestions", json=request.to_wire()
            )
            return SuggestionResponse.model_validate(response.json())
        except CLIENT_ERRORS as exc:
            logger.error("Suggestion request failed: %s", exc)
            raise SuggestionError(_error_detail(exc)) from exc

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _build_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        allow_status: tuple[int, ...] = (),
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request to the service.

        Raises:
            httpx.HTTPStatusError: On non-2xx responses not in ``allow_status``.
            httpx.TransportError:  On connection failures and timeouts.
        """
        url = f"{self._base_url}{path}"
        headers = self._build_headers()

        if self._http_client:
            response = await self._http_client.request(method, url, headers=headers, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, headers=headers, **kwargs)

        if response.status_code not in allow_status:
            response.raise_for_status()
        return response
