"""AI exercise suggestions via the Gemini ``generateContent`` REST API.

The model is asked for JSON matching ``SuggestionResponse`` (camelCase keys)
through ``responseSchema``; the reply is validated before it is returned.

Environment variables:
    GEMINI_API_KEY  : API key (required for suggestions)
    GEMINI_MODEL    : model name, default ``gemini-2.0-flash``
"""

from __future__ import annotations

import json
import logging

import httpx
from pydantic import ValidationError

from fitness_focus.config import Settings, get_settings
from fitness_focus.models.suggestion import SuggestionRequest, SuggestionResponse
from fitness_focus.workouts.base import SuggestionError

logger = logging.getLogger("fitness_focus.suggest")

PROMPT_TEMPLATE = """\
You are a personal trainer who suggests new exercises to users. The user will \
provide their workout history, and the target muscle group that they want to focus on.

Workout History: {workout_history}
Target Muscle Group: {target_muscle_group}

Based on this information, suggest an exercise for the user to try. Provide the \
name of the exercise, the number of sets and reps, and the weight to use \
(include units).

Explain your reasoning for suggesting this exercise and these parameters.
"""

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "exerciseName": {"type": "STRING"},
        "sets": {"type": "INTEGER"},
        "reps": {"type": "INTEGER"},
        "weight": {"type": "STRING"},
        "reasoning": {"type": "STRING"},
    },
    "required": ["exerciseName", "sets", "reps", "weight", "reasoning"],
}


def build_prompt(request: SuggestionRequest) -> str:
    return PROMPT_TEMPLATE.format(
        workout_history=request.workout_history,
        target_muscle_group=request.target_muscle_group,
    )


def parse_reply(data: dict) -> SuggestionResponse:
    """Extract and validate the JSON answer from a ``generateContent`` reply.

    Raises:
        SuggestionError: If the reply has no candidate text or the text is
                         not a valid suggestion.
    """
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise SuggestionError("Model returned no suggestion") from exc

    try:
        return SuggestionResponse.model_validate(json.loads(text))
    except (ValueError, ValidationError) as exc:
        raise SuggestionError(f"Model returned an invalid suggestion: {exc}") from exc


class ExerciseSuggester:
    """Thin client for one prompt against Gemini."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._http_client = http_client

    @property
    def endpoint(self) -> str:
        base = self._settings.gemini_api_base.rstrip("/")
        return f"{base}/models/{self._settings.gemini_model}:generateContent"

    async def suggest(self, request: SuggestionRequest) -> SuggestionResponse:
        if not self._settings.gemini_api_key:
            raise SuggestionError("GEMINI_API_KEY is not configured")

        body = {
            "contents": [{"role": "user", "parts": [{"text": build_prompt(request)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }
        headers = {"x-goog-api-key": self._settings.gemini_api_key}

        logger.info("Requesting exercise suggestion for %s", request.target_muscle_group)
        try:
            if self._http_client:
                response = await self._http_client.post(
                    self.endpoint, json=body, headers=headers
                )
            else:
                async with httpx.AsyncClient(
                    timeout=self._settings.gemini_timeout_seconds
                ) as client:
                    response = await client.post(self.endpoint, json=body, headers=headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Gemini request failed: %s", exc)
            raise SuggestionError(f"Suggestion service unavailable: {exc}") from exc

        return parse_reply(data)
