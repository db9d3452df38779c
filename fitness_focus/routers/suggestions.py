"""AI exercise suggestions."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from fitness_focus.dependencies import Store
from fitness_focus.models.suggestion import SuggestionRequest, SuggestionResponse
from fitness_focus.workouts.base import SuggestionError

router = APIRouter(prefix="/suggestions", tags=["suggestions"])


@router.post("", response_model=SuggestionResponse)
async def suggest_exercise(body: SuggestionRequest, store: Store) -> Any:
    try:
        return await store.suggest_exercise(body)
    except SuggestionError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
