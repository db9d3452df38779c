"""The single saved-state slot (``Current State``)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Response

from fitness_focus.dependencies import Store
from fitness_focus.models.workout import AppStateSnapshot
from fitness_focus.workouts.base import StoreError

router = APIRouter(prefix="/state", tags=["state"])


@router.get("", response_model=AppStateSnapshot)
async def get_state(store: Store) -> Any:
    try:
        snapshot = await store.get_snapshot()
    except StoreError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No saved state")
    return snapshot


@router.put("", status_code=204)
async def put_state(body: AppStateSnapshot, store: Store) -> Response:
    try:
        await store.put_snapshot(body)
    except StoreError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return Response(status_code=204)
