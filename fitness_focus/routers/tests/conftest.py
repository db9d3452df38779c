"""Fixtures for the HTTP routes: the app with its store swapped for a mock.

The client is created without entering its context, so the lifespan (and the
database pool) never starts.
"""

from __future__ import annotations

import os
from unittest.mock import AsyncMock

os.environ.setdefault("SUPABASE_DB_URL", "postgresql://test@localhost/test")

import pytest
from fastapi.testclient import TestClient

from fitness_focus.dependencies import get_store
from fitness_focus.main import create_app
from fitness_focus.workouts.base import WorkoutBackend


@pytest.fixture
def store() -> AsyncMock:
    return AsyncMock(spec=WorkoutBackend)


@pytest.fixture
def client(store: AsyncMock) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    return TestClient(app)
