"""Persistence backends for the workout logger.

Each backend implements the WorkoutBackend ABC:

    ApiWorkoutBackend   : talks to the Fitness Focus HTTP service (offline clients)
    SupabaseWorkoutStore: talks to the Supabase Postgres database directly
"""

from fitness_focus.services.store import SupabaseWorkoutStore
from fitness_focus.workouts.adapters.api import ApiWorkoutBackend

__all__ = [
    "ApiWorkoutBackend",
    "SupabaseWorkoutStore",
]

# Registry: source_id → backend class
BACKEND_REGISTRY: dict[str, type] = {
    ApiWorkoutBackend.SOURCE_ID: ApiWorkoutBackend,
    SupabaseWorkoutStore.SOURCE_ID: SupabaseWorkoutStore,
}


def get_backend(source_id: str) -> "type":
    """Return the backend class for a given source slug.

    Raises:
        KeyError: If the source_id is not registered.
    """
    if source_id not in BACKEND_REGISTRY:
        raise KeyError(
            f"No backend registered for source '{source_id}'. "
            f"Available: {list(BACKEND_REGISTRY)}"
        )
    return BACKEND_REGISTRY[source_id]
