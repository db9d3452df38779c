"""Workout logging core for Fitness Focus.

Subpackages:
    adapters/ : HTTP client implementation of the persistence contract
    sync/     : Offline queue drain and submission keys

Core modules:
    base       : WorkoutBackend ABC and the adapter error types
    normalizer : Canonical workout coercion (load and persist directions)
    editing    : Pure workout edits (add/remove/update sets and exercises)
    history    : Prefill from history, session grouping, prompt rendering
    local_store: Per-installation snapshot file and pending queue
    connectivity: Online/offline probe loop
    controller : Reconciliation state machine driving the logger
"""

from fitness_focus.workouts.base import StoreError, SuggestionError, WorkoutBackend
from fitness_focus.workouts.normalizer import (
    normalize_for_display,
    normalize_for_persistence,
)

__all__ = [
    "WorkoutBackend",
    "StoreError",
    "SuggestionError",
    "normalize_for_display",
    "normalize_for_persistence",
]
