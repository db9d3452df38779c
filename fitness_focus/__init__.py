"""Fitness Focus: personal workout logging with offline sync.

Subpackages:
    models/  : Pydantic schemas shared by the API and the client
    services/: Database access, persistence adapter, AI suggestions
    routers/ : FastAPI endpoints
    workouts/: Offline-capable client core (normalizer, controller, sync)
"""

__version__ = "0.1.0"
