"""Application configuration loaded from environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "Fitness Focus"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Supabase ---
    supabase_db_url: str  # direct postgres connection string for asyncpg
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    # Single-tenant installation: every client reads and writes this one
    # row of the "Current State" table.
    state_slot_id: int = 1

    # Optional unique text column on "Workout History" used to make queued
    # replays idempotent. Leave unset to keep the table's original columns.
    history_submission_column: str | None = None

    # --- API access ---
    api_token: str | None = None  # bearer token; None disables the check

    # --- AI suggestions (Gemini) ---
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout_seconds: float = 30.0

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:3000"]

    # --- Offline client ---
    api_base_url: str = "http://localhost:8000"
    local_state_dir: Path = Path.home() / ".fitness_focus"
    connectivity_interval_seconds: float = 15.0
    request_timeout_seconds: float = 10.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
