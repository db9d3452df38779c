"""Per-installation snapshot file holding the working state and the pending queue.

One JSON document, named after the storage key, holds an ``AppStateSnapshot``
in its camelCase wire form.  Every write is a read-modify-write of the whole
document, replaced atomically on disk.  There is no cross-process lock: two
processes writing at once resolve as last-write-wins.

Usage::

    local = LocalStateStore(settings.local_state_dir)
    local.save(selected_week=3, selected_day=2)
    local.enqueue(QueuedWorkout(week=3, day=2, workout=workout))
    pending = local.get_queue()
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from fitness_focus.models.workout import AppStateSnapshot, QueuedWorkout

logger = logging.getLogger("fitness_focus.workouts.local_store")

STORAGE_KEY = "fitnessFocusAppState"


class LocalStateStore:
    """Synchronous JSON-file store for one ``AppStateSnapshot``."""

    def __init__(self, directory: str | Path, filename: str | None = None) -> None:
        self.path = Path(directory) / (filename or f"{STORAGE_KEY}.json")

    def load(self) -> AppStateSnapshot | None:
        """Return the stored snapshot, or None if there is none.

        A file that is not valid JSON or not a snapshot is deleted and treated
        as missing.
        """
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return None

        try:
            return AppStateSnapshot.model_validate(json.loads(raw.decode("utf-8")))
        except (ValueError, ValidationError) as exc:  # UnicodeDecodeError is a ValueError
            logger.warning("Discarding corrupted local state %s: %s", self.path, exc)
            self.path.unlink(missing_ok=True)
            return None

    def save(self, **changes: Any) -> AppStateSnapshot:
        """Merge ``changes`` (snapshot field names) into the stored snapshot.

        Fields not named in ``changes`` keep their stored values.

        Raises:
            TypeError: If a key is not an ``AppStateSnapshot`` field.
        """
        unknown = set(changes) - set(AppStateSnapshot.model_fields)
        if unknown:
            raise TypeError(f"Unknown snapshot fields: {', '.join(sorted(unknown))}")

        current = self.load() or AppStateSnapshot()
        merged = AppStateSnapshot.model_validate({**current.model_dump(), **changes})
        self._write(merged)
        return merged

    # ------------------------------------------------------------------
    # Pending queue
    # ------------------------------------------------------------------

    def get_queue(self) -> list[QueuedWorkout]:
        snapshot = self.load()
        return list(snapshot.queued_workouts) if snapshot else []

    def set_queue(self, queue: list[QueuedWorkout]) -> None:
        """Replace the whole pending queue."""
        self.save(queued_workouts=list(queue))

    def clear_queue(self) -> None:
        self.set_queue([])

    def enqueue(self, item: QueuedWorkout) -> int:
        """Append one submission; returns the new queue length."""
        queue = self.get_queue()
        queue.append(item)
        self.set_queue(queue)
        logger.info(
            "Queued workout for week %d, day %d (%d pending)", item.week, item.day, len(queue)
        )
        return len(queue)

    # ------------------------------------------------------------------

    def _write(self, snapshot: AppStateSnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(snapshot.to_wire(), fh)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
