"""Drain the local pending queue against a persistence backend.

Each queued submission is replayed once per drain through
``WorkoutBackend.submit_workout``.  Successes are dropped, failures are kept,
and the queue is written back whole: the failed remainder plus anything that
was queued while the drain was in flight.  Delivery is at-least-once; the
``submission_id`` carried by every item lets a store configured with a
submission column ignore rows it already wrote.

Usage::

    engine = SyncEngine(backend, LocalStateStore(settings.local_state_dir))
    report = await engine.drain()
    if report.failed:
        logger.warning(report.summary())
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from fitness_focus.models.workout import QueuedWorkout
from fitness_focus.workouts.base import WorkoutBackend
from fitness_focus.workouts.local_store import LocalStateStore
from fitness_focus.workouts.sync.dedup import dedupe_queue

logger = logging.getLogger("fitness_focus.sync")


@dataclass
class DrainReport:
    """Outcome of one ``SyncEngine.drain`` call.

    Attributes:
        attempted:   Queued submissions replayed.
        synced:      Submissions the backend accepted.
        failed:      Submissions kept for the next drain.
        logged_sets: History rows written by the accepted submissions.
        skipped:     True if another drain was already running.
    """

    attempted: int = 0
    synced: int = 0
    failed: int = 0
    logged_sets: int = 0
    skipped: bool = False

    def summary(self) -> str:
        if self.failed:
            return f"{self.failed} could not be synced, will retry later."
        return f"{self.synced} queued workout(s) synced."


class SyncEngine:
    """Replay queued offline submissions.

    Only one drain runs at a time per engine; a drain requested while another
    is in flight returns a skipped report immediately.
    """

    def __init__(self, backend: WorkoutBackend, local_store: LocalStateStore) -> None:
        self._backend = backend
        self._local = local_store
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def drain(self) -> DrainReport:
        if self._lock.locked():
            logger.debug("Drain already in progress, skipping")
            return DrainReport(skipped=True)

        async with self._lock:
            batch = dedupe_queue(self._local.get_queue())
            if not batch:
                logger.debug("SyncEngine: queue empty")
                return DrainReport()

            logger.info("SyncEngine: replaying %d queued workouts", len(batch))
            report = DrainReport(attempted=len(batch))
            failed: list[QueuedWorkout] = []

            for item in batch:
                try:
                    result = await self._backend.submit_workout(
                        item.week, item.day, item.workout, submission_id=item.submission_id
                    )
                except Exception as exc:
                    logger.warning(
                        "Replay of submission %s raised: %s", item.submission_id, exc
                    )
                    failed.append(item)
                    continue

                if result.success:
                    report.synced += 1
                    report.logged_sets += result.logged_count
                else:
                    logger.warning(
                        "Replay of submission %s failed: %s", item.submission_id, result.error
                    )
                    failed.append(item)

            # Items queued while the drain was awaiting the backend stay queued.
            attempted_ids = {item.submission_id for item in batch}
            added = [
                item for item in self._local.get_queue()
                if item.submission_id not in attempted_ids
            ]
            self._local.set_queue(dedupe_queue(failed + added))

            report.failed = len(failed)
            logger.info(
                "SyncEngine: %d synced, %d kept for retry, %d queued during drain",
                report.synced, report.failed, len(added),
            )
            return report
