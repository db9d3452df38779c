"""Deduplication helpers for replayed workout submissions.

Every queued submission carries a client-generated ``submission_id``.  When
the store is configured with a submission column on ``Workout History``,
each inserted row is stamped with ``row_submission_key`` and the insert uses
``ON CONFLICT DO NOTHING``, so replaying a submission whose acknowledgment was
lost writes nothing new.

Dedup keys:
    - Workout History row: (submission_id, position of the row in the submission)
"""

from __future__ import annotations

import logging

from fitness_focus.models.workout import QueuedWorkout

logger = logging.getLogger("fitness_focus.sync.dedup")


def row_submission_key(submission_id: str, position: int) -> str:
    """Key for the ``position``-th (1-based) history row of a submission.

    Args:
        submission_id: Id generated when the submission was queued.
        position:      1-based index of the row within the submission.

    Returns:
        Colon-separated dedup key string.
    """
    return f"{submission_id}:{position}"


def dedupe_queue(queue: list[QueuedWorkout]) -> list[QueuedWorkout]:
    """Drop repeated submissions, keeping the first occurrence of each id."""
    seen: set[str] = set()
    unique: list[QueuedWorkout] = []
    for item in queue:
        if item.submission_id in seen:
            logger.debug("Dropping duplicate queued submission %s", item.submission_id)
            continue
        seen.add(item.submission_id)
        unique.append(item)
    return unique
