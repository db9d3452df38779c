"""Shared Pydantic base models and utilities."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FitnessBase(BaseModel):
    """Base model for snapshot/workout schemas.

    Fields are declared in snake_case and serialized in camelCase, which is
    the shape persisted in the ``Current State`` slot and the local snapshot.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict:
        """JSON-safe dict using the camelCase wire names."""
        return self.model_dump(mode="json", by_alias=True)
