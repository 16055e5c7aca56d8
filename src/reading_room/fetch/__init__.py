"""Fallback cascade and settled fan-out helpers."""

from reading_room.fetch.cascade import (
    Attempt,
    CascadeResult,
    Provider,
    Settled,
    gather_settled,
    is_present,
    race_with_fallback,
    settled_value,
)

__all__ = [
    "Attempt",
    "CascadeResult",
    "Provider",
    "Settled",
    "gather_settled",
    "is_present",
    "race_with_fallback",
    "settled_value",
]
