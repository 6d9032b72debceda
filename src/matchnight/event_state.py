"""
Event-level status.

The event moves collecting -> matching -> revealing -> ended.  Matches may
be regenerated while the event is in ``matching``; a reset puts the event
back to ``collecting`` from anywhere.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict

import boto3

from .errors import InvalidTransition
from .models import now_iso

EVENT_PK = "EVENT#current"


class EventStatus(Enum):
    COLLECTING = "collecting"
    MATCHING = "matching"
    REVEALING = "revealing"
    ENDED = "ended"


ALLOWED = {
    EventStatus.COLLECTING: {EventStatus.MATCHING},
    EventStatus.MATCHING: {EventStatus.MATCHING, EventStatus.REVEALING},
    EventStatus.REVEALING: {EventStatus.ENDED},
    EventStatus.ENDED: set(),
}


@dataclass(frozen=True)
class EventState:
    status: EventStatus = EventStatus.COLLECTING
    matches_generated: bool = False
    updated_at: str = field(default_factory=now_iso)

    def to_item(self) -> Dict[str, Any]:
        return {
            "pk": EVENT_PK,
            "status": self.status.value,
            "matchesGenerated": self.matches_generated,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "EventState":
        return cls(
            status=EventStatus(item.get("status", EventStatus.COLLECTING.value)),
            matches_generated=bool(item.get("matchesGenerated")),
            updated_at=item.get("updatedAt") or now_iso(),
        )


def advance(state: EventState, status: EventStatus, **changes) -> EventState:
    """Return ``state`` moved to ``status``; raises InvalidTransition if not allowed."""
    if status not in ALLOWED[state.status]:
        raise InvalidTransition(f"Event cannot go from {state.status.value} to {status.value}")
    return replace(state, status=status, updated_at=now_iso(), **changes)


def initial_state() -> EventState:
    return EventState()


class EventStateRepo:
    """Single-item store for the current event's status."""

    def __init__(self, table_name: str, table=None) -> None:
        self.table_name = table_name
        self.table = table if table is not None else boto3.resource("dynamodb").Table(table_name)

    def get(self) -> EventState:
        item = self.table.get_item(Key={"pk": EVENT_PK}).get("Item")
        return EventState.from_item(item) if item else initial_state()

    def put(self, state: EventState) -> None:
        self.table.put_item(Item=state.to_item())
