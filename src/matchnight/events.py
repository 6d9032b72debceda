"""
Change notifications.

Sessions and operator actions publish these after every state change.  How
they reach screens (polling, push) is up to whoever subscribes.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Tuple

from .models import Match

logger = logging.getLogger(__name__)

# older events are dropped once a log holds this many
HISTORY_LIMIT = 100


@dataclass(frozen=True)
class ParticipantUpdated:
    participant_id: str


@dataclass(frozen=True)
class MatchesReplaced:
    matches: Tuple[Match, ...]


@dataclass(frozen=True)
class EventReset:
    pass


@dataclass
class EventLog:
    """In-process publisher that also keeps the last ``HISTORY_LIMIT`` events it published."""

    history: Deque[object] = field(default_factory=lambda: deque(maxlen=HISTORY_LIMIT))
    _subscribers: List[Callable[[object], None]] = field(default_factory=list, repr=False)

    def subscribe(self, fn: Callable[[object], None]) -> None:
        self._subscribers.append(fn)

    def publish(self, event: object) -> None:
        self.history.append(event)
        for fn in self._subscribers:
            try:
                fn(event)
            except Exception:
                # a broken subscriber must not undo a committed transition
                logger.exception("event_subscriber_failed: %s", type(event).__name__)
