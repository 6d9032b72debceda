"""
Data models for MatchNight.

This module defines the records exchanged between the questionnaire, the
session state machine, the matching engine and the DynamoDB repositories.
Records that are persisted provide ``pk``/``to_item``/``from_item`` helpers,
mirroring how items are laid out in their tables.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

from .errors import InvalidOption, InvalidParticipant

MAX_NAME_LENGTH = 20


def now_iso() -> str:
    """Return the current UTC time as an ISO 8601 formatted string."""
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


class Group(Enum):
    """The two disjoint pools that are matched against each other."""

    A = "A"
    B = "B"

    @classmethod
    def parse(cls, value: Any) -> "Group":
        """
        Accept a ``Group``, its value, or the legacy "male"/"female" labels
        used by the first event's clients.
        """
        if isinstance(value, Group):
            return value
        if isinstance(value, str):
            v = value.strip()
            legacy = {"male": cls.A, "female": cls.B}
            if v.lower() in legacy:
                return legacy[v.lower()]
            try:
                return cls(v.upper())
            except ValueError:
                pass
        raise InvalidParticipant(f"Unknown group: {value!r}")


@dataclass(frozen=True)
class Option:
    id: str
    text: str


@dataclass(frozen=True)
class Question:
    """A single questionnaire entry; ``options`` keeps display order."""

    id: int
    category: str
    text: str
    options: Tuple[Option, ...]

    @property
    def option_codes(self) -> Tuple[str, ...]:
        return tuple(o.id for o in self.options)


@dataclass(frozen=True)
class Category:
    """A thematic label shown when matches are revealed."""

    key: str
    title: str
    emoji: str = ""


class AnswerSet(Mapping):
    """
    Immutable mapping of question id -> option code.

    ``parse`` validates against a questionnaire so scoring code never has to
    check for unknown ids or codes.  ``with_answer`` returns a new set with
    one more entry; sets only grow until a full reset.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Optional[Mapping] = None) -> None:
        self._data: Dict[int, str] = dict(data or {})

    @classmethod
    def parse(cls, raw: Optional[Mapping], questionnaire) -> "AnswerSet":
        """
        Build a validated set from loosely typed input (e.g. a DynamoDB map
        with string keys).

        Raises:
            InvalidParticipant: for keys that are not question ids.
            InvalidOption: for codes outside the question's option set.
        """
        data: Dict[int, str] = {}
        for key, code in (raw or {}).items():
            try:
                qid = int(key)
            except (TypeError, ValueError):
                raise InvalidParticipant(f"Unknown question id: {key!r}")
            if questionnaire.get(qid) is None:
                raise InvalidParticipant(f"Unknown question id: {key!r}")
            if not questionnaire.is_valid_option(qid, code):
                raise InvalidOption(qid, code)
            data[qid] = code
        return cls(data)

    def with_answer(self, question_id: int, code: str) -> "AnswerSet":
        data = dict(self._data)
        data[question_id] = code
        return AnswerSet(data)

    def __getitem__(self, key: int) -> str:
        return self._data[key]

    def __iter__(self) -> Iterator[int]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._data.items()))

    def __repr__(self) -> str:
        return f"AnswerSet({self._data!r})"

    def to_dict(self) -> Dict[str, str]:
        """DynamoDB/JSON maps need string keys."""
        return {str(k): v for k, v in sorted(self._data.items())}


@dataclass
class Participant:
    """
    One person taking part in the event.

    Attributes:
        id: Opaque identifier.
        display_name: Name shown on the reveal screen (1..20 chars).
        group: Pool this participant is matched from.
        answers: Answers given so far.
        completed: True once every question has been answered.
        created_at: ISO timestamp; defines participant order for matching.
    """

    id: str
    display_name: str
    group: Optional[Group]
    answers: AnswerSet = field(default_factory=AnswerSet)
    completed: bool = False
    created_at: str = field(default_factory=now_iso)

    @classmethod
    def blank(cls) -> "Participant":
        """Placeholder held by a session that has not started yet."""
        return cls(id=new_id(), display_name="", group=None)

    @classmethod
    def create(cls, display_name: str, group: Any) -> "Participant":
        name = (display_name or "").strip()
        if not name:
            raise InvalidParticipant("Name is required")
        if len(name) > MAX_NAME_LENGTH:
            raise InvalidParticipant(f"Name must be at most {MAX_NAME_LENGTH} characters")
        return cls(id=new_id(), display_name=name, group=Group.parse(group))

    def answered(self, question_id: int, code: str, total_questions: int) -> "Participant":
        """Return a copy with one more answer; flips ``completed`` on the last one."""
        answers = self.answers.with_answer(question_id, code)
        return replace(self, answers=answers, completed=len(answers) >= total_questions)

    @property
    def pk(self) -> str:
        """Compute the partition key for the participant record."""
        return f"PARTICIPANT#{self.id}"

    def to_item(self) -> Dict[str, Any]:
        """Convert the participant into a DynamoDB item (dictionary)."""
        return {
            "pk": self.pk,
            "id": self.id,
            "displayName": self.display_name,
            "group": self.group.value if self.group else None,
            "answers": self.answers.to_dict(),
            "completed": self.completed,
            "createdAt": self.created_at,
            "updatedAt": now_iso(),
        }

    def to_record(self) -> Dict[str, Any]:
        """The participant record exchanged with clients."""
        return {
            "id": self.id,
            "displayName": self.display_name,
            "group": self.group.value if self.group else None,
            "answers": self.answers.to_dict(),
            "completed": self.completed,
        }

    @classmethod
    def from_item(cls, item: Dict[str, Any], questionnaire) -> "Participant":
        return cls(
            id=item["id"],
            display_name=item.get("displayName", ""),
            group=Group.parse(item["group"]),
            answers=AnswerSet.parse(item.get("answers") or {}, questionnaire),
            completed=bool(item.get("completed")),
            created_at=item.get("createdAt") or "",
        )


@dataclass(frozen=True)
class Match:
    """
    A pairing produced by one matching run.  Immutable; a run's matches
    replace the previous run's wholesale.
    """

    participant_a: str
    participant_b: str
    score: int
    category: str

    @property
    def pk(self) -> str:
        return f"MATCH#{self.participant_a}#{self.participant_b}"

    def to_record(self) -> Dict[str, Any]:
        return {
            "participantA_id": self.participant_a,
            "participantB_id": self.participant_b,
            "score": self.score,
            "category": self.category,
        }

    def to_item(self, rank: int, generated_at: str) -> Dict[str, Any]:
        """DynamoDB item; ``rank`` preserves engine output order on read-back."""
        item = self.to_record()
        item.update({"pk": self.pk, "rank": rank, "generatedAt": generated_at})
        return item

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Match":
        return cls(
            participant_a=item["participantA_id"],
            participant_b=item["participantB_id"],
            score=int(item["score"]),
            category=item["category"],
        )
