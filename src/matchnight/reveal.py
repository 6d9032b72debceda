"""
Dashboard counts and the reveal screen's view of the current matches.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from .categories import category_for
from .models import Group, Match, Participant
from .questions import Questionnaire


@dataclass(frozen=True)
class RevealedMatch:
    name_a: str
    name_b: str
    score: int
    category: str

    def to_dict(self) -> Dict[str, object]:
        return {"nameA": self.name_a, "nameB": self.name_b, "score": self.score, "category": self.category}


def event_stats(participants: Iterable[Participant]) -> Dict[str, int]:
    participants = list(participants)
    return {
        "joined": len(participants),
        "group_a": sum(1 for p in participants if p.group is Group.A),
        "group_b": sum(1 for p in participants if p.group is Group.B),
        "completed": sum(1 for p in participants if p.completed),
    }


def group_by_category(
    matches: Sequence[Match], participants: Iterable[Participant]
) -> Dict[str, List[RevealedMatch]]:
    """
    Matches grouped by category key, groups in order of first appearance.
    Participants that no longer exist show as "Unknown".
    """
    names = {p.id: p.display_name for p in participants}
    grouped: Dict[str, List[RevealedMatch]] = {}
    for m in matches:
        key = m.category or "default"
        grouped.setdefault(key, []).append(
            RevealedMatch(
                name_a=names.get(m.participant_a) or "Unknown",
                name_b=names.get(m.participant_b) or "Unknown",
                score=m.score,
                category=key,
            )
        )
    return grouped


def screen_payload(
    matches: Sequence[Match],
    participants: Iterable[Participant],
    questionnaire: Optional[Questionnaire] = None,
) -> List[Dict[str, object]]:
    """Grouped matches with each category's display title and emoji."""
    out = []
    for key, items in group_by_category(matches, participants).items():
        cat = category_for(key, questionnaire)
        out.append({
            "category": key,
            "title": cat.title,
            "emoji": cat.emoji,
            "matches": [m.to_dict() for m in items],
        })
    return out
