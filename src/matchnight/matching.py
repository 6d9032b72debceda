"""
Matching engine.

Pairs group A with group B using a global-edge greedy walk: every cross-group
pair is scored, edges are sorted best first, and a pair is committed when
neither side has been matched yet.  The result is not always the
maximum-weight assignment, but it is the same for the same input order.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from .categories import classify
from .errors import IncompleteProfile, NoEligibleParticipants
from .models import Group, Match, Participant
from .questions import Questionnaire
from .scoring import compatibility_score

logger = logging.getLogger(__name__)

Edge = Tuple[int, int, int]  # (score, index in group A, index in group B)


def partition_completed(participants: Iterable[Participant]) -> Tuple[List[Participant], List[Participant]]:
    """Split participants by group, keeping completed ones in input order."""
    group_a: List[Participant] = []
    group_b: List[Participant] = []
    for p in participants:
        if not p.completed:
            continue
        (group_a if p.group is Group.A else group_b).append(p)
    return group_a, group_b


def only_completed(participants: Sequence[Participant]) -> List[Participant]:
    out = []
    for p in participants:
        if p.completed:
            out.append(p)
        else:
            logger.info("incomplete_profile_skipped: %s", p.id)
    return out


def ensure_eligible(group_a: Sequence[Participant], group_b: Sequence[Participant]) -> None:
    if not group_a or not group_b:
        raise NoEligibleParticipants(len(group_a), len(group_b))


def score_pair(a: Participant, b: Participant) -> int:
    for p in (a, b):
        if not p.completed:
            raise IncompleteProfile(p.id)
    return compatibility_score(a.answers, b.answers)


def build_edges(group_a: Sequence[Participant], group_b: Sequence[Participant]) -> List[Edge]:
    """
    Full cross product, best score first.  Equal scores keep group A order,
    then group B order, so repeated runs produce identical output.
    """
    edges = [
        (score_pair(a, b), i, j)
        for i, a in enumerate(group_a)
        for j, b in enumerate(group_b)
    ]
    edges.sort(key=lambda e: (-e[0], e[1], e[2]))
    return edges


def generate_matches(
    group_a: Sequence[Participant],
    group_b: Sequence[Participant],
    questionnaire: Optional[Questionnaire] = None,
) -> List[Match]:
    """Compute a one-to-one assignment between two participant groups.

    Incomplete participants are dropped first.  If either side is then empty
    the result is an empty list (logged as a warning).  Inputs are not
    modified.  At most ``min(len(group_a), len(group_b))`` matches are
    returned, each participant appearing at most once.
    """
    group_a = only_completed(group_a)
    group_b = only_completed(group_b)
    try:
        ensure_eligible(group_a, group_b)
    except NoEligibleParticipants as e:
        logger.warning("no_eligible_participants: %s", e)
        return []

    # tracked by id so a participant listed twice is still matched once
    used_a = set()
    used_b = set()
    ids_a = {p.id for p in group_a}
    ids_b = {p.id for p in group_b}
    matches: List[Match] = []

    for score, i, j in build_edges(group_a, group_b):
        a, b = group_a[i], group_b[j]
        if a.id in used_a or b.id in used_b:
            continue
        matches.append(
            Match(
                participant_a=a.id,
                participant_b=b.id,
                score=score,
                category=classify(a.answers, questionnaire).key,
            )
        )
        used_a.add(a.id)
        used_b.add(b.id)
        if used_a == ids_a or used_b == ids_b:
            break

    logger.info(
        "matches_generated: group_a=%s group_b=%s matches=%s",
        len(group_a), len(group_b), len(matches),
    )
    return matches
