"""
DynamoDB repository for participants.

One item per participant keyed by ``PARTICIPANT#<id>``.  This is the
persistence port the session state machine saves through on every
transition, and the source the operator reads completed participants from
before matching.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import boto3

from .models import Participant
from .questions import Questionnaire

logger = logging.getLogger(__name__)


def scan_all(table, **kwargs) -> List[Dict[str, Any]]:
    """Scan a whole table, following ``LastEvaluatedKey`` pages."""
    resp = table.scan(**kwargs)
    items = resp.get("Items", [])
    while "LastEvaluatedKey" in resp:
        resp = table.scan(ExclusiveStartKey=resp["LastEvaluatedKey"], **kwargs)
        items.extend(resp.get("Items", []))
    return items


class ParticipantRepo:
    """Repository for participant records stored in DynamoDB."""

    def __init__(self, table_name: str, questionnaire: Questionnaire, table=None) -> None:
        self.table_name = table_name
        self.questionnaire = questionnaire
        self.table = table if table is not None else boto3.resource("dynamodb").Table(table_name)

    def save(self, participant: Participant) -> None:
        """Write the full participant record; the latest write wins."""
        self.table.put_item(Item=participant.to_item())

    def load(self, participant_id: str) -> Optional[Participant]:
        """Retrieve a participant by id, or None if it does not exist."""
        resp = self.table.get_item(Key={"pk": f"PARTICIPANT#{participant_id}"})
        item = resp.get("Item")
        if not item:
            return None
        return Participant.from_item(item, self.questionnaire)

    def delete(self, participant_id: str) -> None:
        self.table.delete_item(Key={"pk": f"PARTICIPANT#{participant_id}"})

    def list_all(self) -> List[Participant]:
        """
        All participants, oldest first.  Creation order is the group order
        the matching engine uses for tie-breaks.
        """
        items = scan_all(self.table)
        participants = []
        for it in items:
            if not str(it.get("pk", "")).startswith("PARTICIPANT#"):
                continue
            participants.append(Participant.from_item(it, self.questionnaire))
        participants.sort(key=lambda p: (p.created_at, p.id))
        return participants

    def delete_all(self) -> int:
        """Delete every participant record; returns how many were removed."""
        items = scan_all(self.table, ProjectionExpression="pk")
        with self.table.batch_writer() as batch:
            for it in items:
                batch.delete_item(Key={"pk": it["pk"]})
        logger.info("participants_deleted: %s", len(items))
        return len(items)
