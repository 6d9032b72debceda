"""
DynamoDB repository for matches.

Matches are never patched: every generation replaces the whole set.  The
replacement runs inside an operator-held lock item so two concurrent
generations cannot interleave their deletes and inserts.
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Sequence

import boto3
from botocore.exceptions import ClientError

from .errors import MatchGenerationInProgress
from .models import Match, new_id, now_iso
from .participant_repo import scan_all

logger = logging.getLogger(__name__)

LOCK_PK = "LOCK#matches"
LOCK_TTL_SECONDS = 60


class MatchRepo:
    """Repository for the current match set stored in DynamoDB."""

    def __init__(self, table_name: str, table=None, owner: str = "operator") -> None:
        self.table_name = table_name
        self.owner = owner
        self._lock_token: Optional[str] = None
        self.table = table if table is not None else boto3.resource("dynamodb").Table(table_name)

    def list_all(self) -> List[Match]:
        """Current matches in the order the engine produced them."""
        items = [it for it in scan_all(self.table) if str(it.get("pk", "")).startswith("MATCH#")]
        items.sort(key=lambda it: int(it.get("rank", 0)))
        return [Match.from_item(it) for it in items]

    def _acquire_lock(self) -> None:
        now = int(time.time())
        token = new_id()
        try:
            self.table.put_item(
                Item={"pk": LOCK_PK, "owner": self.owner, "token": token, "expiresAt": now + LOCK_TTL_SECONDS},
                ConditionExpression="attribute_not_exists(pk) OR expiresAt < :now",
                ExpressionAttributeValues={":now": now},
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise MatchGenerationInProgress("Matches are being replaced by another operator")
            raise
        self._lock_token = token

    def _release_lock(self) -> None:
        """Delete the lock only if it is still ours; a stale lock may have been taken over."""
        token, self._lock_token = self._lock_token, None
        try:
            self.table.delete_item(
                Key={"pk": LOCK_PK},
                ConditionExpression="#t = :token",
                ExpressionAttributeNames={"#t": "token"},
                ExpressionAttributeValues={":token": token},
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") != "ConditionalCheckFailedException":
                raise
            logger.warning("match_lock_lost: owner=%s", self.owner)

    def _delete_matches(self) -> int:
        items = [
            it for it in scan_all(self.table, ProjectionExpression="pk")
            if str(it.get("pk", "")).startswith("MATCH#")
        ]
        with self.table.batch_writer() as batch:
            for it in items:
                batch.delete_item(Key={"pk": it["pk"]})
        return len(items)

    def replace_all(self, matches: Sequence[Match], generated_at: Optional[str] = None) -> int:
        """
        Discard the stored matches and write ``matches`` in their place.

        Returns:
            Number of matches written.
        Raises:
            MatchGenerationInProgress: Another replacement holds the lock.
        """
        generated_at = generated_at or now_iso()
        self._acquire_lock()
        try:
            removed = self._delete_matches()
            # deletes are flushed before puts; a batch may not touch one key twice
            with self.table.batch_writer() as batch:
                for rank, m in enumerate(matches):
                    batch.put_item(Item=m.to_item(rank, generated_at))
        finally:
            self._release_lock()

        logger.info("matches_replaced: removed=%s written=%s", removed, len(matches))
        return len(matches)

    def delete_all(self) -> int:
        self._acquire_lock()
        try:
            removed = self._delete_matches()
        finally:
            self._release_lock()
        logger.info("matches_deleted: %s", removed)
        return removed
