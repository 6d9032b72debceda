"""
Pytest configuration and shared fixtures.
"""

import os
import copy
import importlib.util
import itertools
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from botocore.exceptions import ClientError

os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

from matchnight.models import AnswerSet, Group, Participant
from matchnight.questions import Questionnaire, load_questionnaire

_clock = itertools.count()

LAMBDA_DIR = Path(__file__).resolve().parents[1] / "lambda"


def load_lambda(name: str):
    """Load a handler from lambda/ (not an importable package)."""
    spec = importlib.util.spec_from_file_location(name, LAMBDA_DIR / f"{name}.py")
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


class FakeBatchWriter:
    def __init__(self, table: "FakeTable") -> None:
        self.table = table
        self.pending: List[tuple] = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        keys = [item["pk"] for _, item in self.pending]
        # DynamoDB rejects a batch that touches the same key twice
        assert len(keys) == len(set(keys)), "duplicate keys in one batch"
        for op, item in self.pending:
            if op == "put":
                self.table.items[item["pk"]] = copy.deepcopy(item)
            else:
                self.table.items.pop(item["pk"], None)
        return False

    def put_item(self, Item):
        self.pending.append(("put", Item))

    def delete_item(self, Key):
        self.pending.append(("delete", Key))


class FakeTable:
    """
    In-memory stand-in for a boto3 DynamoDB Table keyed by ``pk``.  Scans
    are paged so pagination code paths run.
    """

    page_size = 2

    def __init__(self) -> None:
        self.items: Dict[str, Dict[str, Any]] = {}
        self.calls: List[str] = []

    def _check_condition(self, item, condition, values):
        existing = self.items.get(item["pk"])
        if existing is None:
            return
        if "expiresAt < :now" in condition and existing.get("expiresAt", 0) < values[":now"]:
            return
        raise ClientError(
            {"Error": {"Code": "ConditionalCheckFailedException", "Message": "The conditional request failed"}},
            "PutItem",
        )

    def put_item(self, Item, ConditionExpression: Optional[str] = None, ExpressionAttributeValues=None):
        self.calls.append("put_item")
        if ConditionExpression:
            self._check_condition(Item, ConditionExpression, ExpressionAttributeValues or {})
        self.items[Item["pk"]] = copy.deepcopy(Item)

    def get_item(self, Key):
        self.calls.append("get_item")
        item = self.items.get(Key["pk"])
        return {"Item": copy.deepcopy(item)} if item else {}

    def delete_item(self, Key, ConditionExpression: Optional[str] = None,
                    ExpressionAttributeNames=None, ExpressionAttributeValues=None):
        self.calls.append("delete_item")
        if ConditionExpression:
            # only the "#name = :value" form is used
            name_ref, value_ref = [s.strip() for s in ConditionExpression.split("=")]
            name = (ExpressionAttributeNames or {}).get(name_ref, name_ref)
            existing = self.items.get(Key["pk"])
            if existing is None or existing.get(name) != (ExpressionAttributeValues or {}).get(value_ref):
                raise ClientError(
                    {"Error": {"Code": "ConditionalCheckFailedException", "Message": "The conditional request failed"}},
                    "DeleteItem",
                )
        self.items.pop(Key["pk"], None)

    def scan(self, ExclusiveStartKey=None, ProjectionExpression=None, **kwargs):
        self.calls.append("scan")
        keys = sorted(self.items)
        start = 0
        if ExclusiveStartKey:
            start = keys.index(ExclusiveStartKey["pk"]) + 1
        page = keys[start:start + self.page_size]
        out = []
        for k in page:
            item = copy.deepcopy(self.items[k])
            if ProjectionExpression:
                fields = [f.strip() for f in ProjectionExpression.split(",")]
                item = {f: item[f] for f in fields if f in item}
            out.append(item)
        resp = {"Items": out}
        if start + self.page_size < len(keys):
            resp["LastEvaluatedKey"] = {"pk": page[-1]}
        return resp

    def batch_writer(self):
        return FakeBatchWriter(self)


def make_questionnaire(n_questions: int, codes=("a", "b")) -> Questionnaire:
    """Small questionnaire with the same option codes on every question."""
    all_codes = ["a", "b", "c", "d"]
    return Questionnaire.from_dict({
        "alphabet": all_codes,
        "categories": {
            "adventure": {"title": "Adventure Seekers", "emoji": "✨", "code": "a"},
            "deep": {"title": "Deep Minds", "emoji": "🌙", "code": "b"},
            "romcom": {"title": "Rom-com Hearts", "emoji": "💕", "code": "c"},
            "latenight": {"title": "Late-night Souls", "emoji": "🌃", "code": "d"},
        },
        "default_category": "latenight",
        "questions": [
            {
                "id": i,
                "category": f"Topic {i}",
                "text": f"Question {i}?",
                "options": [{"id": c, "text": f"Option {c}"} for c in codes],
            }
            for i in range(1, n_questions + 1)
        ],
    })


def make_participant(pid: str, group, answers: Dict[int, str], completed: bool = True,
                     name: Optional[str] = None, created_at: str = "") -> Participant:
    return Participant(
        id=pid,
        display_name=name or pid,
        group=Group.parse(group),
        answers=AnswerSet(answers),
        completed=completed,
        created_at=created_at or f"2026-02-14T20:{next(_clock):05d}",
    )


@pytest.fixture
def questionnaire() -> Questionnaire:
    """The packaged 12-question questionnaire."""
    return load_questionnaire()


@pytest.fixture
def two_question() -> Questionnaire:
    """Two questions, options a and b only."""
    return make_questionnaire(2, codes=("a", "b"))


@pytest.fixture
def fake_table() -> FakeTable:
    return FakeTable()


@pytest.fixture
def participant_repo(two_question):
    from matchnight.participant_repo import ParticipantRepo
    return ParticipantRepo("test_participants", two_question, table=FakeTable())
