"""
Tests for the DynamoDB repositories and event status, against an in-memory table.
"""

import time

import pytest
from botocore.exceptions import ClientError

from matchnight.errors import InvalidOption, InvalidParticipant, InvalidTransition, MatchGenerationInProgress
from matchnight.event_state import EventState, EventStateRepo, EventStatus, advance, initial_state
from matchnight.match_repo import LOCK_PK, MatchRepo
from matchnight.models import AnswerSet, Match, Participant
from conftest import FakeTable, make_participant


class TestParticipantRepo:

    def test_save_and_load(self, participant_repo):
        p = make_participant("p1", "B", {1: "a", 2: "b"}, name="Zoe")
        participant_repo.save(p)

        item = participant_repo.table.items["PARTICIPANT#p1"]
        assert item["answers"] == {"1": "a", "2": "b"}
        assert item["group"] == "B"

        loaded = participant_repo.load("p1")
        assert loaded == p
        assert isinstance(loaded.answers, AnswerSet)
        assert loaded.answers[2] == "b"

    def test_load_missing(self, participant_repo):
        assert participant_repo.load("nobody") is None

    def test_load_rejects_unknown_codes(self, participant_repo):
        participant_repo.table.items["PARTICIPANT#bad"] = {
            "pk": "PARTICIPANT#bad", "id": "bad", "displayName": "x", "group": "A",
            "answers": {"1": "z"}, "completed": False,
        }
        with pytest.raises(InvalidOption):
            participant_repo.load("bad")

    def test_load_rejects_unknown_question(self, participant_repo):
        participant_repo.table.items["PARTICIPANT#bad"] = {
            "pk": "PARTICIPANT#bad", "id": "bad", "displayName": "x", "group": "A",
            "answers": {"7": "a"}, "completed": False,
        }
        with pytest.raises(InvalidParticipant):
            participant_repo.load("bad")

    def test_list_all_pages_and_orders_by_creation(self, participant_repo):
        created = ["2026-02-14T20:00:03", "2026-02-14T20:00:01", "2026-02-14T20:00:02",
                   "2026-02-14T20:00:05", "2026-02-14T20:00:04"]
        for i, ts in enumerate(created):
            participant_repo.save(make_participant(f"p{i}", "A", {}, created_at=ts))

        listed = participant_repo.list_all()

        assert [p.id for p in listed] == ["p1", "p2", "p0", "p4", "p3"]
        assert participant_repo.table.calls.count("scan") == 3

    def test_delete(self, participant_repo):
        participant_repo.save(make_participant("p1", "A", {}))
        participant_repo.delete("p1")
        assert participant_repo.load("p1") is None

    def test_delete_all(self, participant_repo):
        for i in range(5):
            participant_repo.save(make_participant(f"p{i}", "A", {}))
        assert participant_repo.delete_all() == 5
        assert participant_repo.list_all() == []

    def test_latest_write_wins(self, participant_repo, two_question):
        p = Participant.create("Ava", "A")
        participant_repo.save(p)
        participant_repo.save(p.answered(1, "b", len(two_question)))
        assert dict(participant_repo.load(p.id).answers) == {1: "b"}


def _matches(n, prefix="m"):
    return [Match(f"{prefix}a{i}", f"{prefix}b{i}", 100 - i, "deep") for i in range(n)]


class TestMatchRepo:

    def test_replace_all_keeps_engine_order(self):
        repo = MatchRepo("test_matches", table=FakeTable())
        new = [Match("z", "y", 40, "deep"), Match("a", "b", 90, "romcom"), Match("m", "n", 60, "deep")]

        assert repo.replace_all(new) == 3

        assert repo.list_all() == new

    def test_replace_all_discards_previous_set(self):
        table = FakeTable()
        repo = MatchRepo("test_matches", table=table)
        repo.replace_all(_matches(5, "old"))

        repo.replace_all(_matches(2, "new"))

        assert repo.list_all() == _matches(2, "new")
        assert LOCK_PK not in table.items

    def test_replace_with_same_pairs(self):
        repo = MatchRepo("test_matches", table=FakeTable())
        repo.replace_all(_matches(3))
        repo.replace_all(_matches(3))
        assert repo.list_all() == _matches(3)

    def test_replace_with_empty_set(self):
        repo = MatchRepo("test_matches", table=FakeTable())
        repo.replace_all(_matches(3))
        repo.replace_all([])
        assert repo.list_all() == []

    def test_held_lock_blocks_replacement(self):
        table = FakeTable()
        table.items[LOCK_PK] = {"pk": LOCK_PK, "owner": "other", "expiresAt": int(time.time()) + 60}
        repo = MatchRepo("test_matches", table=table)

        with pytest.raises(MatchGenerationInProgress):
            repo.replace_all(_matches(2))

        assert repo.list_all() == []
        assert table.items[LOCK_PK]["owner"] == "other"

    def test_stale_lock_is_taken_over(self):
        table = FakeTable()
        table.items[LOCK_PK] = {"pk": LOCK_PK, "owner": "crashed", "expiresAt": int(time.time()) - 5}
        repo = MatchRepo("test_matches", table=table)

        assert repo.replace_all(_matches(1)) == 1
        assert LOCK_PK not in table.items

    def test_lock_released_on_failure(self):
        table = FakeTable()
        repo = MatchRepo("test_matches", table=table)

        class Boom(Exception):
            pass

        class BadMatch(Match):
            def to_item(self, rank, generated_at):
                raise Boom()

        with pytest.raises(Boom):
            repo.replace_all([BadMatch("a", "b", 1, "deep")])
        assert LOCK_PK not in table.items

    def test_taken_over_lock_is_not_released(self):
        table = FakeTable()
        repo = MatchRepo("test_matches", table=table)

        class TakeoverMatch(Match):
            def to_item(self, rank, generated_at):
                # our lock expired mid-run and another operator took it
                table.items[LOCK_PK] = {"pk": LOCK_PK, "owner": "other", "token": "theirs",
                                        "expiresAt": int(time.time()) + 60}
                return super().to_item(rank, generated_at)

        repo.replace_all([TakeoverMatch("a", "b", 1, "deep")])

        assert table.items[LOCK_PK]["token"] == "theirs"

    def test_lock_carries_a_token_per_acquisition(self):
        table = FakeTable()
        repo = MatchRepo("test_matches", table=table)
        repo._acquire_lock()
        first = table.items[LOCK_PK]["token"]
        repo._release_lock()
        repo._acquire_lock()
        assert table.items[LOCK_PK]["token"] != first
        repo._release_lock()
        assert LOCK_PK not in table.items

    def test_other_client_errors_propagate(self):
        class DeniedTable(FakeTable):
            def put_item(self, Item, **kwargs):
                raise ClientError({"Error": {"Code": "AccessDeniedException", "Message": "no"}}, "PutItem")

        repo = MatchRepo("test_matches", table=DeniedTable())
        with pytest.raises(ClientError):
            repo.replace_all(_matches(1))

    def test_delete_all(self):
        repo = MatchRepo("test_matches", table=FakeTable())
        repo.replace_all(_matches(4))
        assert repo.delete_all() == 4
        assert repo.list_all() == []


class TestEventState:

    def test_default_is_collecting(self):
        repo = EventStateRepo("test_event", table=FakeTable())
        state = repo.get()
        assert state.status is EventStatus.COLLECTING
        assert not state.matches_generated

    def test_put_and_get(self):
        repo = EventStateRepo("test_event", table=FakeTable())
        repo.put(EventState(status=EventStatus.REVEALING, matches_generated=True))
        state = repo.get()
        assert state.status is EventStatus.REVEALING
        assert state.matches_generated

    def test_forward_transitions(self):
        state = initial_state()
        state = advance(state, EventStatus.MATCHING, matches_generated=True)
        state = advance(state, EventStatus.MATCHING)
        state = advance(state, EventStatus.REVEALING)
        state = advance(state, EventStatus.ENDED)
        assert state.status is EventStatus.ENDED
        assert state.matches_generated

    @pytest.mark.parametrize("start, target", [
        (EventStatus.COLLECTING, EventStatus.REVEALING),
        (EventStatus.COLLECTING, EventStatus.ENDED),
        (EventStatus.REVEALING, EventStatus.MATCHING),
        (EventStatus.ENDED, EventStatus.COLLECTING),
        (EventStatus.ENDED, EventStatus.MATCHING),
    ])
    def test_invalid_transitions(self, start, target):
        with pytest.raises(InvalidTransition):
            advance(EventState(status=start), target)
