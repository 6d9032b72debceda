import os
import logging

import boto3

from matchnight.errors import MatchNightError, NoEligibleParticipants
from matchnight.events import EventLog, EventReset, MatchesReplaced
from matchnight.event_state import (
    EventStateRepo,
    EventStatus,
    advance,
    initial_state,
)
from matchnight.match_repo import MatchRepo
from matchnight.matching import ensure_eligible, generate_matches, partition_completed
from matchnight.participant_repo import ParticipantRepo
from matchnight.questions import load_questionnaire
from matchnight.reveal import event_stats, screen_payload

logger = logging.getLogger()
logger.setLevel(logging.INFO)

PARTICIPANTS_TABLE = os.environ.get("PARTICIPANTS_TABLE", "matchnight_participants")
MATCHES_TABLE = os.environ.get("MATCHES_TABLE", "matchnight_matches")
EVENT_TABLE = os.environ.get("EVENT_TABLE", "matchnight_event")
OPERATOR_ID = os.environ.get("OPERATOR_ID", "admin")

dynamodb = boto3.resource("dynamodb")

questionnaire = load_questionnaire()
participants = ParticipantRepo(PARTICIPANTS_TABLE, questionnaire, table=dynamodb.Table(PARTICIPANTS_TABLE))
matches = MatchRepo(MATCHES_TABLE, table=dynamodb.Table(MATCHES_TABLE), owner=OPERATOR_ID)
event_states = EventStateRepo(EVENT_TABLE, table=dynamodb.Table(EVENT_TABLE))

events = EventLog()
events.subscribe(lambda e: logger.info("event_published: %s", type(e).__name__))


# --------------------------
# Actions
# --------------------------

def generate(dry_run: bool = False):
    """
    Run the matching engine over every completed participant and replace the
    stored matches with the result.
    """
    state = event_states.get()
    next_state = advance(state, EventStatus.MATCHING, matches_generated=True)

    group_a, group_b = partition_completed(participants.list_all())
    try:
        ensure_eligible(group_a, group_b)
    except NoEligibleParticipants as e:
        logger.warning("no_eligible_participants: %s", e)
        return {
            "ok": True,
            "warning": e.code,
            "message": str(e),
            "group_a": len(group_a),
            "group_b": len(group_b),
            "matches": 0,
            "dry_run": dry_run,
        }

    new_matches = generate_matches(group_a, group_b, questionnaire)

    if not dry_run:
        matches.replace_all(new_matches)
        event_states.put(next_state)
        events.publish(MatchesReplaced(tuple(new_matches)))

    return {
        "ok": True,
        "group_a": len(group_a),
        "group_b": len(group_b),
        "matches": len(new_matches),
        "records": [m.to_record() for m in new_matches],
        "dry_run": dry_run,
    }


def reset_event():
    """Clear every match and participant and start collecting again."""
    removed_matches = matches.delete_all()
    removed_participants = participants.delete_all()
    event_states.put(initial_state())
    events.publish(EventReset())
    logger.info("event_reset: matches=%s participants=%s", removed_matches, removed_participants)
    return {"ok": True, "matches_removed": removed_matches, "participants_removed": removed_participants}


def stats():
    state = event_states.get()
    return {
        "ok": True,
        "status": state.status.value,
        "matches_generated": state.matches_generated,
        "matches": len(matches.list_all()),
        **event_stats(participants.list_all()),
    }


def move_to(status: EventStatus):
    state = advance(event_states.get(), status)
    event_states.put(state)
    return {"ok": True, "status": state.status.value}


def screen():
    return {
        "ok": True,
        "status": event_states.get().status.value,
        "groups": screen_payload(matches.list_all(), participants.list_all(), questionnaire),
    }


# --------------------------
# Handler
# --------------------------

def lambda_handler(event, context):
    """
    event options:
      - {"action": "generate_matches", "dry_run": true}
      - {"action": "reset_event"}
      - {"action": "stats"}            (default)
      - {"action": "reveal"} / {"action": "end"}
      - {"action": "screen"}
    """
    event = event or {}
    action = event.get("action") or "stats"

    try:
        if action == "generate_matches":
            return generate(dry_run=bool(event.get("dry_run")))
        if action == "reset_event":
            return reset_event()
        if action == "stats":
            return stats()
        if action == "reveal":
            return move_to(EventStatus.REVEALING)
        if action == "end":
            return move_to(EventStatus.ENDED)
        if action == "screen":
            return screen()
    except MatchNightError as e:
        logger.warning("admin_action_rejected: action=%s error=%s", action, e)
        return {"ok": False, "error": e.code, "message": str(e)}

    return {"ok": False, "error": "UnknownAction", "message": f"Unknown action: {action}"}
