import os
import json
import logging

import boto3

from matchnight.errors import (
    InvalidOption,
    InvalidParticipant,
    InvalidTransition,
    MatchNightError,
    OutOfSequence,
    ParticipantNotFound,
)
from matchnight.events import EventLog
from matchnight.participant_repo import ParticipantRepo
from matchnight.questions import load_questionnaire
from matchnight.session import Session

logger = logging.getLogger()
logger.setLevel(logging.INFO)

PARTICIPANTS_TABLE = os.environ.get("PARTICIPANTS_TABLE", "matchnight_participants")
ALLOW_ORIGIN = os.environ.get("ALLOW_ORIGIN", "*")

dynamodb = boto3.resource("dynamodb")

questionnaire = load_questionnaire()
participants = ParticipantRepo(PARTICIPANTS_TABLE, questionnaire, table=dynamodb.Table(PARTICIPANTS_TABLE))

events = EventLog()
events.subscribe(lambda e: logger.info("event_published: %s", type(e).__name__))

STATUS_BY_ERROR = {
    InvalidOption: 400,
    InvalidParticipant: 400,
    OutOfSequence: 409,
    InvalidTransition: 409,
    ParticipantNotFound: 404,
}


def _cors_headers():
    return {
        "Access-Control-Allow-Origin": ALLOW_ORIGIN,
        "Access-Control-Allow-Headers": "content-type",
        "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    }


def _resp(status: int, body: dict):
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json", **_cors_headers()},
        "body": json.dumps(body),
    }


def _method(event) -> str:
    return (
        event.get("requestContext", {}).get("http", {}).get("method")
        or event.get("httpMethod")
        or ""
    ).upper()


def session_view(session: Session) -> dict:
    """What the participant's screen needs to render the next step."""
    question = session.current_question
    return {
        "ok": True,
        "participantId": session.participant.id if session.participant.group else None,
        "state": session.state.value,
        "currentIndex": session.current_index,
        "total": len(questionnaire),
        "completed": session.completed,
        "question": {
            "id": question.id,
            "category": question.category,
            "text": question.text,
            "options": [{"id": o.id, "text": o.text} for o in question.options],
        } if question else None,
    }


def handle_post(body: dict):
    action = body.get("action")
    if action == "start":
        session = Session(questionnaire, participants, events=events)
        session.start(body.get("name") or "", body.get("group"))
        return _resp(200, session_view(session))

    participant_id = body.get("participantId")
    if not participant_id:
        return _resp(400, {"ok": False, "error": "Missing participantId"})
    session = Session.resume(participant_id, questionnaire, participants, events=events)

    if action == "answer":
        # untagged answers cannot be told apart from retries
        question_id = body.get("questionId")
        if question_id is None:
            return _resp(400, {"ok": False, "error": "Missing questionId"})
        session.answer(body.get("option"), int(question_id))
        return _resp(200, session_view(session))
    if action == "reset":
        session.reset()
        return _resp(200, session_view(session))

    return _resp(400, {"ok": False, "error": f"Unknown action: {action}"})


def lambda_handler(event, context):
    method = _method(event)
    if method == "OPTIONS":
        return {"statusCode": 200, "headers": _cors_headers(), "body": ""}

    try:
        if method == "GET":
            qs = event.get("queryStringParameters") or {}
            participant_id = qs.get("participantId")
            if not participant_id:
                return _resp(400, {"ok": False, "error": "Missing participantId"})
            session = Session.resume(participant_id, questionnaire, participants, events=events)
            return _resp(200, session_view(session))

        try:
            body = json.loads(event.get("body") or "{}")
        except Exception:
            return _resp(400, {"ok": False, "error": "Invalid JSON"})
        return handle_post(body)

    except MatchNightError as e:
        status = next((s for cls, s in STATUS_BY_ERROR.items() if isinstance(e, cls)), 400)
        return _resp(status, {"ok": False, "error": e.code, "message": str(e)})
    except ValueError:
        return _resp(400, {"ok": False, "error": "Invalid questionId"})
    except Exception:
        logger.exception("session_request_failed")
        return _resp(500, {"ok": False, "error": "Internal error"})
