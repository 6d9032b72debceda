"""
Participant session state machine.

A session walks one participant from the entry screen through every question
in order:

    ENTRY --start(name, group)--> ANSWERING(0)
    ANSWERING(k) --answer(code)--> ANSWERING(k+1) ... --> COMPLETED

``reset`` returns to ENTRY from any state.  Each accepted transition is saved
through the participant repository before the session commits to it, so a
failed save leaves the session where it was.  Rejected actions change
nothing and save nothing.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

from .errors import (
    InvalidOption,
    InvalidParticipant,
    InvalidTransition,
    OutOfSequence,
    ParticipantNotFound,
)
from .events import EventLog, ParticipantUpdated
from .models import AnswerSet, Participant
from .questions import Questionnaire

logger = logging.getLogger(__name__)


class SessionState(Enum):
    ENTRY = "entry"
    ANSWERING = "answering"
    COMPLETED = "completed"


class Session:
    """
    Owns one participant's progression.

    Args:
        questionnaire: Questions to walk through.
        repo: Persistence port with ``save(participant)``, ``load(id)`` and
            ``delete(id)``.
        events: Where ``ParticipantUpdated`` notifications go.
        participant: Existing participant to continue with; use ``resume``
            to load one by id.
    """

    def __init__(
        self,
        questionnaire: Questionnaire,
        repo,
        events: Optional[EventLog] = None,
        participant: Optional[Participant] = None,
    ) -> None:
        self.questionnaire = questionnaire
        self.repo = repo
        self.events = events or EventLog()
        self.participant = participant or Participant.blank()
        self.state = self._derive_state(self.participant)

    @classmethod
    def resume(
        cls,
        participant_id: str,
        questionnaire: Questionnaire,
        repo,
        events: Optional[EventLog] = None,
    ) -> "Session":
        participant = repo.load(participant_id)
        if participant is None:
            raise ParticipantNotFound(participant_id)
        return cls(questionnaire, repo, events=events, participant=participant)

    def _derive_state(self, participant: Participant) -> SessionState:
        if participant.group is None:
            return SessionState.ENTRY
        answered = list(participant.answers.keys())
        if sorted(answered) != self.questionnaire.ids[: len(answered)]:
            raise InvalidParticipant(f"Participant {participant.id} has answers out of order")
        if participant.completed or len(answered) >= len(self.questionnaire):
            return SessionState.COMPLETED
        return SessionState.ANSWERING

    @property
    def current_index(self) -> int:
        """Zero-based index of the pending question (N once completed)."""
        return len(self.participant.answers)

    @property
    def current_question(self):
        if self.state is not SessionState.ANSWERING:
            return None
        return self.questionnaire.question_at(self.current_index)

    @property
    def answers(self) -> AnswerSet:
        return self.participant.answers

    @property
    def completed(self) -> bool:
        return self.participant.completed

    def _commit(self, participant: Participant, state: SessionState) -> None:
        self.repo.save(participant)
        self.participant = participant
        self.state = state
        self.events.publish(ParticipantUpdated(participant.id))

    def start(self, name: str, group: Any) -> Participant:
        """Create the participant record and move to the first question."""
        if self.state is not SessionState.ENTRY:
            raise InvalidTransition(f"Cannot start from {self.state.value}")
        participant = Participant.create(name, group)
        self._commit(participant, SessionState.ANSWERING)
        logger.info("participant_started: %s group=%s", participant.id, participant.group.value)
        return participant

    def answer(self, option: str, question_id: Optional[int] = None) -> Participant:
        """
        Record the answer for the pending question.

        Args:
            option: Chosen option code.
            question_id: Question the client believes it is answering.  A
                retry for an already recorded answer (same question, same
                code) is accepted as a no-op.
        Raises:
            InvalidTransition: not in the answering state.
            OutOfSequence: ``question_id`` is not the pending question.
            InvalidOption: ``option`` is not one of the question's codes.
        """
        answers = self.participant.answers
        if question_id in answers and answers[question_id] == option:
            logger.debug("answer_retry_ignored: %s q=%s", self.participant.id, question_id)
            return self.participant

        if self.state is not SessionState.ANSWERING:
            raise InvalidTransition(f"Cannot answer from {self.state.value}")

        question = self.questionnaire.question_at(self.current_index)
        if question_id is not None and question_id != question.id:
            raise OutOfSequence(question.id, question_id)
        if not self.questionnaire.is_valid_option(question.id, option):
            raise InvalidOption(question.id, option)

        participant = self.participant.answered(question.id, option, len(self.questionnaire))
        state = SessionState.COMPLETED if participant.completed else SessionState.ANSWERING
        self._commit(participant, state)
        if participant.completed:
            logger.info("participant_completed: %s", participant.id)
        return participant

    def reset(self) -> Participant:
        """Abandon the current participant and return to the entry screen."""
        previous = self.participant
        if previous.group is not None:
            self.repo.delete(previous.id)
            self.events.publish(ParticipantUpdated(previous.id))
            logger.info("participant_reset: %s", previous.id)
        self.participant = Participant.blank()
        self.state = SessionState.ENTRY
        return self.participant
