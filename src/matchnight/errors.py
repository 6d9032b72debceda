"""
Error taxonomy for MatchNight.

Every rejected action raises a subclass of ``MatchNightError``.  The pure
scoring/matching functions never raise these for well-formed, completed
participants; they are precondition checks performed at the edges.
"""

from __future__ import annotations


class MatchNightError(Exception):
    """Base class for all MatchNight errors."""

    code = "MatchNightError"


class QuestionnaireError(MatchNightError):
    """The questionnaire configuration data is malformed."""

    code = "QuestionnaireError"


class InvalidOption(MatchNightError):
    """An answer used an option code outside the question's option set."""

    code = "InvalidOption"

    def __init__(self, question_id: int, option: str) -> None:
        super().__init__(f"Option {option!r} is not valid for question {question_id}")
        self.question_id = question_id
        self.option = option


class OutOfSequence(MatchNightError):
    """An answer was tagged for a question other than the pending one."""

    code = "OutOfSequence"

    def __init__(self, expected: int | None, got: int) -> None:
        super().__init__(f"Expected an answer for question {expected}, got {got}")
        self.expected = expected
        self.got = got


class InvalidParticipant(MatchNightError):
    """Participant data (name, group, answers) failed validation."""

    code = "InvalidParticipant"


class InvalidTransition(MatchNightError):
    """The requested transition is not allowed from the current state."""

    code = "InvalidTransition"


class NoEligibleParticipants(MatchNightError):
    """One of the groups has no completed participants."""

    code = "NoEligibleParticipants"

    def __init__(self, group_a: int, group_b: int) -> None:
        super().__init__(
            f"Need at least one completed participant per group (A={group_a}, B={group_b})"
        )
        self.group_a = group_a
        self.group_b = group_b


class IncompleteProfile(MatchNightError):
    """A participant without a completed questionnaire was offered for matching."""

    code = "IncompleteProfile"

    def __init__(self, participant_id: str) -> None:
        super().__init__(f"Participant {participant_id} has not completed the questionnaire")
        self.participant_id = participant_id


class MatchGenerationInProgress(MatchNightError):
    """Another operator currently holds the match replacement lock."""

    code = "MatchGenerationInProgress"


class ParticipantNotFound(MatchNightError):
    """No stored participant has the given id."""

    code = "ParticipantNotFound"

    def __init__(self, participant_id: str) -> None:
        super().__init__(f"Participant {participant_id} not found")
        self.participant_id = participant_id
