from __future__ import annotations


class QuizError(ValueError):
    """Base class for recoverable command failures.

    Every public command either succeeds or raises exactly one of the
    subclasses below; callers map ``code`` to a user-facing message.
    """

    code = "quiz_error"
    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidTransition(QuizError):
    code = "invalid_transition"
    status_code = 409
    default_message = "Command is not valid in the current session state"


class SessionNotFound(QuizError):
    code = "session_not_found"
    status_code = 404
    default_message = "Session not found"


class SessionAlreadyStarted(QuizError):
    code = "session_already_started"
    status_code = 409
    default_message = "Session has already started"


class SessionEnded(QuizError):
    code = "session_ended"
    status_code = 409
    default_message = "Session has ended"


class InvalidName(QuizError):
    code = "invalid_name"
    default_message = "Display name must be 1-20 characters"


class UnknownParticipant(QuizError):
    code = "unknown_participant"
    status_code = 403
    default_message = "Participant is not part of this session"


class RoundClosed(QuizError):
    code = "round_closed"
    status_code = 409
    default_message = "Round is closed"


class DuplicateAnswer(QuizError):
    code = "duplicate_answer"
    status_code = 409
    default_message = "Answer already submitted for this round"


class InvalidOption(QuizError):
    code = "invalid_option"
    default_message = "Selected option is out of range"


class QuizNotFound(QuizError):
    code = "quiz_not_found"
    status_code = 404
    default_message = "Quiz not found"
