"""Business errors raised by the topic, participation, points and settlement services.

Every error is caller-visible and non-retryable except Unavailable, which is
raised only after transient storage failures have exhausted their retries.
"""


class ClutchError(Exception):
    """Base exception for all engine errors."""

    code = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class NotFound(ClutchError):
    """Topic or account missing."""

    code = "not_found"
    status_code = 404


class ValidationError(ClutchError):
    """Malformed options or stake."""

    code = "validation_error"


class InvalidStateTransition(ClutchError):
    """Topic status change that is not a forward transition."""

    code = "invalid_state_transition"
    status_code = 409


class TopicNotActive(ClutchError):
    """Participation attempted on a topic that is no longer active."""

    code = "topic_not_active"
    status_code = 409


class InvalidChoice(ClutchError):
    """Chosen or declared outcome is not one of the topic's options."""

    code = "invalid_choice"


class InsufficientBalance(ClutchError):
    """Stake exceeds the user's current balance."""

    code = "insufficient_balance"


class AlreadyParticipated(ClutchError):
    """User already has a participation record for the topic."""

    code = "already_participated"
    status_code = 409


class AlreadySettled(ClutchError):
    """Topic has already been revealed."""

    code = "already_settled"
    status_code = 409


class Forbidden(ClutchError):
    """Actor lacks the privilege for the operation."""

    code = "forbidden"
    status_code = 403


class Unavailable(ClutchError):
    """Storage kept failing transiently."""

    code = "unavailable"
    status_code = 503
