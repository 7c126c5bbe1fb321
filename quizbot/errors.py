# quizbot/errors.py
from typing import List, Optional


class QuizBotError(Exception):
    """Base class for errors reported to the operator."""
    status_code = 400


class InvalidRequestError(QuizBotError):
    """Missing or malformed control input."""


class BusyError(QuizBotError):
    """A session is already running or scheduled."""
    status_code = 409


class NotRunningError(QuizBotError):
    status_code = 404


class NoPendingQuestionError(QuizBotError):
    status_code = 404


class InvalidAnswerError(QuizBotError):
    """The human answer is not one of the pending question's options."""

    def __init__(self, answer: str, valid_options: List[str]):
        super().__init__(f"Answer '{answer}' is not one of the options")
        self.valid_options = valid_options


class AnswerSourceError(Exception):
    """The quiz service call failed or returned something unusable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CredentialRejectedError(AnswerSourceError):
    """The quiz service refused the bearer credential (401/403)."""
