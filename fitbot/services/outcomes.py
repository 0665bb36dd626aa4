from dataclasses import dataclass, field
from typing import Any, Optional, Union


NOT_AUTHENTICATED = "not_authenticated"
INCOMPLETE_ANSWERS = "incomplete_answers"
INVALID_ANSWERS = "invalid_answers"


@dataclass(frozen=True)
class ValidationError:
    """A local, recoverable validation failure of one question."""
    question_id: str
    message: str


@dataclass(frozen=True)
class Success:
    data: Any = field(default=None)

    @property
    def message(self) -> str:
        return "Program generated successfully"


@dataclass(frozen=True)
class RetryableFailure:
    message: str


@dataclass(frozen=True)
class FatalFailure:
    message: str
    code: Optional[str] = None

    @property
    def is_not_authenticated(self) -> bool:
        return self.code == NOT_AUTHENTICATED


SubmissionOutcome = Union[Success, RetryableFailure, FatalFailure]


def not_authenticated() -> FatalFailure:
    return FatalFailure(
        message="Please sign in to generate your fitness program",
        code=NOT_AUTHENTICATED,
    )


class ProgramApiError(Exception):
    """ Raised inside the submission pipeline for HTTP or application level rejections. """
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
