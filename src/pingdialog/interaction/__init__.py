"""Request/response contracts and the dialog session state machine."""

from .types import DialogType, InputPayload, PresentationRequest, Question, QuestionMode
from .errors import (
    AlreadyActiveError,
    DialogDisabledError,
    DialogError,
    MarkerError,
    PayloadDecodeError,
    UsageError,
)
from .response import DialogResponse, ResponseKind, ResponseValue
from .session import DialogPresenter, DialogSession, SessionState

__all__ = [
    "DialogType",
    "InputPayload",
    "PresentationRequest",
    "Question",
    "QuestionMode",
    "AlreadyActiveError",
    "DialogDisabledError",
    "DialogError",
    "MarkerError",
    "PayloadDecodeError",
    "UsageError",
    "DialogResponse",
    "ResponseKind",
    "ResponseValue",
    "DialogPresenter",
    "DialogSession",
    "SessionState",
]
