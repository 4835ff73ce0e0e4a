"""Dialog outcome model and its snake_case wire encoding."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Union

WireValue = Union[str, List[str], Dict[str, str]]


class ResponseKind(str, Enum):
    NOTIFY_SUCCESS = "notify_success"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    SNOOZED = "snoozed"
    FEEDBACK = "feedback"
    ANSWER = "answer"
    ERROR = "error"


@dataclass(frozen=True)
class ResponseValue:
    """A single answer, a multi-select list, or keyed question answers."""

    kind: str
    value: WireValue

    @classmethod
    def single(cls, value: str) -> "ResponseValue":
        return cls(kind="string", value=str(value))

    @classmethod
    def multiple(cls, values: List[str]) -> "ResponseValue":
        return cls(kind="array", value=[str(item) for item in values])

    @classmethod
    def keyed(cls, answers: Dict[str, str]) -> "ResponseValue":
        return cls(kind="dictionary", value={str(k): str(v) for k, v in answers.items()})

    def to_wire(self) -> WireValue:
        if isinstance(self.value, list):
            return list(self.value)
        if isinstance(self.value, dict):
            return dict(self.value)
        return self.value

    @classmethod
    def from_wire(cls, raw: Any) -> "ResponseValue":
        if isinstance(raw, str):
            return cls.single(raw)
        if isinstance(raw, list) and all(isinstance(item, str) for item in raw):
            return cls.multiple(raw)
        if isinstance(raw, dict) and all(isinstance(v, str) for v in raw.values()):
            return cls.keyed(raw)
        raise ValueError("expected a string, a list of strings or a string map")


@dataclass(frozen=True)
class DialogResponse:
    """The one JSON object a process writes to stdout before exiting.

    Field order follows the wire order; `kind` is the model-side tag and is
    never serialized.
    """

    kind: ResponseKind
    response: Optional[ResponseValue] = None
    success: Optional[bool] = None
    cancelled: Optional[bool] = None
    dismissed: Optional[bool] = None
    comment: Optional[str] = None
    snoozed: Optional[bool] = None
    snooze_minutes: Optional[int] = None
    retry_after_seconds: Optional[int] = None
    feedback: Optional[bool] = None
    feedback_text: Optional[str] = None
    timeout: Optional[bool] = None
    message: Optional[str] = None
    completed_count: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def notify_success(cls) -> "DialogResponse":
        return cls(kind=ResponseKind.NOTIFY_SUCCESS, success=True)

    @classmethod
    def cancelled_response(cls) -> "DialogResponse":
        return cls(kind=ResponseKind.CANCELLED, cancelled=True, dismissed=True)

    @classmethod
    def timed_out(cls, seconds: int) -> "DialogResponse":
        return cls(
            kind=ResponseKind.TIMED_OUT,
            timeout=True,
            message="No response within {0} seconds".format(int(seconds)),
        )

    @classmethod
    def snoozed_response(cls, minutes: int, retry_after_seconds: int) -> "DialogResponse":
        return cls(
            kind=ResponseKind.SNOOZED,
            snoozed=True,
            snooze_minutes=int(minutes),
            retry_after_seconds=int(retry_after_seconds),
        )

    @classmethod
    def feedback_response(cls, text: str) -> "DialogResponse":
        return cls(kind=ResponseKind.FEEDBACK, feedback=True, feedback_text=str(text))

    @classmethod
    def answer(
        cls,
        value: ResponseValue,
        *,
        comment: Optional[str] = None,
        completed_count: Optional[int] = None,
    ) -> "DialogResponse":
        return cls(
            kind=ResponseKind.ANSWER,
            response=value,
            cancelled=False,
            dismissed=False,
            comment=comment or None,
            completed_count=completed_count,
        )

    @classmethod
    def single(cls, value: str, comment: Optional[str] = None) -> "DialogResponse":
        return cls.answer(ResponseValue.single(value), comment=comment)

    @classmethod
    def multiple(cls, values: List[str], comment: Optional[str] = None) -> "DialogResponse":
        return cls.answer(ResponseValue.multiple(values), comment=comment)

    @classmethod
    def questions(
        cls,
        answers: Dict[str, str],
        completed_count: int,
        comment: Optional[str] = None,
    ) -> "DialogResponse":
        return cls.answer(
            ResponseValue.keyed(answers),
            comment=comment,
            completed_count=completed_count,
        )

    @classmethod
    def error_response(cls, message: str) -> "DialogResponse":
        return cls(kind=ResponseKind.ERROR, error=str(message), cancelled=True, dismissed=True)

    @property
    def exit_code(self) -> int:
        return 1 if self.kind is ResponseKind.ERROR else 0

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for item in fields(self):
            if item.name == "kind":
                continue
            value = getattr(self, item.name)
            if value is None:
                continue
            if isinstance(value, ResponseValue):
                value = value.to_wire()
            payload[item.name] = value
        return payload

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "DialogResponse":
        values: Dict[str, Any] = {}
        for item in fields(cls):
            if item.name == "kind" or item.name not in data:
                continue
            values[item.name] = data[item.name]
        if "response" in values:
            values["response"] = ResponseValue.from_wire(values["response"])
        return cls(kind=_infer_kind(values), **values)


def _infer_kind(values: Dict[str, Any]) -> ResponseKind:
    if values.get("error") is not None:
        return ResponseKind.ERROR
    if values.get("success"):
        return ResponseKind.NOTIFY_SUCCESS
    if values.get("snoozed"):
        return ResponseKind.SNOOZED
    if values.get("feedback"):
        return ResponseKind.FEEDBACK
    if values.get("timeout"):
        return ResponseKind.TIMED_OUT
    if values.get("response") is not None:
        return ResponseKind.ANSWER
    return ResponseKind.CANCELLED
