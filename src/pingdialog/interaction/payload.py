"""Decode the JSON request payload into an `InputPayload`."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Type, TypeVar

from pingdialog.interaction.errors import PayloadDecodeError
from pingdialog.interaction.types import (
    MAX_OPTIONS,
    DialogType,
    InputPayload,
    Question,
    QuestionMode,
)

_EnumT = TypeVar("_EnumT", DialogType, QuestionMode)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _lookup(data: Dict[str, Any], name: str) -> Any:
    """Read a snake_case wire field, accepting the camelCase spelling too."""

    if name in data:
        return data[name]
    return data.get(_camel(name))


def _optional_str(data: Dict[str, Any], name: str) -> Optional[str]:
    value = _lookup(data, name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise PayloadDecodeError("Invalid JSON input: '{0}' must be a string".format(name))
    return value


def _optional_bool(data: Dict[str, Any], name: str) -> Optional[bool]:
    value = _lookup(data, name)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise PayloadDecodeError("Invalid JSON input: '{0}' must be a boolean".format(name))
    return value


def _optional_int(data: Dict[str, Any], name: str) -> Optional[int]:
    value = _lookup(data, name)
    if value is None:
        return None
    if isinstance(value, bool):
        raise PayloadDecodeError("Invalid JSON input: '{0}' must be an integer".format(name))
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        raise PayloadDecodeError("Invalid JSON input: '{0}' must be an integer".format(name))
    return value


def _optional_str_list(data: Dict[str, Any], name: str) -> Optional[List[str]]:
    value = _lookup(data, name)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise PayloadDecodeError(
            "Invalid JSON input: '{0}' must be a list of strings".format(name)
        )
    return list(value)


def _optional_enum(data: Dict[str, Any], name: str, enum_cls: Type[_EnumT]) -> Optional[_EnumT]:
    raw = _optional_str(data, name)
    if raw is None:
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        raise PayloadDecodeError(
            "Invalid JSON input: unsupported {0} '{1}'".format(name, raw)
        ) from None


def _decode_question(index: int, raw: Any) -> Question:
    if not isinstance(raw, dict):
        raise PayloadDecodeError("Invalid JSON input: questions[{0}] must be an object".format(index))
    question_id = _optional_str(raw, "id")
    label = _optional_str(raw, "label")
    question_type = _optional_enum(raw, "type", DialogType)
    if question_id is None or label is None or question_type is None:
        raise PayloadDecodeError(
            "Invalid JSON input: questions[{0}] requires id, label and type".format(index)
        )
    return Question(
        question_id=question_id,
        label=label,
        question_type=question_type,
        options=_optional_str_list(raw, "options") or [],
        multi_select=bool(_optional_bool(raw, "multi_select")),
    )


def payload_from_dict(data: Dict[str, Any]) -> InputPayload:
    message = data.get("message")
    if not isinstance(message, str):
        raise PayloadDecodeError("Invalid JSON input: 'message' is required")

    options = _optional_str_list(data, "options") or []
    if len(options) > MAX_OPTIONS:
        raise PayloadDecodeError(
            "Invalid JSON input: at most {0} options are supported".format(MAX_OPTIONS)
        )
    descriptions = _optional_str_list(data, "descriptions")
    if descriptions is not None and len(descriptions) != len(options):
        raise PayloadDecodeError(
            "Invalid JSON input: 'descriptions' must match 'options' one to one"
        )

    raw_questions = _lookup(data, "questions")
    if raw_questions is not None and not isinstance(raw_questions, list):
        raise PayloadDecodeError("Invalid JSON input: 'questions' must be a list")
    questions = [_decode_question(i, item) for i, item in enumerate(raw_questions or [])]

    return InputPayload(
        message=message,
        title=_optional_str(data, "title"),
        input_type=_optional_enum(data, "input_type", DialogType),
        options=options,
        descriptions=descriptions,
        default_selection=_optional_str(data, "default_selection"),
        default_value=_optional_str(data, "default_value"),
        mode=_optional_enum(data, "mode", QuestionMode),
        questions=questions,
        sound=bool(_optional_bool(data, "sound")),
        timeout=_optional_int(data, "timeout"),
        project=_optional_str(data, "project"),
        project_path=_optional_str(data, "project_path"),
    )


def decode_payload(text: str) -> InputPayload:
    """Parse the raw request text; every failure is a `PayloadDecodeError`."""

    try:
        data = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise PayloadDecodeError("Invalid JSON input") from exc
    if not isinstance(data, dict):
        raise PayloadDecodeError("Invalid JSON input: expected a JSON object")
    return payload_from_dict(data)
