"""Typed request contracts shared by the decoder, session and presenters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pingdialog.config import MAX_DIALOG_TIMEOUT_SEC, MIN_DIALOG_TIMEOUT_SEC, DialogConfig

MAX_OPTIONS = 20


class DialogType(str, Enum):
    """Input kinds; values match the `input_type` wire field."""

    NOTIFY = "notify"
    CONFIRMATION = "confirmation"
    CHOICE = "choice"
    MULTI_SELECT = "multi_select"
    TEXT = "text"
    SECURE_TEXT = "secure_text"
    QUESTIONS = "questions"


class QuestionMode(str, Enum):
    WIZARD = "wizard"
    ACCORDION = "accordion"


@dataclass(frozen=True)
class Question:
    """One step of a wizard/accordion questionnaire."""

    question_id: str
    label: str
    question_type: DialogType
    options: List[str] = field(default_factory=list)
    multi_select: bool = False


@dataclass(frozen=True)
class InputPayload:
    """Decoded request received from the calling agent."""

    message: str
    title: Optional[str] = None
    input_type: Optional[DialogType] = None
    options: List[str] = field(default_factory=list)
    descriptions: Optional[List[str]] = None
    default_selection: Optional[str] = None
    default_value: Optional[str] = None
    mode: Optional[QuestionMode] = None
    questions: List[Question] = field(default_factory=list)
    sound: bool = False
    timeout: Optional[int] = None
    project: Optional[str] = None
    project_path: Optional[str] = None

    @property
    def resolved_type(self) -> DialogType:
        if self.input_type is not None:
            return self.input_type
        if self.options:
            return DialogType.CHOICE
        return DialogType.TEXT

    @property
    def resolved_mode(self) -> QuestionMode:
        return self.mode or QuestionMode.WIZARD

    def resolved_timeout(self, config_timeout: int) -> int:
        value = self.timeout if self.timeout is not None else config_timeout
        return min(max(int(value), MIN_DIALOG_TIMEOUT_SEC), MAX_DIALOG_TIMEOUT_SEC)

    def description_for(self, index: int) -> str:
        if not self.descriptions or index >= len(self.descriptions):
            return ""
        return self.descriptions[index]


@dataclass(frozen=True)
class PresentationRequest:
    """Everything a presenter needs to render one dialog."""

    dialog_type: DialogType
    message: str
    timeout_seconds: int
    title: Optional[str] = None
    options: List[str] = field(default_factory=list)
    descriptions: List[str] = field(default_factory=list)
    default_selection: Optional[str] = None
    default_value: Optional[str] = None
    mode: QuestionMode = QuestionMode.WIZARD
    questions: List[Question] = field(default_factory=list)
    project: Optional[str] = None
    project_path: Optional[str] = None
    sound: str = "none"
    cooldown_seconds: float = 0.0
    accent: str = ""

    @classmethod
    def from_payload(
        cls,
        payload: InputPayload,
        config: DialogConfig,
        *,
        accent: str = "",
    ) -> "PresentationRequest":
        return cls(
            dialog_type=payload.resolved_type,
            message=payload.message,
            timeout_seconds=payload.resolved_timeout(config.dialog.timeout),
            title=payload.title,
            options=list(payload.options),
            descriptions=[payload.description_for(i) for i in range(len(payload.options))],
            default_selection=payload.default_selection,
            default_value=payload.default_value,
            mode=payload.resolved_mode,
            questions=list(payload.questions),
            project=payload.project,
            project_path=payload.project_path,
            sound=config.dialog.sound,
            cooldown_seconds=config.dialog.cooldown_duration if config.dialog.cooldown else 0.0,
            accent=accent,
        )
