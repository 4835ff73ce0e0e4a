"""Interpret terminal input lines for each dialog type.

Everything here is pure: the presenter feeds lines in and maps the returned
`LineOutcome` onto session triggers or re-prompts.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from pingdialog.interaction.response import ResponseValue
from pingdialog.interaction.types import DialogType, PresentationRequest, Question, QuestionMode

SNOOZE_PRESETS = (1, 5, 15, 30, 60)
COMMANDS = ("/cancel", "/snooze", "/feedback", "/comment", "/back", "/done", "/help")

_YES = {"y", "yes"}
_NO = {"n", "no"}


class AnswerError(ValueError):
    """Input line that does not answer the current prompt."""


class LineAction(str, Enum):
    ANSWER = "answer"
    CANCEL = "cancel"
    SNOOZE = "snooze"
    FEEDBACK = "feedback"
    PROMPT = "prompt"


@dataclass(frozen=True)
class LineOutcome:
    action: LineAction
    value: Optional[ResponseValue] = None
    completed_count: Optional[int] = None
    minutes: int = 0
    text: str = ""

    @classmethod
    def prompt(cls, text: str = "") -> "LineOutcome":
        return cls(action=LineAction.PROMPT, text=text)


def interpret_confirmation(line: str) -> str:
    normalized = line.strip().lower()
    # Enter confirms.
    if not normalized or normalized in _YES:
        return "yes"
    if normalized in _NO:
        return "no"
    raise AnswerError("Answer yes or no")


def _match_option(token: str, options: List[str]) -> str:
    token = token.strip()
    if token.isdigit():
        index = int(token) - 1
        if 0 <= index < len(options):
            return options[index]
        raise AnswerError("Pick a number between 1 and {0}".format(len(options)))
    for option in options:
        if option.lower() == token.lower():
            return option
    raise AnswerError("Unknown option: {0}".format(token))


def default_choice(options: List[str], default_selection: Optional[str]) -> str:
    if default_selection and default_selection in options:
        return default_selection
    return options[0]


def interpret_choice(line: str, options: List[str], default_selection: Optional[str] = None) -> str:
    if not options:
        raise AnswerError("No options to choose from")
    if not line.strip():
        return default_choice(options, default_selection)
    return _match_option(line, options)


def interpret_multi_select(line: str, options: List[str]) -> List[str]:
    """Comma separated numbers or labels; result keeps the option order."""

    if not options:
        raise AnswerError("No options to choose from")
    picked = set()
    for token in line.split(","):
        if token.strip():
            picked.add(_match_option(token, options))
    return [option for option in options if option in picked]


def interpret_text(line: str, default_value: Optional[str] = None) -> str:
    text = line.rstrip("\r\n")
    if text.strip():
        return text
    if default_value:
        return default_value
    raise AnswerError("An answer is required")


def _question_accepts_many(question: Question) -> bool:
    return question.question_type is DialogType.MULTI_SELECT or (
        question.question_type is DialogType.CHOICE and question.multi_select
    )


def interpret_question(line: str, question: Question) -> Optional[str]:
    """Answer for one questionnaire step, or None when the step is skipped."""

    if not line.strip():
        return None
    if question.question_type is DialogType.CONFIRMATION:
        return interpret_confirmation(line)
    if _question_accepts_many(question) and question.options:
        return "\n".join(interpret_multi_select(line, question.options))
    if question.question_type is DialogType.CHOICE and question.options:
        return _match_option(line, question.options)
    return line.rstrip("\r\n")


class Questionnaire:
    """Walks wizard or accordion questions one line at a time.

    Wizard mode finishes after the last step; `/back` revisits the previous
    one. Accordion mode also finishes early on `/done` once anything is
    answered. Empty lines skip a step and keep an earlier answer.
    """

    def __init__(self, questions: List[Question], mode: QuestionMode) -> None:
        self._questions = list(questions)
        self._mode = mode
        self._index = 0
        self._answers: Dict[str, str] = {}

    @property
    def index(self) -> int:
        return self._index

    @property
    def answers(self) -> Dict[str, str]:
        return dict(self._answers)

    @property
    def current(self) -> Optional[Question]:
        if 0 <= self._index < len(self._questions):
            return self._questions[self._index]
        return None

    def progress(self) -> str:
        return "{0}/{1}".format(min(self._index + 1, len(self._questions)), len(self._questions))

    def back(self) -> LineOutcome:
        if self._index == 0:
            return LineOutcome.prompt("Already at the first question")
        self._index -= 1
        return LineOutcome.prompt()

    def done(self) -> LineOutcome:
        if self._mode is not QuestionMode.ACCORDION:
            return LineOutcome.prompt("/done is only available in accordion mode")
        return self._finish()

    def accept(self, line: str) -> LineOutcome:
        question = self.current
        if question is None:
            return self._finish()
        try:
            answer = interpret_question(line, question)
        except AnswerError as exc:
            return LineOutcome.prompt(str(exc))
        if answer is not None:
            self._answers[question.question_id] = answer
        self._index += 1
        if self._index < len(self._questions):
            return LineOutcome.prompt()
        return self._finish()

    def _finish(self) -> LineOutcome:
        if not self._answers and self._questions:
            self._index = 0
            return LineOutcome.prompt("Answer at least one question")
        return LineOutcome(
            action=LineAction.ANSWER,
            value=ResponseValue.keyed(self._answers),
            completed_count=len(self._answers),
        )


class AnswerInterpreter:
    """Turns raw lines into outcomes for one presentation request."""

    def __init__(self, request: PresentationRequest) -> None:
        self._request = request
        self._comment = ""
        self._questionnaire: Optional[Questionnaire] = None
        if request.dialog_type is DialogType.QUESTIONS:
            self._questionnaire = Questionnaire(request.questions, request.mode)

    @property
    def comment(self) -> Optional[str]:
        return self._comment or None

    @property
    def questionnaire(self) -> Optional[Questionnaire]:
        return self._questionnaire

    @property
    def expects_secret(self) -> bool:
        if self._request.dialog_type is DialogType.SECURE_TEXT:
            return True
        if self._questionnaire is not None and self._questionnaire.current is not None:
            return self._questionnaire.current.question_type is DialogType.SECURE_TEXT
        return False

    def handle(self, line: str) -> LineOutcome:
        stripped = line.strip()
        # Secure input is never parsed as a command.
        if stripped.startswith("/") and not self.expects_secret:
            return self._handle_command(stripped)
        try:
            return self._handle_answer(line)
        except AnswerError as exc:
            return LineOutcome.prompt(str(exc))

    def _handle_command(self, stripped: str) -> LineOutcome:
        name, _, argument = stripped.partition(" ")
        name = name.lower()
        argument = argument.strip()

        if name == "/cancel":
            return LineOutcome(action=LineAction.CANCEL)
        if name == "/snooze":
            if not argument:
                return LineOutcome.prompt(
                    "Snooze for how long? /snooze <minutes> (e.g. {0})".format(
                        ", ".join(str(m) for m in SNOOZE_PRESETS)
                    )
                )
            if not argument.isdigit() or int(argument) <= 0:
                return LineOutcome.prompt("Snooze minutes must be a positive number")
            return LineOutcome(action=LineAction.SNOOZE, minutes=int(argument))
        if name == "/feedback":
            if not argument:
                return LineOutcome.prompt("Usage: /feedback <text>")
            return LineOutcome(action=LineAction.FEEDBACK, text=argument)
        if name == "/comment":
            self._comment = argument
            return LineOutcome.prompt("Comment saved" if argument else "Comment cleared")
        if name == "/back":
            if self._questionnaire is None:
                return LineOutcome.prompt("/back is only available for questions")
            return self._questionnaire.back()
        if name == "/done":
            if self._questionnaire is None:
                return LineOutcome.prompt("/done is only available for questions")
            return self._questionnaire.done()
        if name == "/help":
            return LineOutcome.prompt("Commands: {0}".format(" ".join(COMMANDS)))
        return LineOutcome.prompt("Unknown command: {0}".format(name))

    def _handle_answer(self, line: str) -> LineOutcome:
        request = self._request
        dialog_type = request.dialog_type
        if self._questionnaire is not None:
            return self._questionnaire.accept(line)
        if dialog_type is DialogType.CONFIRMATION:
            value = ResponseValue.single(interpret_confirmation(line))
        elif dialog_type is DialogType.CHOICE:
            value = ResponseValue.single(
                interpret_choice(line, request.options, request.default_selection)
            )
        elif dialog_type is DialogType.MULTI_SELECT:
            value = ResponseValue.multiple(interpret_multi_select(line, request.options))
        else:
            value = ResponseValue.single(interpret_text(line, request.default_value))
        return LineOutcome(action=LineAction.ANSWER, value=value)
