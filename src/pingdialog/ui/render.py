"""Presentation helpers for ping-dialog terminal output."""

from __future__ import annotations

import io
from typing import List, Optional, TextIO

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from pingdialog.interaction.types import DialogType, PresentationRequest, Question
from pingdialog.ui.answers import SNOOZE_PRESETS, Questionnaire, default_choice
from pingdialog.ui.theme import DEFAULT_ACCENT

_NOTICE_PREFIX = {
    "info": "Info",
    "warn": "Warning",
    "error": "Error",
    "success": "Success",
}

_INPUT_HINTS = {
    DialogType.CONFIRMATION: "Answer y/n (Enter = yes)",
    DialogType.CHOICE: "Type a number or an option label",
    DialogType.MULTI_SELECT: "Type numbers or labels separated by commas",
    DialogType.TEXT: "Type your answer and press Enter",
    DialogType.SECURE_TEXT: "Type your answer (hidden) and press Enter, Ctrl-D cancels",
}


def render_notice(level: str, text: str) -> str:
    prefix = _NOTICE_PREFIX.get(level, "Info")
    return "{0}: {1}".format(prefix, text)


def _is_tty(stream: TextIO, forced: Optional[bool]) -> bool:
    if forced is not None:
        return forced
    isatty = getattr(stream, "isatty", None)
    if callable(isatty):
        try:
            return bool(isatty())
        except (OSError, ValueError):
            return False
    return False


def _option_lines(options: List[str], descriptions: List[str], default: Optional[str]) -> List[str]:
    lines = []
    for index, option in enumerate(options):
        marker = "*" if default is not None and option == default else " "
        line = "{0} {1}. {2}".format(marker, index + 1, option)
        description = descriptions[index] if index < len(descriptions) else ""
        if description:
            line += " - {0}".format(description)
        lines.append(line)
    return lines


def dialog_body_lines(request: PresentationRequest) -> List[str]:
    lines = []
    if request.project:
        badge = "[{0}]".format(request.project)
        if request.project_path:
            badge += " {0}".format(request.project_path)
        lines.append(badge)
        lines.append("")
    lines.extend(request.message.splitlines() or [""])

    if request.dialog_type in (DialogType.CHOICE, DialogType.MULTI_SELECT) and request.options:
        default = None
        if request.dialog_type is DialogType.CHOICE:
            default = default_choice(request.options, request.default_selection)
        lines.append("")
        lines.extend(_option_lines(request.options, request.descriptions, default))
    if request.dialog_type is DialogType.TEXT and request.default_value:
        lines.append("")
        lines.append("Default: {0}".format(request.default_value))

    lines.append("")
    hint = _INPUT_HINTS.get(request.dialog_type)
    if request.dialog_type is DialogType.QUESTIONS:
        hint = "{0} questions ({1} mode)".format(len(request.questions), request.mode.value)
    if hint:
        lines.append(hint)
    lines.append(
        "Times out in {0}s. /snooze <{1}> /feedback <text> /comment <text> /cancel".format(
            request.timeout_seconds,
            "|".join(str(m) for m in SNOOZE_PRESETS),
        )
    )
    return lines


def question_lines(question: Question, questionnaire: Questionnaire) -> List[str]:
    lines = ["({0}) {1}".format(questionnaire.progress(), question.label)]
    if question.options:
        lines.extend(_option_lines(question.options, [], None))
    previous = questionnaire.answers.get(question.question_id)
    if previous and question.question_type is not DialogType.SECURE_TEXT:
        lines.append("Current: {0}".format(previous.replace("\n", ", ")))
    lines.append("Enter skips, /back goes back")
    return lines


def _write_plain(lines: List[str], title: str, stream: TextIO) -> None:
    width = max([len(title)] + [len(line) for line in lines])
    stream.write("+-{0}-+\n".format(title.ljust(width, "-")))
    for line in lines:
        stream.write("| {0} |\n".format(line.ljust(width)))
    stream.write("+-{0}-+\n".format("-" * width))
    stream.flush()


def render_dialog_panel(
    request: PresentationRequest,
    stream: TextIO,
    is_tty: Optional[bool] = None,
) -> None:
    title = request.title or "ping-dialog"
    lines = dialog_body_lines(request)

    if _is_tty(stream, is_tty):
        console = Console(file=stream, highlight=False, soft_wrap=True)
        console.print(
            Panel(
                Text("\n".join(lines)),
                title=title,
                border_style=request.accent or DEFAULT_ACCENT,
                box=box.ROUNDED,
            )
        )
        return

    _write_plain(lines, title, stream)


def render_question(
    question: Question,
    questionnaire: Questionnaire,
    stream: TextIO,
    accent: str = "",
    is_tty: Optional[bool] = None,
) -> None:
    lines = question_lines(question, questionnaire)
    if _is_tty(stream, is_tty):
        console = Console(file=stream, highlight=False, soft_wrap=True)
        console.print(Text(lines[0], style="bold {0}".format(accent or DEFAULT_ACCENT)))
        for line in lines[1:]:
            console.print(Text(line))
        return

    for line in lines:
        stream.write(line + "\n")
    stream.flush()


def render_hint(text: str, stream: TextIO, is_tty: Optional[bool] = None) -> None:
    if _is_tty(stream, is_tty):
        console = Console(file=stream, highlight=False, soft_wrap=True)
        console.print(Text(text, style="dim"))
        return
    stream.write(text + "\n")
    stream.flush()


def preview_dialog_panel(request: PresentationRequest) -> str:
    """Helper for tests that need a deterministic text snapshot."""

    stream = io.StringIO()
    render_dialog_panel(request, stream=stream, is_tty=False)
    return stream.getvalue()
