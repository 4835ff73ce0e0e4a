from __future__ import annotations

import io
import queue
import threading

from pingdialog.config import DialogConfig, parse_config
from pingdialog.interaction.payload import payload_from_dict
from pingdialog.interaction.response import ResponseKind
from pingdialog.interaction.session import DialogSession
from pingdialog.interaction.types import DialogType, InputPayload
from pingdialog.ui.presenter import TerminalPresenter
from pingdialog.ui.render import preview_dialog_panel


class ScriptedLineSource:
    def __init__(self, lines, available=True):
        self._lines: "queue.Queue" = queue.Queue()
        for line in lines:
            self._lines.put(line)
        self.available = available
        self.closed = False
        self.secret_reads = []

    def open(self):
        return self.available

    def readline(self, stop: threading.Event, secret: bool = False):
        self.secret_reads.append(secret)
        while not stop.is_set():
            try:
                line = self._lines.get(timeout=0.05)
            except queue.Empty:
                continue
            if line is EOFError:
                raise EOFError()
            return line
        return None

    def close(self):
        self.closed = True


def _run(payload, lines, config=None, clock=None, **kwargs):
    stream = io.StringIO()
    source = ScriptedLineSource(lines, **kwargs)
    presenter_kwargs = {"stream": stream, "line_source": source, "is_tty": False}
    if clock is not None:
        presenter_kwargs["clock"] = clock
    presenter = TerminalPresenter(**presenter_kwargs)
    session = DialogSession(payload, config or DialogConfig(), presenter, snooze_writer=lambda minutes: None)
    session.arm()
    return session.wait(poll_interval=0.05), stream.getvalue(), source


def test_confirmation_answer_with_comment():
    response, output, source = _run(
        InputPayload(message="Deploy to prod?", input_type=DialogType.CONFIRMATION),
        ["/comment after lunch", "n"],
    )

    assert response.to_wire() == {
        "response": "no",
        "cancelled": False,
        "dismissed": False,
        "comment": "after lunch",
    }
    assert "Deploy to prod?" in output
    assert "Comment saved" in output
    assert source.closed is True


def test_invalid_choice_reprompts_then_answers():
    response, output, _ = _run(
        InputPayload(message="Pick", options=["red", "blue"]),
        ["7", "blue"],
    )

    assert response.to_wire()["response"] == "blue"
    assert "Pick a number between 1 and 2" in output


def test_snooze_and_feedback_commands_resolve():
    snoozed, _, _ = _run(InputPayload(message="x"), ["/snooze 30"])
    assert snoozed.to_wire() == {"snoozed": True, "snooze_minutes": 30, "retry_after_seconds": 1800}

    feedback, _, _ = _run(InputPayload(message="x"), ["/feedback wrong repo"])
    assert feedback.to_wire() == {"feedback": True, "feedback_text": "wrong repo"}


def test_eof_cancels():
    response, _, _ = _run(InputPayload(message="x"), [EOFError])
    assert response.kind is ResponseKind.CANCELLED


def test_missing_terminal_cancels():
    response, output, _ = _run(InputPayload(message="x"), [], available=False)
    assert response.kind is ResponseKind.CANCELLED
    assert "No terminal available" in output


def test_cooldown_discards_early_input():
    ticks = iter([0.0, 0.1, 5.0])
    config = parse_config("[dialog]\ncooldown = true\ncooldown_duration = 1.0\n")

    response, output, _ = _run(
        InputPayload(message="Sure?", input_type=DialogType.CONFIRMATION),
        ["y", "n"],
        config=config,
        clock=lambda: next(ticks),
    )

    assert response.to_wire()["response"] == "no"
    assert "Input ignored during cooldown" in output


def test_sound_rings_terminal_bell():
    _, output, _ = _run(InputPayload(message="x"), ["/cancel"], config=parse_config('[dialog]\nsound = "pop"\n'))
    assert output.startswith("\a")


def test_secure_text_reads_without_echo():
    response, output, source = _run(
        InputPayload(message="Token?", input_type=DialogType.SECURE_TEXT),
        ["hunter2"],
    )
    assert response.to_wire()["response"] == "hunter2"
    assert source.secret_reads == [True]
    assert "hunter2" not in output


def test_wizard_questions_render_progress():
    payload = payload_from_dict(
        {
            "message": "Setup",
            "input_type": "questions",
            "questions": [
                {"id": "a", "label": "First", "type": "text"},
                {"id": "b", "label": "Second", "type": "confirmation"},
            ],
        }
    )
    response, output, _ = _run(payload, ["alpha", "y"])

    assert response.to_wire()["response"] == {"a": "alpha", "b": "yes"}
    assert response.to_wire()["completed_count"] == 2
    assert "(1/2) First" in output
    assert "(2/2) Second" in output


def test_panel_preview_lists_options_and_default():
    session_request = DialogSession(
        InputPayload(
            message="Pick a branch",
            title="Branch",
            options=["main", "dev"],
            descriptions=["stable", "nightly"],
            default_selection="dev",
            project="strayfiles",
        ),
        DialogConfig(),
        TerminalPresenter(line_source=ScriptedLineSource([])),
    ).request

    text = preview_dialog_panel(session_request)
    assert "Branch" in text
    assert "[strayfiles]" in text
    assert "  1. main - stable" in text
    assert "* 2. dev - nightly" in text
