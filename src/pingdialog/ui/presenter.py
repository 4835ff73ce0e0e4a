"""Terminal presenter: rich panel on stderr, answers from the controlling tty."""

from __future__ import annotations

import os
import select
import sys
import termios
import threading
import time
from typing import Callable, List, Optional, Protocol, TextIO

from pingdialog.interaction.session import DialogSession
from pingdialog.interaction.types import PresentationRequest
from pingdialog.ui.answers import AnswerInterpreter, LineAction, LineOutcome
from pingdialog.ui.render import render_dialog_panel, render_hint, render_question

TTY_PATH = "/dev/tty"
POLL_INTERVAL_SEC = 0.2


class LineSource(Protocol):
    def open(self) -> bool: ...

    def readline(self, stop: threading.Event, secret: bool = False) -> Optional[str]: ...

    def close(self) -> None: ...


class TtyLineSource:
    """Line reader over the controlling terminal.

    `readline` polls with `select` so a stop request is noticed within one
    poll interval; it returns None once stopped and raises EOFError on EOF.
    """

    def __init__(self, path: str = TTY_PATH, poll_interval: float = POLL_INTERVAL_SEC) -> None:
        self._path = path
        self._poll_interval = poll_interval
        self._fd: Optional[int] = None
        self._buffer = b""
        self._saved_attrs: Optional[List] = None

    def open(self) -> bool:
        try:
            self._fd = os.open(self._path, os.O_RDONLY | os.O_NOCTTY)
        except OSError:
            self._fd = None
            return False
        return True

    def readline(self, stop: threading.Event, secret: bool = False) -> Optional[str]:
        fd = self._fd
        if fd is None:
            raise EOFError("terminal is not open")
        if secret:
            self._echo_off(fd)
        try:
            while b"\n" not in self._buffer:
                if stop.is_set():
                    return None
                ready, _, _ = select.select([fd], [], [], self._poll_interval)
                if not ready:
                    continue
                chunk = os.read(fd, 4096)
                if not chunk:
                    raise EOFError("terminal closed")
                self._buffer += chunk
        finally:
            if secret:
                self._restore_echo(fd)
        line, _, self._buffer = self._buffer.partition(b"\n")
        return line.decode("utf-8", errors="replace")

    def close(self) -> None:
        fd = self._fd
        self._fd = None
        if fd is None:
            return
        self._restore_echo(fd)
        try:
            os.close(fd)
        except OSError:
            return

    def _echo_off(self, fd: int) -> None:
        try:
            attrs = termios.tcgetattr(fd)
        except termios.error:
            return
        self._saved_attrs = list(attrs)
        attrs[3] = attrs[3] & ~termios.ECHO
        termios.tcsetattr(fd, termios.TCSANOW, attrs)

    def _restore_echo(self, fd: int) -> None:
        saved = self._saved_attrs
        self._saved_attrs = None
        if saved is None:
            return
        try:
            termios.tcsetattr(fd, termios.TCSANOW, saved)
        except termios.error:
            return


class TerminalPresenter:
    """Renders one request and forwards the human's input to the session."""

    def __init__(
        self,
        *,
        stream: Optional[TextIO] = None,
        line_source: Optional[LineSource] = None,
        clock: Callable[[], float] = time.monotonic,
        is_tty: Optional[bool] = None,
    ) -> None:
        self._stream = stream if stream is not None else sys.stderr
        self._source: LineSource = line_source if line_source is not None else TtyLineSource()
        self._clock = clock
        self._is_tty = is_tty
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def present(self, request: PresentationRequest, session: DialogSession) -> None:
        if not self._source.open():
            render_hint("No terminal available; dialog cancelled", self._stream, self._is_tty)
            session.cancel(source="presenter:no_tty")
            return

        if request.sound != "none":
            self._stream.write("\a")
            self._stream.flush()
        render_dialog_panel(request, self._stream, self._is_tty)

        thread = threading.Thread(
            target=self._read_loop,
            args=(request, session),
            name="ping-dialog-input",
            daemon=True,
        )
        with self._lock:
            self._thread = thread
        thread.start()

    def teardown(self) -> None:
        self._stop.set()
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=POLL_INTERVAL_SEC * 5)
        self._source.close()

    def _read_loop(self, request: PresentationRequest, session: DialogSession) -> None:
        interpreter = AnswerInterpreter(request)
        started = self._clock()
        self._show_question(interpreter, request)

        while not self._stop.is_set():
            try:
                line = self._source.readline(self._stop, secret=interpreter.expects_secret)
            except (EOFError, OSError):
                session.cancel(source="presenter:eof")
                return
            if line is None:
                return
            if request.cooldown_seconds > 0 and self._clock() - started < request.cooldown_seconds:
                render_hint("Input ignored during cooldown", self._stream, self._is_tty)
                continue
            if self._dispatch(interpreter.handle(line), interpreter, session):
                return
            self._show_question(interpreter, request)

    def _dispatch(self, outcome: LineOutcome, interpreter: AnswerInterpreter, session: DialogSession) -> bool:
        """Forward a resolving outcome to the session; True once resolved."""

        action = outcome.action
        if action is LineAction.ANSWER and outcome.value is not None:
            return session.submit(
                outcome.value,
                comment=interpreter.comment,
                completed_count=outcome.completed_count,
            )
        if action is LineAction.CANCEL:
            return session.cancel()
        if action is LineAction.SNOOZE:
            return session.snooze(outcome.minutes)
        if action is LineAction.FEEDBACK:
            return session.feedback(outcome.text)
        if outcome.text:
            render_hint(outcome.text, self._stream, self._is_tty)
        return False

    def _show_question(self, interpreter: AnswerInterpreter, request: PresentationRequest) -> None:
        questionnaire = interpreter.questionnaire
        if questionnaire is None or questionnaire.current is None:
            return
        render_question(
            questionnaire.current,
            questionnaire,
            self._stream,
            accent=request.accent,
            is_tty=self._is_tty,
        )
