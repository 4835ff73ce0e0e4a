"""Machine-wide single-active-dialog guard backed by a pid marker file."""

from __future__ import annotations

import os
import signal
import tempfile
import threading
from pathlib import Path
from types import FrameType
from typing import Any, Callable, Dict, Optional

from pingdialog.interaction.errors import AlreadyActiveError, MarkerError

PID_FILE_ENV = "PING_DIALOG_PID_FILE"
PID_FILE_NAME = "ping-dialog.pid"
HANDLED_SIGNALS = (signal.SIGTERM, signal.SIGINT)

SignalCallback = Callable[[int], None]


def resolve_pid_file() -> Path:
    override = str(os.getenv(PID_FILE_ENV) or "").strip()
    if override:
        return Path(override).expanduser()
    return Path(tempfile.gettempdir()) / PID_FILE_NAME


def read_marker_pid(path: Path) -> Optional[int]:
    try:
        text = Path(path).read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError):
        return None
    if not text.isdigit():
        return None
    return int(text)


def process_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but belongs to another user.
        return True
    except OSError:
        return False
    return True


class SingletonGuard:
    """Acquire/release discipline around the marker file.

    `release()` runs on normal exit (context manager) and from the SIGTERM /
    SIGINT handlers installed by `acquire()`; after releasing, a signal is
    forwarded to `on_signal` when set, otherwise the process exits.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        *,
        pid: Optional[int] = None,
        install_signal_handlers: bool = True,
        on_signal: Optional[SignalCallback] = None,
    ) -> None:
        self._path = Path(path) if path is not None else resolve_pid_file()
        self._pid = int(pid if pid is not None else os.getpid())
        self._install_signal_handlers = install_signal_handlers
        self.on_signal = on_signal
        self._lock = threading.RLock()
        self._held = False
        self._previous_handlers: Dict[int, Any] = {}

    @property
    def path(self) -> Path:
        return self._path

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        # Handlers go in first so a signal during acquisition already
        # reaches on_signal.
        if self._install_signal_handlers:
            self._register_signal_handlers()
        try:
            with self._lock:
                if self._held:
                    return
                try:
                    self._create_marker()
                except OSError as exc:
                    raise MarkerError(str(exc)) from exc
        except BaseException:
            self._restore_signal_handlers()
            raise

    def _create_marker(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # Two attempts: the second one follows removal of a stale marker.
        for _ in range(2):
            try:
                fd = os.open(str(self._path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                existing = read_marker_pid(self._path)
                if existing is not None and existing != self._pid and process_alive(existing):
                    raise AlreadyActiveError(existing) from None
                self._path.unlink(missing_ok=True)
                continue
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                fp.write(str(self._pid))
            self._held = True
            return
        raise AlreadyActiveError(read_marker_pid(self._path) or 0)

    def release(self) -> None:
        # Reentrant lock: a signal handler may call this while the main
        # thread is already inside it.
        with self._lock:
            if self._held:
                self._held = False
                if read_marker_pid(self._path) == self._pid:
                    try:
                        self._path.unlink(missing_ok=True)
                    except OSError:
                        # Left behind, the marker is stale once this pid exits.
                        pass
        self._restore_signal_handlers()

    def __enter__(self) -> "SingletonGuard":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def _register_signal_handlers(self) -> None:
        if self._previous_handlers or threading.current_thread() is not threading.main_thread():
            return
        for signum in HANDLED_SIGNALS:
            self._previous_handlers[signum] = signal.getsignal(signum)
            signal.signal(signum, self._handle_signal)

    def _restore_signal_handlers(self) -> None:
        if not self._previous_handlers:
            return
        if threading.current_thread() is not threading.main_thread():
            return
        previous = dict(self._previous_handlers)
        self._previous_handlers.clear()
        for signum, handler in previous.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)

    def _handle_signal(self, signum: int, frame: Optional[FrameType]) -> None:
        del frame
        callback = self.on_signal
        self.release()
        if callback is not None:
            callback(signum)
            return
        raise SystemExit(0)
