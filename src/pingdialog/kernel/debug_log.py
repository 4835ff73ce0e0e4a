"""Structured debug log writer with size-based rotation and redaction."""

from __future__ import annotations

import json
import os
import re
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from pingdialog.config import LogSettings


_REDACTED = "***REDACTED***"
_SENSITIVE_KEY_RE = re.compile(
    r"(password|secret|token|authorization|cookie|api[_-]?key|access[_-]?key|private[_-]?key)",
    re.IGNORECASE,
)
_BEARER_RE = re.compile(r"(?i)\bbearer\s+([^\s,;]+)")
_KEY_VALUE_RE = re.compile(
    r"(?i)\b(api[_-]?key|access[_-]?key|token|secret|authorization|cookie|private[_-]?key)\b\s*[:=]\s*([^\s,;]+)"
)
_SK_KEY_RE = re.compile(r"\bsk-[A-Za-z0-9]{8,}\b")

_WARN_EVENTS = {
    "dialog.trigger_rejected",
    "dialog.snooze_persist_failed",
    "dialog.teardown_failed",
    "notification.failed",
}

EventSink = Callable[[str, Dict[str, Any]], None]


def now_ms() -> int:
    return int(time.time() * 1000)


class DebugLogWriter:
    """Best-effort JSONL debug log writer with rotation."""

    def __init__(
        self,
        *,
        logs_dir: Path,
        enabled: bool,
        max_file_bytes: int = 1024 * 1024,
        max_files: int = 3,
        redaction: str = "default",
        invocation_id: str = "",
    ) -> None:
        self._logs_dir = Path(logs_dir)
        self._enabled = bool(enabled)
        self._max_file_bytes = max(1, int(max_file_bytes or 0))
        self._max_files = max(1, int(max_files or 0))
        self._redaction = str(redaction or "default").strip().lower()
        if self._redaction not in {"none", "default", "strict"}:
            self._redaction = "default"
        self._invocation_id = invocation_id or "pid-{0}".format(os.getpid())
        self._write_errors = 0
        self._lock = threading.Lock()
        if self._enabled:
            try:
                self._logs_dir.mkdir(parents=True, exist_ok=True)
            except OSError:
                self._write_errors += 1

    @classmethod
    def from_settings(cls, logs_dir: Path, settings: LogSettings) -> "DebugLogWriter":
        return cls(
            logs_dir=logs_dir,
            enabled=settings.enabled,
            max_file_bytes=settings.max_file_bytes,
            max_files=settings.max_files,
            redaction=settings.redaction,
        )

    @property
    def active_log_file(self) -> Path:
        return self._logs_dir / "debug.log.jsonl"

    @property
    def write_errors(self) -> int:
        with self._lock:
            return self._write_errors

    def write_event(self, event_type: str, data: Dict[str, Any]) -> None:
        """Event-sink entry point used by the session and the prompt flow."""

        level = "warn" if event_type in _WARN_EVENTS else "info"
        self.write_entry(
            level=level,
            component=event_type.split(".", 1)[0],
            kind="event",
            event_type=event_type,
            message="event:{0}".format(event_type),
            data=data,
        )

    def as_sink(self) -> EventSink:
        return self.write_event

    def write_entry(
        self,
        *,
        level: str,
        component: str,
        kind: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        event_type: Optional[str] = None,
        ts_ms: Optional[int] = None,
    ) -> None:
        if not self._enabled:
            return

        record = {
            "ts_ms": int(ts_ms if ts_ms is not None else now_ms()),
            "level": str(level or "info"),
            "component": str(component or "dialog"),
            "kind": str(kind or "diagnostic"),
            "invocation_id": self._invocation_id,
            "event_type": str(event_type or ""),
            "message": str(message or ""),
            "data": dict(data or {}),
        }

        if self._redaction != "none":
            record["message"] = self._redact_text(record["message"])
            if self._redaction == "strict":
                record["data"] = self._strict_redact(record["data"])
            else:
                record["data"] = self._redact_payload(record["data"])

        with self._lock:
            try:
                line = json.dumps(
                    record,
                    ensure_ascii=True,
                    separators=(",", ":"),
                    default=str,
                )
                payload = (line + "\n").encode("utf-8")
                self._logs_dir.mkdir(parents=True, exist_ok=True)
                self._rotate_if_needed_locked(len(payload))
                with self.active_log_file.open("ab") as fp:
                    fp.write(payload)
            except OSError:
                self._write_errors += 1

    def _rotate_if_needed_locked(self, incoming_size: int) -> None:
        current_size = 0
        if self.active_log_file.exists():
            current_size = int(self.active_log_file.stat().st_size)
        if current_size + int(incoming_size) <= self._max_file_bytes:
            return
        self._rotate_locked()

    def _rotate_locked(self) -> None:
        self._rotated_file(self._max_files).unlink(missing_ok=True)

        for index in range(self._max_files - 1, 0, -1):
            src = self._rotated_file(index)
            if src.exists():
                src.replace(self._rotated_file(index + 1))

        if self.active_log_file.exists():
            self.active_log_file.replace(self._rotated_file(1))

    def _rotated_file(self, index: int) -> Path:
        return Path("{0}.{1}".format(self.active_log_file, index))

    def _redact_payload(self, value: Any) -> Any:
        if isinstance(value, dict):
            out: Dict[str, Any] = {}
            for key, item in value.items():
                if _SENSITIVE_KEY_RE.search(str(key)):
                    out[key] = _REDACTED
                else:
                    out[key] = self._redact_payload(item)
            return out
        if isinstance(value, list):
            return [self._redact_payload(item) for item in value]
        if isinstance(value, str):
            return self._redact_text(value)
        return value

    def _strict_redact(self, value: Any) -> Any:
        # Keeps structure and sentinel values that describe the event, masks the rest.
        if isinstance(value, dict):
            out: Dict[str, Any] = {}
            for key, item in value.items():
                if _SENSITIVE_KEY_RE.search(str(key)):
                    out[key] = _REDACTED
                elif key in {"trigger", "source", "kind", "reason", "dialog_type"}:
                    out[key] = item
                elif isinstance(item, (dict, list)):
                    out[key] = self._strict_redact(item)
                else:
                    out[key] = _REDACTED
            return out
        if isinstance(value, list):
            return [self._strict_redact(item) for item in value]
        return _REDACTED

    @staticmethod
    def _redact_text(text: str) -> str:
        if not text:
            return text
        masked = _BEARER_RE.sub("Bearer {0}".format(_REDACTED), text)
        masked = _KEY_VALUE_RE.sub(
            lambda m: "{0}={1}".format(m.group(1), _REDACTED),
            masked,
        )
        return _SK_KEY_RE.sub(_REDACTED, masked)
