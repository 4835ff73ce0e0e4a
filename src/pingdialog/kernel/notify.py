"""Best-effort system notification delivery for `notify` requests."""

from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional

APP_NAME = "ping-dialog"
NOTIFICATION_SOUND = "Ping"


@dataclass
class NotificationResult:
    backend: str
    ok: bool
    status: str
    detail: str

    def as_dict(self) -> Dict[str, object]:
        return {
            "backend": self.backend,
            "ok": bool(self.ok),
            "status": self.status,
            "detail": self.detail,
        }


def _applescript_string(text: str) -> str:
    escaped = str(text).replace("\\", "\\\\").replace('"', '\\"')
    return '"{0}"'.format(escaped)


def build_osascript_command(message: str, title: str, play_sound: bool) -> List[str]:
    script = "display notification {0} with title {1}".format(
        _applescript_string(message),
        _applescript_string(title),
    )
    if play_sound:
        script += " sound name {0}".format(_applescript_string(NOTIFICATION_SOUND))
    return ["osascript", "-e", script]


def build_notify_send_command(message: str, title: str) -> List[str]:
    return ["notify-send", "--app-name", APP_NAME, title, message]


def _select_command(message: str, title: str, play_sound: bool, platform: str) -> Optional[List[str]]:
    if platform == "darwin":
        return build_osascript_command(message, title, play_sound)
    if shutil.which("notify-send"):
        return build_notify_send_command(message, title)
    return None


def send_notification(
    message: str,
    title: Optional[str] = None,
    play_sound: bool = False,
    *,
    platform: Optional[str] = None,
) -> NotificationResult:
    """Post a desktop notification. Never raises; failures are reported."""

    resolved_title = str(title or "").strip() or APP_NAME
    command = _select_command(message, resolved_title, play_sound, platform or sys.platform)
    if command is None:
        return NotificationResult(
            backend="none",
            ok=False,
            status="missing",
            detail="no notification backend available",
        )

    backend = command[0]
    try:
        completed = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=8,
            check=False,
        )
    except FileNotFoundError:
        return NotificationResult(
            backend=backend,
            ok=False,
            status="missing",
            detail="{0} not found".format(backend),
        )
    except (OSError, subprocess.SubprocessError) as exc:
        return NotificationResult(backend=backend, ok=False, status="error", detail=str(exc))

    if completed.returncode == 0:
        return NotificationResult(backend=backend, ok=True, status="ok", detail="notification delivered")

    detail = (completed.stderr or completed.stdout or "unknown notification error").strip()
    return NotificationResult(backend=backend, ok=False, status="error", detail=detail)
