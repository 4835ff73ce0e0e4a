"""Configuration loading, validation and persistence for ping-dialog."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

CONFIG_DIR_ENV = "PING_DIALOG_CONFIG_DIR"
CONFIG_DIR_NAME = "ping-dialog"
CONFIG_FILE_NAME = "config.toml"
LOGS_DIR_NAME = "logs"

ALLOWED_POSITIONS = ("center", "top-left", "top-right", "bottom-right")
ALLOWED_SOUNDS = ("none", "subtle", "pop", "chime")
ALLOWED_ROUTING_PREFERENCES = ("auto", "local", "remote")
ALLOWED_LOG_REDACTION = ("default", "none", "strict")

DEFAULT_DIALOG_ENABLED = True
DEFAULT_DIALOG_POSITION = "top-right"
DEFAULT_DIALOG_TIMEOUT_SEC = 600
MIN_DIALOG_TIMEOUT_SEC = 1
MAX_DIALOG_TIMEOUT_SEC = 3600
DEFAULT_DIALOG_SOUND = "none"
DEFAULT_ALWAYS_ON_TOP = True
DEFAULT_COOLDOWN = False
DEFAULT_COOLDOWN_DURATION_SEC = 1.0
MIN_COOLDOWN_DURATION_SEC = 0.1
MAX_COOLDOWN_DURATION_SEC = 3.0

DEFAULT_IDLE_THRESHOLD_SEC = 120
MIN_IDLE_THRESHOLD_SEC = 30
MAX_IDLE_THRESHOLD_SEC = 600
DEFAULT_ROUTING_PREFERENCE = "auto"

DEFAULT_LOGS_ENABLED = True
DEFAULT_LOGS_MAX_FILE_BYTES = 1024 * 1024
DEFAULT_LOGS_MAX_FILES = 3
DEFAULT_LOGS_REDACTION = "default"


class ConfigKeyError(ValueError):
    """Raised when a config key is not in `section.field` form."""


@dataclass
class DialogSettings:
    enabled: bool = DEFAULT_DIALOG_ENABLED
    position: str = DEFAULT_DIALOG_POSITION
    timeout: int = DEFAULT_DIALOG_TIMEOUT_SEC
    sound: str = DEFAULT_DIALOG_SOUND
    always_on_top: bool = DEFAULT_ALWAYS_ON_TOP
    cooldown: bool = DEFAULT_COOLDOWN
    cooldown_duration: float = DEFAULT_COOLDOWN_DURATION_SEC


@dataclass
class ThemeSettings:
    accent: str = ""

    @property
    def has_custom_accent(self) -> bool:
        return bool(self.accent)


@dataclass
class RoutingSettings:
    """Routing hints consumed by the calling agent, not by the dialog itself."""

    idle_threshold: int = DEFAULT_IDLE_THRESHOLD_SEC
    prefer: str = DEFAULT_ROUTING_PREFERENCE


@dataclass
class SnoozeState:
    """Snooze deadline read from and written to the `[snooze]` section."""

    until: Optional[datetime] = None

    def is_active(self, now: Optional[datetime] = None) -> bool:
        if self.until is None:
            return False
        return self.until > (now or utc_now())

    def remaining_seconds(self, now: Optional[datetime] = None) -> int:
        if self.until is None:
            return 0
        delta = self.until - (now or utc_now())
        return max(0, int(delta.total_seconds()))

    @classmethod
    def for_minutes(cls, minutes: int, now: Optional[datetime] = None) -> "SnoozeState":
        return cls(until=(now or utc_now()) + timedelta(minutes=int(minutes)))


@dataclass
class LogSettings:
    enabled: bool = DEFAULT_LOGS_ENABLED
    max_file_bytes: int = DEFAULT_LOGS_MAX_FILE_BYTES
    max_files: int = DEFAULT_LOGS_MAX_FILES
    redaction: str = DEFAULT_LOGS_REDACTION


@dataclass
class DialogConfig:
    """Parsed config.toml; every field has a built-in default."""

    dialog: DialogSettings = field(default_factory=DialogSettings)
    theme: ThemeSettings = field(default_factory=ThemeSettings)
    routing: RoutingSettings = field(default_factory=RoutingSettings)
    snooze: SnoozeState = field(default_factory=SnoozeState)
    logs: LogSettings = field(default_factory=LogSettings)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def resolve_config_root() -> Path:
    override = str(os.getenv(CONFIG_DIR_ENV) or "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / CONFIG_DIR_NAME


def resolve_config_path() -> Path:
    return resolve_config_root() / CONFIG_FILE_NAME


def resolve_logs_dir() -> Path:
    return resolve_config_root() / LOGS_DIR_NAME


_ESCAPES = {'"': '"', "\\": "\\", "n": "\n"}


def _closing_quote(raw: str) -> int:
    index = 1
    while index < len(raw):
        if raw[index] == "\\":
            index += 2
            continue
        if raw[index] == '"':
            return index
        index += 1
    return -1


def _strip_inline_comment(raw: str) -> str:
    if raw.startswith('"'):
        closing = _closing_quote(raw)
        if closing == -1:
            return raw
        return raw[: closing + 1]
    hash_index = raw.find("#")
    if hash_index == -1:
        return raw
    return raw[:hash_index].strip()


def _unescape(text: str) -> str:
    chars: List[str] = []
    index = 0
    while index < len(text):
        char = text[index]
        if char == "\\" and index + 1 < len(text) and text[index + 1] in _ESCAPES:
            chars.append(_ESCAPES[text[index + 1]])
            index += 2
            continue
        chars.append(char)
        index += 1
    return "".join(chars)


def _quote(value: str) -> str:
    text = str(value or "").replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return '"{0}"'.format(text)


def _strip_quotes(raw: str) -> str:
    if len(raw) >= 2 and raw.startswith('"') and raw.endswith('"') and _closing_quote(raw) == len(raw) - 1:
        return _unescape(raw[1:-1])
    return raw


def parse_config_sections(text: str) -> Dict[str, Dict[str, str]]:
    """Split config text into section -> field -> raw string value.

    Keys that appear before any section header are kept under "".
    A later duplicate key overrides an earlier one.
    """

    sections: Dict[str, Dict[str, str]] = {}
    current = ""
    for line in str(text or "").split("\n"):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        if trimmed.startswith("[") and trimmed.endswith("]"):
            current = trimmed[1:-1].strip()
            sections.setdefault(current, {})
            continue
        if "=" not in trimmed:
            continue
        key, _, raw_value = trimmed.partition("=")
        key = key.strip()
        if not key:
            continue
        value = _strip_quotes(_strip_inline_comment(raw_value.strip()))
        sections.setdefault(current, {})[key] = value
    return sections


def _safe_bool(value: Optional[str], default: bool) -> bool:
    normalized = str(value or "").strip().lower()
    if normalized == "true":
        return True
    if normalized == "false":
        return False
    return default


def _safe_clamped_int(value: Optional[str], default: int, low: int, high: int) -> int:
    try:
        converted = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return min(max(converted, low), high)


def _safe_clamped_float(value: Optional[str], default: float, low: float, high: float) -> float:
    try:
        converted = float(str(value).strip())
    except (TypeError, ValueError):
        return default
    if converted != converted:  # NaN
        return default
    return min(max(converted, low), high)


def _safe_positive_int(value: Optional[str], default: int) -> int:
    try:
        converted = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    if converted <= 0:
        return default
    return converted


def _safe_choice(value: Optional[str], allowed: tuple, default: str) -> str:
    if value is None:
        return default
    candidate = str(value)
    if candidate not in allowed:
        return default
    return candidate


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""

    text = str(value or "").strip()
    if not text:
        return None
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _parse_config_data(sections: Dict[str, Dict[str, str]]) -> DialogConfig:
    dialog = sections.get("dialog", {})
    theme = sections.get("theme", {})
    routing = sections.get("routing", {})
    snooze = sections.get("snooze", {})
    logs = sections.get("logs", {})

    return DialogConfig(
        dialog=DialogSettings(
            enabled=_safe_bool(dialog.get("enabled"), DEFAULT_DIALOG_ENABLED),
            position=_safe_choice(dialog.get("position"), ALLOWED_POSITIONS, DEFAULT_DIALOG_POSITION),
            timeout=_safe_clamped_int(
                dialog.get("timeout"),
                DEFAULT_DIALOG_TIMEOUT_SEC,
                MIN_DIALOG_TIMEOUT_SEC,
                MAX_DIALOG_TIMEOUT_SEC,
            ),
            sound=_safe_choice(dialog.get("sound"), ALLOWED_SOUNDS, DEFAULT_DIALOG_SOUND),
            always_on_top=_safe_bool(dialog.get("always_on_top"), DEFAULT_ALWAYS_ON_TOP),
            cooldown=_safe_bool(dialog.get("cooldown"), DEFAULT_COOLDOWN),
            cooldown_duration=_safe_clamped_float(
                dialog.get("cooldown_duration"),
                DEFAULT_COOLDOWN_DURATION_SEC,
                MIN_COOLDOWN_DURATION_SEC,
                MAX_COOLDOWN_DURATION_SEC,
            ),
        ),
        theme=ThemeSettings(accent=str(theme.get("accent") or "")),
        routing=RoutingSettings(
            idle_threshold=_safe_clamped_int(
                routing.get("idle_threshold"),
                DEFAULT_IDLE_THRESHOLD_SEC,
                MIN_IDLE_THRESHOLD_SEC,
                MAX_IDLE_THRESHOLD_SEC,
            ),
            prefer=_safe_choice(
                routing.get("prefer"),
                ALLOWED_ROUTING_PREFERENCES,
                DEFAULT_ROUTING_PREFERENCE,
            ),
        ),
        snooze=SnoozeState(until=parse_timestamp(snooze.get("until"))),
        logs=LogSettings(
            enabled=_safe_bool(logs.get("enabled"), DEFAULT_LOGS_ENABLED),
            max_file_bytes=_safe_positive_int(logs.get("max_file_bytes"), DEFAULT_LOGS_MAX_FILE_BYTES),
            max_files=_safe_positive_int(logs.get("max_files"), DEFAULT_LOGS_MAX_FILES),
            redaction=_safe_choice(
                str(logs.get("redaction") or "").strip().lower() or None,
                ALLOWED_LOG_REDACTION,
                DEFAULT_LOGS_REDACTION,
            ),
        ),
    )


def parse_config(text: str) -> DialogConfig:
    return _parse_config_data(parse_config_sections(text))


def read_config(path: Optional[Path] = None) -> DialogConfig:
    """Read the config file; a missing or unreadable file yields defaults."""

    config_file = Path(path) if path is not None else resolve_config_path()
    try:
        text = config_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return DialogConfig()
    return parse_config(text)


def _format_value(value: str) -> str:
    if value in {"true", "false"}:
        return value
    try:
        int(value)
        return value
    except ValueError:
        pass
    try:
        float(value)
        return value
    except ValueError:
        pass
    return _quote(value)


def _atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=str(path.parent), prefix=".config_", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape") as fp:
            fp.write(content)
            fp.flush()
            os.fsync(fp.fileno())
        os.replace(temp_path, str(path))
    except BaseException:
        Path(temp_path).unlink(missing_ok=True)
        raise


def write_config_value(key: str, value: str, path: Optional[Path] = None) -> Path:
    """Set `section.field = value`, preserving every other line of the file."""

    section, dot, field_name = str(key or "").strip().partition(".")
    section = section.strip()
    field_name = field_name.strip()
    if not dot or not section or not field_name:
        raise ConfigKeyError("config key must look like section.field: {0!r}".format(key))

    config_file = Path(path) if path is not None else resolve_config_path()
    # Bytes that are not UTF-8 are carried through unchanged.
    try:
        lines: List[str] = config_file.read_text(encoding="utf-8", errors="surrogateescape").split("\n")
    except FileNotFoundError:
        lines = []

    section_index: Optional[int] = None
    field_index: Optional[int] = None
    header = "[{0}]".format(section)
    for index, line in enumerate(lines):
        trimmed = line.strip()
        if section_index is None:
            if trimmed == header:
                section_index = index
            continue
        if trimmed.startswith("[") and trimmed.endswith("]"):
            break
        if trimmed.startswith("#") or "=" not in trimmed:
            continue
        if trimmed.split("=", 1)[0].strip() == field_name:
            field_index = index
            break

    line_content = "{0} = {1}".format(field_name, _format_value(str(value)))
    if field_index is not None:
        lines[field_index] = line_content
    elif section_index is not None:
        lines.insert(section_index + 1, line_content)
    else:
        while lines and lines[-1] == "":
            lines.pop()
        if lines:
            lines.append("")
        lines.extend([header, line_content, ""])

    _atomic_write_text(config_file, "\n".join(lines))
    return config_file


def record_snooze(
    minutes: int,
    path: Optional[Path] = None,
    now: Optional[datetime] = None,
) -> SnoozeState:
    until = (now or utc_now()) + timedelta(minutes=int(minutes))
    write_config_value("snooze.until", format_timestamp(until), path=path)
    return SnoozeState(until=until)


def render_config(config: DialogConfig) -> str:
    def _bool(value: bool) -> str:
        return str(bool(value)).lower()

    until = format_timestamp(config.snooze.until) if config.snooze.until is not None else ""
    lines = [
        "[dialog]",
        "enabled = {0}".format(_bool(config.dialog.enabled)),
        'position = "{0}"'.format(config.dialog.position),
        "timeout = {0}".format(config.dialog.timeout),
        'sound = "{0}"'.format(config.dialog.sound),
        "always_on_top = {0}".format(_bool(config.dialog.always_on_top)),
        "cooldown = {0}".format(_bool(config.dialog.cooldown)),
        "cooldown_duration = {0}".format(config.dialog.cooldown_duration),
        "",
        "[theme]",
        "accent = {0}".format(_quote(config.theme.accent)),
        "",
        "[routing]",
        "idle_threshold = {0}".format(config.routing.idle_threshold),
        'prefer = "{0}"'.format(config.routing.prefer),
        "",
        "[snooze]",
        'until = "{0}"'.format(until),
        "",
        "[logs]",
        "enabled = {0}".format(_bool(config.logs.enabled)),
        "max_file_bytes = {0}".format(config.logs.max_file_bytes),
        "max_files = {0}".format(config.logs.max_files),
        'redaction = "{0}"'.format(config.logs.redaction),
        "",
    ]
    return "\n".join(lines)
