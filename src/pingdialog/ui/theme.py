"""Accent colour resolution for terminal rendering."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Tuple

from pingdialog.config import ThemeSettings

DEFAULT_ACCENT = "#ebd255"
HOST_THEME_FILE = Path("~/.strayfiles/config.csv")

THEME_ACCENTS: Dict[str, Tuple[int, int, int]] = {
    "dark": (235, 210, 85),
    "light": (210, 185, 70),
    "pastel": (142, 202, 230),
    "sunrise": (245, 130, 50),
    "midnight": (235, 210, 85),
    "forest": (90, 180, 100),
}


def _rgb_hex(rgb: Tuple[int, int, int]) -> str:
    return "#{0:02x}{1:02x}{2:02x}".format(*rgb)


def parse_hex(value: str) -> Optional[str]:
    cleaned = str(value or "").strip()
    if cleaned.startswith("#"):
        cleaned = cleaned[1:]
    if len(cleaned) != 6:
        return None
    try:
        int(cleaned, 16)
    except ValueError:
        return None
    return "#" + cleaned.lower()


def read_host_theme(path: Optional[Path] = None) -> Optional[str]:
    """Return `last_theme` from the host app's `key,value` file, if any."""

    theme_file = Path(path or HOST_THEME_FILE).expanduser()
    try:
        contents = theme_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    for line in contents.splitlines():
        key, sep, value = line.partition(",")
        if sep and key == "last_theme":
            value = value.strip()
            return value or None
    return None


def accent_for_theme(theme: str) -> str:
    rgb = THEME_ACCENTS.get(theme)
    if rgb is None:
        return DEFAULT_ACCENT
    return _rgb_hex(rgb)


def resolve_accent(settings: ThemeSettings, host_theme_file: Optional[Path] = None) -> str:
    if settings.has_custom_accent:
        parsed = parse_hex(settings.accent)
        if parsed is not None:
            return parsed
    theme = read_host_theme(host_theme_file)
    if theme is not None:
        return accent_for_theme(theme)
    return DEFAULT_ACCENT
