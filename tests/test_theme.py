from __future__ import annotations

from pingdialog.config import ThemeSettings
from pingdialog.ui.theme import DEFAULT_ACCENT, accent_for_theme, parse_hex, read_host_theme, resolve_accent


def test_parse_hex():
    assert parse_hex("#EBD255") == "#ebd255"
    assert parse_hex("112233") == "#112233"
    assert parse_hex("#12345") is None
    assert parse_hex("zzzzzz") is None


def test_explicit_accent_wins(tmp_path):
    host = tmp_path / "config.csv"
    host.write_text("last_theme,forest\n", encoding="utf-8")

    assert resolve_accent(ThemeSettings(accent="#FF0000"), host_theme_file=host) == "#ff0000"


def test_host_theme_is_used_when_accent_missing_or_invalid(tmp_path):
    host = tmp_path / "config.csv"
    host.write_text("window_width,80\nlast_theme,sunrise\n", encoding="utf-8")

    assert read_host_theme(host) == "sunrise"
    assert resolve_accent(ThemeSettings(), host_theme_file=host) == "#f58232"
    assert resolve_accent(ThemeSettings(accent="nope"), host_theme_file=host) == "#f58232"


def test_default_accent_without_host_file(tmp_path):
    assert resolve_accent(ThemeSettings(), host_theme_file=tmp_path / "missing.csv") == DEFAULT_ACCENT


def test_theme_table():
    assert accent_for_theme("forest") == "#5ab464"
    assert accent_for_theme("pastel") == "#8ecae6"
    assert accent_for_theme("unknown") == DEFAULT_ACCENT
