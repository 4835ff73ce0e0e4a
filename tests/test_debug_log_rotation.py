from __future__ import annotations

import json

from pingdialog.config import LogSettings
from pingdialog.kernel.debug_log import DebugLogWriter


def _read_records(writer: DebugLogWriter) -> list:
    lines = writer.active_log_file.read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines]


def test_oversized_log_shifts_into_numbered_files(tmp_path):
    logs_dir = tmp_path / "logs"
    writer = DebugLogWriter(logs_dir=logs_dir, enabled=True, max_file_bytes=300, max_files=2, redaction="none")

    for attempt in range(12):
        writer.write_event("dialog.trigger_rejected", {"attempt": attempt, "reason": "r" * 30})

    names = sorted(p.name for p in logs_dir.iterdir())
    assert names == ["debug.log.jsonl", "debug.log.jsonl.1", "debug.log.jsonl.2"]
    for path in logs_dir.iterdir():
        assert 0 < path.stat().st_size <= 300

    # The newest record lives in the active file, older ones were shifted out.
    newest = _read_records(writer)[-1]
    assert newest["data"]["attempt"] == 11
    rotated = [json.loads(line) for line in (logs_dir / "debug.log.jsonl.1").read_text(encoding="utf-8").splitlines()]
    assert max(r["data"]["attempt"] for r in rotated) < newest["data"]["attempt"]


def test_debug_log_fail_open_tracks_write_errors(tmp_path):
    blocked_path = tmp_path / "not-a-dir"
    blocked_path.write_text("file", encoding="utf-8")
    writer = DebugLogWriter(
        logs_dir=blocked_path,
        enabled=True,
        max_file_bytes=1024,
        max_files=2,
        redaction="default",
    )

    writer.write_event("dialog.armed", {"dialog_type": "text"})

    assert writer.write_errors >= 1


def test_disabled_writer_writes_nothing(tmp_path):
    writer = DebugLogWriter.from_settings(tmp_path / "logs", LogSettings(enabled=False))

    writer.write_event("dialog.armed", {"dialog_type": "text"})

    assert not (tmp_path / "logs").exists()
    assert writer.write_errors == 0


def test_event_sink_levels_and_default_redaction(tmp_path):
    writer = DebugLogWriter(logs_dir=tmp_path, enabled=True)
    sink = writer.as_sink()

    sink("dialog.resolved", {"trigger": "answer", "response": "token=abc123", "api_key": "k"})
    sink("dialog.trigger_rejected", {"trigger": "timeout", "reason": "already_resolved"})

    first, second = _read_records(writer)
    assert first["level"] == "info"
    assert first["component"] == "dialog"
    assert first["event_type"] == "dialog.resolved"
    assert first["data"]["response"] == "token=***REDACTED***"
    assert first["data"]["api_key"] == "***REDACTED***"
    assert second["level"] == "warn"


def test_strict_redaction_keeps_only_event_shape(tmp_path):
    writer = DebugLogWriter(logs_dir=tmp_path, enabled=True, redaction="strict")

    writer.write_event("dialog.resolved", {"trigger": "answer", "response": "prod", "source": "presenter"})

    (record,) = _read_records(writer)
    assert record["data"] == {"trigger": "answer", "response": "***REDACTED***", "source": "presenter"}
