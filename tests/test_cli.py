from __future__ import annotations

import json

from typer.testing import CliRunner

import pingdialog.cli
from pingdialog.config import read_config
from pingdialog.interaction.response import DialogResponse


def _combined_output(result) -> str:
    try:
        return result.stdout + result.stderr
    except ValueError:
        return result.stdout


def _last_json(result) -> dict:
    return json.loads(result.stdout.strip().splitlines()[-1])


def test_version_flag(isolated_env):
    runner = CliRunner()
    for flag in ("--version", "-v"):
        result = runner.invoke(pingdialog.cli.app, [flag])
        assert result.exit_code == 0
        assert result.stdout.strip() == "ping-dialog 2.0.0"


def test_no_mode_prints_usage_and_error_json(isolated_env):
    result = CliRunner().invoke(pingdialog.cli.app, [])

    assert result.exit_code == 1
    payload = _last_json(result)
    assert payload["cancelled"] is True
    assert payload["dismissed"] is True
    assert payload["error"].startswith("Usage: ping-dialog")
    assert "Usage: ping-dialog" in _combined_output(result)


def test_unknown_argument_is_a_usage_error(isolated_env):
    result = CliRunner().invoke(pingdialog.cli.app, ["--bogus"])

    assert result.exit_code == 1
    assert "error" in _last_json(result)


def test_invalid_json_exits_one(isolated_env):
    result = CliRunner().invoke(pingdialog.cli.app, ["--json", "{not json"])

    assert result.exit_code == 1
    assert _last_json(result) == {"error": "Invalid JSON input", "cancelled": True, "dismissed": True}


def test_empty_stdin_exits_one(isolated_env):
    result = CliRunner().invoke(pingdialog.cli.app, ["--stdin"], input="")

    assert result.exit_code == 1
    assert _last_json(result)["error"] == "No input received on stdin"


def test_disabled_config_exits_one(isolated_env):
    runner = CliRunner()
    runner.invoke(pingdialog.cli.app, ["config", "set", "dialog.enabled", "false"])

    result = runner.invoke(pingdialog.cli.app, ["--json", '{"message": "hi"}'])

    assert result.exit_code == 1
    assert "dialog.enabled true" in _last_json(result)["error"]


def test_stdin_request_runs_prompt(monkeypatch, isolated_env):
    captured = {}

    def fake_run_prompt(payload, config, presenter, **kwargs):
        captured["payload"] = payload
        captured["kwargs"] = kwargs
        return DialogResponse.single("yes")

    monkeypatch.setattr(pingdialog.cli, "run_prompt", fake_run_prompt)
    result = CliRunner().invoke(
        pingdialog.cli.app,
        ["--stdin"],
        input='{"message": "Deploy?", "input_type": "confirmation"}',
    )

    assert result.exit_code == 0
    assert _last_json(result) == {"response": "yes", "cancelled": False, "dismissed": False}
    assert captured["payload"].message == "Deploy?"
    assert captured["kwargs"]["accent"] == "#ebd255"
    assert captured["kwargs"]["guard"].path == isolated_env["pid_file"]


def test_json_wins_over_stdin(monkeypatch, isolated_env):
    seen = []

    def fake_run_prompt(payload, config, presenter, **kwargs):
        seen.append(payload.message)
        return DialogResponse.cancelled_response()

    monkeypatch.setattr(pingdialog.cli, "run_prompt", fake_run_prompt)
    result = CliRunner().invoke(
        pingdialog.cli.app,
        ["--stdin", "--json", '{"message": "inline"}'],
        input='{"message": "piped"}',
    )

    assert result.exit_code == 0
    assert seen == ["inline"]


def test_active_snooze_answers_without_dialog(isolated_env):
    runner = CliRunner()
    runner.invoke(pingdialog.cli.app, ["config", "set", "snooze.until", "2999-01-01T00:00:00Z"])

    result = runner.invoke(pingdialog.cli.app, ["--json", '{"message": "hi"}'])

    assert result.exit_code == 0
    payload = _last_json(result)
    assert payload["snoozed"] is True
    assert payload["retry_after_seconds"] > 0


def test_config_set_and_show(isolated_env):
    runner = CliRunner()

    result = runner.invoke(pingdialog.cli.app, ["config", "set", "dialog.timeout", "45"])
    assert result.exit_code == 0
    assert read_config(isolated_env["config_path"]).dialog.timeout == 45

    shown = runner.invoke(pingdialog.cli.app, ["config", "show"])
    assert shown.exit_code == 0
    assert "timeout = 45" in shown.stdout


def test_config_set_rejects_malformed_key(isolated_env):
    result = CliRunner().invoke(pingdialog.cli.app, ["config", "set", "timeout", "45"])

    assert result.exit_code == 1
    assert "section.field" in _combined_output(result)


def test_fatal_errors_are_logged(isolated_env):
    CliRunner().invoke(pingdialog.cli.app, ["--json", "[]"])

    log_file = isolated_env["config_root"] / "logs" / "debug.log.jsonl"
    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert records[-1]["level"] == "error"
    assert records[-1]["data"]["error_type"] == "PayloadDecodeError"


def test_stdin_that_is_not_utf8_is_invalid_json(isolated_env):
    result = CliRunner().invoke(pingdialog.cli.app, ["--stdin"], input=b'{"message": "caf\xe9"}')

    assert result.exit_code == 1
    assert _last_json(result) == {"error": "Invalid JSON input", "cancelled": True, "dismissed": True}


def test_unusable_marker_location_reports_error_json(monkeypatch, isolated_env, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file", encoding="utf-8")
    monkeypatch.setenv("PING_DIALOG_PID_FILE", str(blocker / "ping-dialog.pid"))

    result = CliRunner().invoke(pingdialog.cli.app, ["--json", '{"message": "hi"}'])

    assert result.exit_code == 1
    payload = _last_json(result)
    assert payload["error"].startswith("Could not create the dialog marker")
    assert payload["cancelled"] is True


def test_unexpected_failure_still_writes_error_json(monkeypatch, isolated_env):
    def broken_run_prompt(payload, config, presenter, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(pingdialog.cli, "run_prompt", broken_run_prompt)
    result = CliRunner().invoke(pingdialog.cli.app, ["--json", '{"message": "hi"}'])

    assert result.exit_code == 1
    assert _last_json(result)["error"] == "Unexpected error: boom"
    log_file = isolated_env["config_root"] / "logs" / "debug.log.jsonl"
    record = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
    assert record["data"]["error_type"] == "RuntimeError"
