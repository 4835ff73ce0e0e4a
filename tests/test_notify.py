from __future__ import annotations

import subprocess

from pingdialog.kernel.notify import build_osascript_command, send_notification


def _completed(returncode: int = 0, stdout: str = "", stderr: str = ""):
    return subprocess.CompletedProcess(args=["x"], returncode=returncode, stdout=stdout, stderr=stderr)


def test_macos_notification_uses_osascript(monkeypatch):
    calls = []

    def fake_run(cmd, *args, **kwargs):
        calls.append(cmd)
        return _completed(0)

    monkeypatch.setattr("pingdialog.kernel.notify.subprocess.run", fake_run)
    result = send_notification('Build "main" done', title=None, play_sound=True, platform="darwin")

    assert result.ok is True
    assert result.backend == "osascript"
    script = calls[0][2]
    assert 'display notification "Build \\"main\\" done"' in script
    assert 'with title "ping-dialog"' in script
    assert 'sound name "Ping"' in script


def test_osascript_command_without_sound():
    command = build_osascript_command("hi", "Title", False)
    assert command[:2] == ["osascript", "-e"]
    assert "sound name" not in command[2]


def test_linux_notification_uses_notify_send(monkeypatch):
    calls = []

    def fake_run(cmd, *args, **kwargs):
        calls.append(cmd)
        return _completed(0)

    monkeypatch.setattr("pingdialog.kernel.notify.shutil.which", lambda name: "/usr/bin/notify-send")
    monkeypatch.setattr("pingdialog.kernel.notify.subprocess.run", fake_run)
    result = send_notification("hello", title="Agent", platform="linux")

    assert result.ok is True
    assert calls[0][0] == "notify-send"
    assert calls[0][-2:] == ["Agent", "hello"]


def test_missing_backend_is_reported(monkeypatch):
    monkeypatch.setattr("pingdialog.kernel.notify.shutil.which", lambda name: None)

    result = send_notification("hello", platform="linux")

    assert result.ok is False
    assert result.status == "missing"


def test_failures_never_raise(monkeypatch):
    def missing(cmd, *args, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr("pingdialog.kernel.notify.subprocess.run", missing)
    assert send_notification("x", platform="darwin").status == "missing"

    def timeout(cmd, *args, **kwargs):
        raise subprocess.TimeoutExpired(cmd, 8)

    monkeypatch.setattr("pingdialog.kernel.notify.subprocess.run", timeout)
    assert send_notification("x", platform="darwin").status == "error"

    monkeypatch.setattr(
        "pingdialog.kernel.notify.subprocess.run",
        lambda cmd, *a, **k: _completed(1, stderr="not authorized"),
    )
    result = send_notification("x", platform="darwin")
    assert result.ok is False
    assert result.detail == "not authorized"
