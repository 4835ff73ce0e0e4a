from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import pytest

from pingdialog.config import resolve_config_path, resolve_config_root


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    config_dir = tmp_path / "config"
    pid_file = tmp_path / "run" / "ping-dialog.pid"

    monkeypatch.setenv("PING_DIALOG_CONFIG_DIR", str(config_dir))
    monkeypatch.setenv("PING_DIALOG_PID_FILE", str(pid_file))
    monkeypatch.setenv("HOME", str(tmp_path / "home"))

    return {
        "config_root": resolve_config_root(),
        "config_path": resolve_config_path(),
        "pid_file": pid_file,
    }


@pytest.fixture
def live_pid():
    proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
    try:
        yield proc.pid
    finally:
        proc.kill()
        proc.wait()
