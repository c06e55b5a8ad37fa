from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from linearci.notify import Notification
from linearci.settings import load_settings
from linearci.ui.console import Console, set_console

_ENV_VARS = [
    "APP_NAME", "APP_DIR", "ARTIFACT_GLOB", "TEST_REPORT_GLOB", "TF_DIR", "TF_VAR_FILE",
    "ANSIBLE_DIR", "ANSIBLE_INVENTORY", "SETUP_PLAYBOOK", "DEPLOY_PLAYBOOK", "DEPLOY_MANIFEST",
    "WORKSPACE", "JOB_NAME", "BUILD_NUMBER", "BUILD_URL", "GIT_BRANCH",
    "LINEARCI_STATE_DIR", "LINEARCI_TRIGGER_BRANCH", "LINEARCI_NOTIFY_TO",
    "LINEARCI_SMTP_HOST", "LINEARCI_SMTP_PORT", "LINEARCI_SMTP_USER",
    "LINEARCI_SMTP_PASSWORD", "LINEARCI_SMTP_FROM", "LINEARCI_SMTP_STARTTLS",
    "ARTIFACT_PATH", "ARTIFACT_PATHS", "GIT_COMMIT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Tests must not pick up the settings of the CI server running them."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    set_console(Console())


class RecordingNotifier:
    def __init__(self):
        self.sent: list[Notification] = []

    def send(self, notification: Notification) -> None:
        self.sent.append(notification)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def workspace(tmp_path) -> Path:
    ws = tmp_path / "ws"
    ws.mkdir()
    return ws


@pytest.fixture
def make_settings(workspace):
    def _make(**overrides):
        values = {"workspace": str(workspace), "job_name": "demo"}
        values.update(overrides)
        return load_settings({}, **values)
    return _make


class FakeTools:
    """Executable shell scripts standing in for mvn, terraform, ansible-playbook..."""

    def __init__(self, bindir: Path, calls: Path):
        self.bindir = bindir
        self.calls = calls

    def add(self, name: str, body: str = "", exit_code: int = 0) -> Path:
        script = self.bindir / name
        script.write_text(
            "#!/bin/sh\n"
            f'if [ "$1" = "--version" ]; then echo "{name} 0.0.0"; exit 0; fi\n'
            f'echo "{name} $*" >> "{self.calls}"\n'
            f"{body}\n"
            f"exit {exit_code}\n"
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    def add_git(self, sha: str = "0123456789abcdef0123456789abcdef01234567") -> Path:
        script = self.bindir / "git"
        script.write_text(
            "#!/bin/sh\n"
            'case "$*" in\n'
            '  "--version") echo "git version 2.40.0" ;;\n'
            '  "rev-parse --is-inside-work-tree") echo true ;;\n'
            f'  "rev-parse HEAD") echo {sha} ;;\n'
            '  *) echo "unexpected git $*" >&2; exit 1 ;;\n'
            "esac\n"
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    def lines(self) -> list[str]:
        if not self.calls.exists():
            return []
        return self.calls.read_text().splitlines()


@pytest.fixture
def fake_tools(tmp_path, monkeypatch) -> FakeTools:
    bindir = tmp_path / "bin"
    bindir.mkdir()
    monkeypatch.setenv("PATH", f"{bindir}{os.pathsep}{os.environ.get('PATH', '')}")
    return FakeTools(bindir, tmp_path / "calls.log")
