"""Fixtures for integration tests."""

import os
import stat
from pathlib import Path

import pytest

# Stands in for the ssh client: runs the remote command locally.
FAKE_SSH = """#!/bin/sh
for command; do :; done
exec sh -c "$command"
"""


@pytest.fixture
def fake_ssh(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Put an ``ssh`` executable running commands locally first on PATH."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    ssh = bin_dir / "ssh"
    ssh.write_text(FAKE_SSH)
    ssh.chmod(ssh.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ['PATH']}")
    return ssh
