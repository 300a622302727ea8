import os
import pwd
import subprocess
from pathlib import Path

import pytest

from sshstate.config import Settings
from sshstate.node import Node
from sshstate.targets import LocalTarget

# chown needs principals that exist; a numeric uid works as a second one
ME = pwd.getpwuid(os.getuid()).pw_name
MY_UID = str(os.getuid())


class RecordingTarget(LocalTarget):
    """LocalTarget that records scripts and fails those containing a marker."""

    def __init__(self, fail_on=()):
        super().__init__()
        self.scripts = []
        self.fail_on = list(fail_on)

    def run(self, script, stdin=None):
        self.scripts.append(script)
        for marker in self.fail_on:
            if marker in script:
                return subprocess.CompletedProcess(
                    args=[], returncode=1, stdout='', stderr=f'{marker}: simulated failure'
                )
        return super().run(script, stdin=stdin)

    def count(self, marker):
        return sum(1 for script in self.scripts if marker in script)


@pytest.fixture
def home_root(tmp_path):
    return tmp_path / 'home'


@pytest.fixture
def target():
    return RecordingTarget()


@pytest.fixture
def node(target, home_root, tmp_path):
    """Node running real shell scripts, with home directories under tmp_path."""
    node = Node(target, settings=Settings(admin_user=ME, logs_dir=tmp_path / 'logs'))
    node.user_home = lambda user: str(home_root / user)
    return node


def mode_of(path: Path) -> int:
    return path.stat().st_mode & 0o777
