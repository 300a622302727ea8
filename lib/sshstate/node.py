"""Filesystem primitives issued as checked shell scripts against a target."""

import shlex
import subprocess
from pathlib import PurePosixPath
from typing import Optional, Union

from sshstate.config import Settings
from sshstate.errors import ConfigurationError, RemoteCommandFailure

RemotePath = Union[str, PurePosixPath]


def _q(path: RemotePath) -> str:
    return shlex.quote(str(path))


def _ownership(path: RemotePath, owner: Optional[str], mode: Optional[str]) -> str:
    script = ''
    if owner:
        script += f' && chown {shlex.quote(owner)} {_q(path)}'
    if mode:
        script += f' && chmod {shlex.quote(mode)} {_q(path)}'
    return script


class Node:
    """A single target host plus the settings and hooks used against it.

    Every mutating method sends one script to the target and raises
    RemoteCommandFailure if it exits nonzero. Nothing is retried.
    """

    def __init__(self, target, settings: Optional[Settings] = None,
                 node_state=None, session=None):
        """Initialize node.

        Args:
            target: Object with run(script, stdin=None) -> CompletedProcess
            settings: Settings, defaults used if None
            node_state: Checksum/backup hooks, built from settings if None
            session: Optional Session that records every command
        """
        self.target = target
        self.settings = settings or Settings()
        self.node_state = node_state if node_state is not None else self.settings.node_state()
        self.session = session
        self._homes: dict[str, str] = {}

    def _run(self, description: str, script: str,
             stdin: Optional[str] = None) -> subprocess.CompletedProcess:
        try:
            result = self.target.run(script, stdin=stdin)
        except (OSError, subprocess.SubprocessError) as e:
            if self.session:
                self.session.log_command(description, script, -1)
            raise RemoteCommandFailure(
                description, -1, stderr=f'{self.target.name}: {e}', script=script,
            ) from e
        if self.session:
            self.session.log_command(description, script, result.returncode)
        return result

    def exec_checked(self, description: str, script: str, stdin: Optional[str] = None) -> str:
        """Run script on the target, raising on nonzero exit.

        Args:
            description: Human-readable step name attached to any failure
            script: POSIX sh script
            stdin: Optional text passed on standard input

        Returns:
            The script's stdout
        """
        result = self._run(description, script, stdin)
        if result.returncode != 0:
            raise RemoteCommandFailure(
                description, result.returncode,
                stdout=result.stdout or '', stderr=result.stderr or '', script=script,
            )
        return result.stdout or ''

    def probe(self, script: str, description: str = 'probe') -> bool:
        """Run a side-effect free check. True if it exits zero."""
        return self._run(description, script).returncode == 0

    def user_home(self, user: str) -> str:
        """Home directory of user on the target, cached per node."""
        if user not in self._homes:
            home = self.exec_checked(
                f'Resolve home directory of {user}',
                f'getent passwd {shlex.quote(user)} | cut -d: -f6',
            ).strip()
            if not home:
                raise ConfigurationError(f"Could not resolve home directory for user {user!r}")
            self._homes[user] = home.rstrip('/') or '/'
        return self._homes[user]

    def directory(self, path: RemotePath, owner: Optional[str] = None,
                  mode: Optional[str] = None) -> None:
        """Ensure a directory exists with the given owner and mode."""
        self.exec_checked(
            f'Directory {path}',
            f'mkdir -p {_q(path)}' + _ownership(path, owner, mode),
        )

    def file(self, path: RemotePath, owner: Optional[str] = None,
             mode: Optional[str] = None) -> None:
        """Ensure a file exists (creating it empty) with the given owner and mode."""
        self.exec_checked(
            f'File {path}',
            f'touch {_q(path)}' + _ownership(path, owner, mode),
        )

    def remote_file(self, path: RemotePath, content: str, owner: Optional[str] = None,
                    mode: Optional[str] = None) -> None:
        """Replace a file's content.

        The content is written to a sibling temp file over stdin, given
        its owner and mode, then renamed over the destination.
        """
        path = PurePosixPath(path)
        tmp = f'{path}.sshstate-new'
        self.node_state.verify_checksum(self, path)
        self.exec_checked(
            f'Write {path}',
            f'rm -f {_q(tmp)} && (umask 077 && cat > {_q(tmp)})'
            + _ownership(tmp, owner, mode)
            + f' && mv -f {_q(tmp)} {_q(path)}',
            stdin=content,
        )
        self.node_state.record_checksum(self, path)
        self.node_state.new_file_content(self, path)

    def append_line(self, path: RemotePath, line: str, description: str) -> None:
        """Append line to an existing file, starting it on a fresh line."""
        self.exec_checked(
            description,
            f'{{ if [ -s {_q(path)} ] && [ -n "$(tail -c 1 {_q(path)})" ]; then echo >> {_q(path)}; fi; }}'
            f" && printf '%s\\n' {shlex.quote(line)} >> {_q(path)}",
        )

    def file_exists(self, path: RemotePath) -> bool:
        return self.probe(f'test -e {_q(path)}', description=f'Check {path} exists')

    def read_file(self, path: RemotePath) -> str:
        return self.exec_checked(f'Read {path}', f'cat {_q(path)}')

    def remote_file_content(self, path: RemotePath) -> str:
        """Content of a file that must already exist."""
        if not self.file_exists(path):
            raise ConfigurationError(f"No such file on {self.target.name}: {path}")
        return self.read_file(path)

    def selinux_file_type(self, path: RemotePath, file_type: str) -> None:
        """Label path with an SELinux type when SELinux is enabled."""
        self.exec_checked(
            'Set selinux permissions',
            'if command -v selinuxenabled >/dev/null 2>&1 && selinuxenabled; then '
            f'chcon -Rv --type={shlex.quote(file_type)} {_q(path)}; fi',
        )
