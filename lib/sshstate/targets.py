"""Execution targets: where generated shell scripts actually run."""

import shlex
import shutil
import subprocess
from typing import Optional
from urllib.parse import urlparse


class LocalTarget:
    """Runs scripts with the local /bin/sh."""

    def __init__(self, sudo: bool = False, timeout: Optional[float] = None):
        self.sudo = sudo
        self.timeout = timeout
        self.name = 'local'

    def _command(self, script: str) -> list[str]:
        cmd = ['sh', '-c', script]
        if self.sudo:
            cmd = ['sudo', '-n'] + cmd
        return cmd

    def run(self, script: str, stdin: Optional[str] = None) -> subprocess.CompletedProcess:
        """Run a shell script on the target.

        Args:
            script: POSIX sh script text
            stdin: Optional text fed to the script's standard input

        Returns:
            CompletedProcess with text stdout/stderr
        """
        return subprocess.run(
            self._command(script),
            input=stdin,
            capture_output=True,
            text=True,
            timeout=self.timeout,
        )


class SSHTarget(LocalTarget):
    """Runs scripts on a remote host through the system ssh binary.

    Using the ssh client picks up the user's ~/.ssh/config, agent and
    known_hosts without any extra configuration here.
    """

    def __init__(self, host: str, user: Optional[str] = None, port: Optional[int] = None,
                 ssh_options: Optional[list[str]] = None, sudo: bool = False,
                 connect_timeout: int = 10, timeout: Optional[float] = None):
        super().__init__(sudo=sudo, timeout=timeout)
        self.host = host
        self.user = user
        self.port = port
        self.ssh_options = list(ssh_options or [])
        self.connect_timeout = connect_timeout
        self.name = f'{user}@{host}' if user else host

    def _command(self, script: str) -> list[str]:
        remote = f'sh -c {shlex.quote(script)}'
        if self.sudo:
            remote = f'sudo -n {remote}'
        cmd = ['ssh', '-o', 'BatchMode=yes', '-o', f'ConnectTimeout={self.connect_timeout}']
        for option in self.ssh_options:
            cmd += ['-o', option]
        if self.port:
            cmd += ['-p', str(self.port)]
        cmd += [self.name, remote]
        return cmd


class ContainerTarget(LocalTarget):
    """Runs scripts inside a running container via docker or apple/container."""

    def __init__(self, container_name: str, runtime: Optional[str] = None,
                 sudo: bool = False, timeout: Optional[float] = None):
        super().__init__(sudo=sudo, timeout=timeout)
        self.container_name = container_name
        self.runtime, self.runtime_cmd = self._detect_runtime(runtime)
        self.name = f'{self.runtime}:{container_name}'

    @staticmethod
    def _detect_runtime(runtime: Optional[str] = None) -> tuple[str, str]:
        """Detect available container runtime or use specified one.

        Args:
            runtime: Explicit runtime ('docker' or 'apple'), or None for auto-detect

        Returns:
            Tuple of (runtime_name, command), e.g. ('apple', 'container')
        """
        if runtime == 'docker':
            if not shutil.which('docker'):
                raise RuntimeError("Docker runtime requested but not found on system.")
            return 'docker', 'docker'
        if runtime == 'apple':
            if not shutil.which('container'):
                raise RuntimeError("apple/container runtime requested but not found on system.")
            return 'apple', 'container'

        if shutil.which('container'):
            return 'apple', 'container'
        if shutil.which('docker'):
            return 'docker', 'docker'
        raise RuntimeError("No container runtime found. Install apple/container or Docker.")

    def _command(self, script: str) -> list[str]:
        return [self.runtime_cmd, 'exec', '-i', self.container_name] + super()._command(script)


def target_from_url(url: str, sudo: bool = False,
                    ssh_options: Optional[list[str]] = None) -> LocalTarget:
    """Build a target from a URL-ish string.

    Accepted forms: 'local', 'ssh://[user@]host[:port]', 'docker://name'
    and 'container://name'. A bare 'host' or 'user@host' means ssh.
    """
    if url in ('', 'local', 'localhost'):
        return LocalTarget(sudo=sudo)

    if '://' not in url:
        url = f'ssh://{url}'
    parsed = urlparse(url)

    if parsed.scheme == 'ssh':
        if not parsed.hostname:
            raise ValueError(f"Missing host in target: {url}")
        return SSHTarget(parsed.hostname, user=parsed.username, port=parsed.port,
                         ssh_options=ssh_options, sudo=sudo)
    if parsed.scheme in ('docker', 'container'):
        runtime = 'docker' if parsed.scheme == 'docker' else 'apple'
        return ContainerTarget(parsed.netloc, runtime=runtime, sudo=sudo)

    raise ValueError(f"Unsupported target scheme: {parsed.scheme}")
