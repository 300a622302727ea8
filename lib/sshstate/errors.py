"""Exceptions raised by sshstate operations."""

from typing import Optional


class SSHStateError(Exception):
    """Base class for all sshstate failures."""


class ConfigurationError(SSHStateError, ValueError):
    """An operation was given options it cannot resolve.

    Raised for unknown key types without an explicit filename, an
    unresolvable home directory, or a missing file a read depends on.
    """


class PreconditionMissing(SSHStateError, RuntimeError):
    """A file the operation requires on the target does not exist."""


class RemoteCommandFailure(SSHStateError, RuntimeError):
    """A checked remote command exited with a nonzero status."""

    def __init__(self, description: str, returncode: int,
                 stdout: str = '', stderr: str = '',
                 script: Optional[str] = None):
        self.description = description
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.script = script
        detail = stderr.strip() or stdout.strip()
        message = f"{description} failed (exit {returncode})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class ChecksumMismatch(RemoteCommandFailure):
    """A managed file was changed outside of sshstate."""
