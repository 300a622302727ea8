"""Checksum and backup hooks run around writes to managed files."""

import shlex
from pathlib import PurePosixPath
from typing import Optional

from sshstate.errors import ChecksumMismatch


class NodeState:
    """Hooks invoked by Node before and after it changes a file.

    The base class does nothing, which is what a node without
    checksum or versioning support gets.
    """

    def verify_checksum(self, node, path: PurePosixPath) -> None:
        """Verify the file still matches the last recorded checksum."""

    def record_checksum(self, node, path: PurePosixPath) -> None:
        """Save the checksum of the file's current content."""

    def new_file_content(self, node, path: PurePosixPath,
                         versioning: Optional[bool] = None,
                         max_versions: Optional[int] = None) -> None:
        """Notify that path has been modified."""


class ChecksumNodeState(NodeState):
    """md5 sidecar files plus rotating '<file>.~<timestamp>~' backups.

    Example:
        state = ChecksumNodeState(versioning=True, max_versions=3)
        node = Node(target, node_state=state)
    """

    def __init__(self, checksums: bool = True, versioning: bool = False, max_versions: int = 5):
        self.checksums = checksums
        self.versioning = versioning
        self.max_versions = max_versions

    @staticmethod
    def _split(path: PurePosixPath) -> tuple[str, str]:
        return shlex.quote(str(path.parent)), shlex.quote(path.name)

    def verify_checksum(self, node, path: PurePosixPath) -> None:
        if not self.checksums:
            return
        directory, name = self._split(path)
        md5 = shlex.quote(f'{path.name}.md5')
        matches = node.probe(
            f'cd {directory} && {{ [ ! -e {md5} ] || [ ! -e {name} ] || md5sum -c --status {md5}; }}',
            description=f'Verify checksum of {path}',
        )
        if not matches:
            raise ChecksumMismatch(
                f'Verify checksum of {path}', 1,
                stderr=f'{path} was modified since its checksum was recorded',
            )

    def record_checksum(self, node, path: PurePosixPath) -> None:
        if not self.checksums:
            return
        directory, name = self._split(path)
        md5 = shlex.quote(f'{path.name}.md5')
        node.exec_checked(
            f'Record checksum of {path}',
            f'cd {directory} && md5sum {name} > {md5}',
        )

    def new_file_content(self, node, path: PurePosixPath,
                         versioning: Optional[bool] = None,
                         max_versions: Optional[int] = None) -> None:
        if versioning is None:
            versioning = self.versioning
        if not versioning:
            return
        if max_versions is None:
            max_versions = self.max_versions

        quoted = shlex.quote(str(path))
        # Timestamped names sort chronologically, newest first after sort -r
        node.exec_checked(
            f'Back up {path}',
            f'cp -p {quoted} {quoted}.~$(date +%Y%m%d%H%M%S)~ && '
            f'ls -1d {quoted}.~*~ | sort -r | tail -n +{max_versions + 1} | '
            f'while read -r old; do rm -f "$old"; done',
        )
