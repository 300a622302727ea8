"""Parse sshstate.yml settings."""

import getpass
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from sshstate.node_state import ChecksumNodeState, NodeState

KNOWN_FIELDS = {
    'admin_user', 'selinux_type', 'keygen_comment', 'checksums',
    'versioning', 'max_versions', 'atomic_config', 'logs_dir',
}

DEFAULT_CONFIG_NAME = 'sshstate.yml'


def _default_logs_dir() -> Path:
    return Path.home() / '.sshstate' / 'logs'


@dataclass
class Settings:
    """Process-wide sshstate settings from sshstate.yml."""
    admin_user: str = field(default_factory=getpass.getuser)
    selinux_type: str = 'user_home_t'
    keygen_comment: str = 'generated by sshstate'
    checksums: bool = False
    versioning: bool = False
    max_versions: int = 5
    atomic_config: bool = False
    logs_dir: Path = field(default_factory=_default_logs_dir)

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> 'Settings':
        """Load settings from config_file, or ./sshstate.yml if not given.

        Returns defaults when the file does not exist.
        """
        config_file = config_file or Path.cwd() / DEFAULT_CONFIG_NAME
        if not config_file.exists():
            return cls()

        with open(config_file, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"{config_file} must contain a mapping")

        unknown = set(data.keys()) - KNOWN_FIELDS
        if unknown:
            raise ValueError(f"Unknown sshstate.yml field(s): {', '.join(sorted(unknown))}")

        if 'logs_dir' in data:
            data['logs_dir'] = Path(data['logs_dir']).expanduser()
        if 'max_versions' in data and int(data['max_versions']) < 1:
            raise ValueError("max_versions must be at least 1")

        return cls(**data)

    def node_state(self) -> NodeState:
        """Build the file-state hooks these settings ask for."""
        if self.checksums or self.versioning:
            return ChecksumNodeState(
                checksums=self.checksums,
                versioning=self.versioning,
                max_versions=self.max_versions,
            )
        return NodeState()
