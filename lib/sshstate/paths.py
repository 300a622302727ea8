"""Per-user SSH directory, default key filenames and fixed modes."""

from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Optional

from sshstate.errors import ConfigurationError

SSH_DEFAULT_FILENAMES = MappingProxyType({
    'rsa1': 'identity',
    'rsa': 'id_rsa',
    'dsa': 'id_dsa',
    'ecdsa': 'id_ecdsa',
    'ed25519': 'id_ed25519',
})

SSH_DIR_MODE = '755'
PRIVATE_KEY_MODE = '600'
PUBLIC_KEY_MODE = '644'
AUTHORIZED_KEYS_MODE = '644'
CONFIG_MODE = '600'

AUTHORIZED_KEYS = 'authorized_keys'
CONFIG = 'config'


def user_ssh_dir(node, user: str) -> PurePosixPath:
    """Return '<home>/.ssh' for user, resolving home on the target."""
    return PurePosixPath(node.user_home(user)) / '.ssh'


def default_key_filename(key_type: str, filename: Optional[str] = None) -> str:
    """Key filename for key_type unless filename is given explicitly.

    Raises:
        ConfigurationError: key_type has no default and filename is None
    """
    if filename:
        return filename
    try:
        return SSH_DEFAULT_FILENAMES[key_type]
    except KeyError:
        raise ConfigurationError(
            f"No default filename for key type {key_type!r}; pass a filename"
        ) from None
