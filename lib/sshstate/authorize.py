"""Authorizing public keys in authorized_keys files."""

from typing import Optional

from sshstate.errors import ConfigurationError, PreconditionMissing
from sshstate.paths import (
    AUTHORIZED_KEYS,
    AUTHORIZED_KEYS_MODE,
    SSH_DIR_MODE,
    user_ssh_dir,
)

LOCALHOST_RESTRICTION = 'from="localhost" '


def authorized_key_line(existing: str, public_key: str) -> Optional[str]:
    """Line to append to an authorized_keys file, or None if already present.

    Surrounding whitespace is ignored both when matching and appending.
    """
    key = public_key.strip()
    if not key:
        raise ConfigurationError("Public key is empty")
    if key in existing:
        return None
    return key


def localhost_key_line(existing: str, key_content: str) -> Optional[str]:
    """Localhost-restricted line for key_content, or None if already present.

    A match anywhere in the file counts, whatever restriction it carries.
    """
    key = key_content.rstrip('\n')
    if not key:
        raise ConfigurationError("Public key file is empty")
    if key in existing:
        return None
    return LOCALHOST_RESTRICTION + key


def _ensure_authorized_keys(node, target_user: str):
    ssh_dir = user_ssh_dir(node, target_user)
    auth_file = ssh_dir / AUTHORIZED_KEYS
    node.directory(ssh_dir, owner=target_user, mode=SSH_DIR_MODE)
    node.file(auth_file, owner=target_user, mode=AUTHORIZED_KEYS_MODE)
    return ssh_dir, auth_file


def _append(node, auth_file, line: str, description: str) -> None:
    node.node_state.verify_checksum(node, auth_file)
    node.append_line(auth_file, line, description)
    node.node_state.record_checksum(node, auth_file)
    node.node_state.new_file_content(node, auth_file)


def authorize_key(node, user: str, public_key: str,
                  authorize_for_user: Optional[str] = None) -> bool:
    """Authorize a public key on the specified user.

    Args:
        node: Node to run against
        user: User the key is authorized for
        public_key: Public key text, as found in a .pub file
        authorize_for_user: Modify this user's authorized_keys instead

    Returns:
        True if the key was appended, False if it was already present
    """
    target_user = authorize_for_user or user
    ssh_dir, auth_file = _ensure_authorized_keys(node, target_user)

    line = authorized_key_line(node.read_file(auth_file), public_key)
    if line:
        _append(node, auth_file, line, f'authorize-key on user {user}')

    node.selinux_file_type(ssh_dir, node.settings.selinux_type)
    return line is not None


def authorize_key_for_localhost(node, user: str, public_key_filename: str,
                                authorize_for_user: Optional[str] = None) -> bool:
    """Authorize a user's public key for ssh access to localhost.

    The key is read from public_key_filename in user's .ssh directory
    and appended with a from="localhost" restriction to the
    authorized_keys of authorize_for_user (default: user).

    Returns:
        True if the key was appended, False if it was already present
    """
    target_user = authorize_for_user or user
    key_file = user_ssh_dir(node, user) / public_key_filename
    if not node.file_exists(key_file):
        raise PreconditionMissing(f"Public key file not found on {node.target.name}: {key_file}")

    _, auth_file = _ensure_authorized_keys(node, target_user)

    line = localhost_key_line(node.read_file(auth_file), node.read_file(key_file))
    if line:
        _append(node, auth_file, line, 'authorize-key')
    return line is not None
