"""SSH key pair generation, installation and retrieval."""

import shlex
from pathlib import PurePosixPath
from typing import Optional

from sshstate.paths import (
    PRIVATE_KEY_MODE,
    PUBLIC_KEY_MODE,
    SSH_DIR_MODE,
    default_key_filename,
    user_ssh_dir,
)


def _public_path(path: PurePosixPath) -> PurePosixPath:
    return path.with_name(f'{path.name}.pub')


def keygen_command(path: PurePosixPath, key_type: str, passphrase: str,
                   comment: str, exists: bool) -> Optional[str]:
    """Decide whether a key needs generating.

    Args:
        path: Private key path on the target
        key_type: ssh-keygen -t value
        passphrase: Passphrase for the private key ('' for none)
        comment: Key comment
        exists: Result of probing for path

    Returns:
        The ssh-keygen command line, or None if the key already exists
    """
    if exists:
        return None
    return ' '.join([
        'ssh-keygen', '-q',
        '-f', shlex.quote(str(path)),
        '-t', shlex.quote(key_type),
        '-N', shlex.quote(passphrase),
        '-C', shlex.quote(comment),
    ])


def generate_key(node, user: str, key_type: str = 'rsa', filename: Optional[str] = None,
                 passphrase: str = '', comment: Optional[str] = None,
                 no_dir: bool = False) -> bool:
    """Generate an ssh key pair for user, unless one already exists.

    Args:
        node: Node to run against
        user: Owner of the key pair
        key_type: Key type passed to ssh-keygen
        filename: File name within ~user/.ssh (defaults by key type)
        passphrase: New passphrase for encrypting the private key
        comment: Comment for a new key
        no_dir: Do not ensure the .ssh directory exists

    Returns:
        True if a new key was generated, False if one was already present
    """
    path = user_ssh_dir(node, user) / default_key_filename(key_type, filename)

    if not no_dir:
        node.directory(path.parent, owner=user, mode=SSH_DIR_MODE)

    command = keygen_command(
        path, key_type, passphrase,
        comment or node.settings.keygen_comment,
        exists=node.file_exists(path),
    )
    if command:
        node.exec_checked('ssh-keygen', command)

    node.file(path, owner=user, mode=PRIVATE_KEY_MODE)
    node.file(_public_path(path), owner=user, mode=PUBLIC_KEY_MODE)
    return command is not None


def install_key(node, user: str, key_name: str, private_key: str, public_key: str) -> None:
    """Install an ssh private and public key, overwriting existing files."""
    ssh_dir = user_ssh_dir(node, user)
    node.directory(ssh_dir, owner=user, mode=SSH_DIR_MODE)
    node.remote_file(ssh_dir / key_name, private_key, owner=user, mode=PRIVATE_KEY_MODE)
    node.remote_file(ssh_dir / f'{key_name}.pub', public_key, owner=user, mode=PUBLIC_KEY_MODE)


def public_key(node, user: str, filename: Optional[str] = None, dir: Optional[str] = None,
               key_type: str = 'rsa') -> str:
    """Return the public key for user on the target.

    By default this is ~user/.ssh/id_rsa.pub. key_type picks another
    default name, filename names the file directly and dir replaces
    the ~user/.ssh directory.
    """
    filename = filename or f'{default_key_filename(key_type)}.pub'
    directory = PurePosixPath(dir) if dir else user_ssh_dir(node, user)
    return node.remote_file_content(directory / filename)
