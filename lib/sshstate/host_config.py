"""Per-host block editing of ssh client config files.

A block starts at a 'Host <name>' line and runs up to the next line
starting with 'Host ' or the end of the file. A header belongs to <name>
when <name> follows 'Host ' and is itself followed by whitespace or the
end of the line, so 'web1' never matches 'web1-backup' while
'web1 web1.example.com' matches its own header.
"""

import shlex
from pathlib import PurePosixPath
from typing import Mapping, Optional

from sshstate.paths import CONFIG, CONFIG_MODE, SSH_DIR_MODE, user_ssh_dir

HOST_PREFIX = 'Host '

# Drops every block headed by 'Host <$SSHSTATE_HOST>'
_FILTER_PROGRAM = (
    '/^Host /{ h = ENVIRON["SSHSTATE_HOST"]; n = length(h); '
    'skip = (substr($0, 6, n) == h && '
    '(length($0) == 5 + n || substr($0, 6 + n, 1) ~ /[ \t]/)) } '
    '!skip { print }'
)


def render_host_block(host: str, options: Mapping[str, object]) -> str:
    """Block text for host, one '  key = value' line per option in order."""
    lines = [f'{HOST_PREFIX}{host}']
    lines += [f'  {key} = {value}' for key, value in options.items()]
    return '\n'.join(lines)


def _is_header_for(line: str, host: str) -> bool:
    line = line.rstrip('\r\n')
    if not line.startswith(HOST_PREFIX + host):
        return False
    rest = line[len(HOST_PREFIX) + len(host):]
    return not rest or rest[0] in ' \t'


def remove_host_block(text: str, host: str) -> str:
    """Text with every block for host removed."""
    kept = []
    skip = False
    for line in text.splitlines(keepends=True):
        if line.startswith(HOST_PREFIX):
            skip = _is_header_for(line, host)
        if not skip:
            kept.append(line)
    return ''.join(kept)


def replace_host_block(text: str, host: str, block: str) -> str:
    """Text with host's blocks removed and block appended at the end."""
    result = remove_host_block(text, host)
    if result and not result.endswith('\n'):
        result += '\n'
    return result + block + '\n'


def host_block_filter_script(host: str, config_file: PurePosixPath) -> str:
    """Shell script removing host's blocks from config_file in place.

    The filtered copy is written back with 'cat >' so the file keeps
    its owner and mode.
    """
    path = shlex.quote(str(config_file))
    tmp = shlex.quote(f'{config_file}.sshstate-tmp')
    return (
        f'(umask 077 && SSHSTATE_HOST={shlex.quote(host)} '
        f'awk {shlex.quote(_FILTER_PROGRAM)} {path} > {tmp})'
        f' && cat {tmp} > {path} && rm -f {tmp}'
    )


def config(node, host: str, options: Mapping[str, object], user: Optional[str] = None,
           config_file: Optional[str] = None, atomic: Optional[bool] = None) -> str:
    """Set the ssh config for host to exactly options.

    Any existing block for host is removed and the new block appended.
    By default this takes two remote commands, so a failure between
    them leaves the host without a block. atomic=True instead reads
    the file, rewrites it locally and replaces it in one rename.

    Args:
        node: Node to run against
        host: Host pattern for the block
        options: Ordered option names to values
        user: Owner of the config file (default: settings.admin_user)
        config_file: Full path of the config file (default: ~user/.ssh/config)
        atomic: Override settings.atomic_config

    Returns:
        The block text that was written
    """
    user = user or node.settings.admin_user
    if config_file:
        path = PurePosixPath(config_file)
    else:
        path = user_ssh_dir(node, user) / CONFIG
        node.directory(path.parent, owner=user, mode=SSH_DIR_MODE)
    if atomic is None:
        atomic = node.settings.atomic_config

    block = render_host_block(host, options)
    node.file(path, owner=user, mode=CONFIG_MODE)

    if atomic:
        content = replace_host_block(node.read_file(path), host, block)
        node.remote_file(path, content, owner=user, mode=CONFIG_MODE)
        return block

    node.node_state.verify_checksum(node, path)
    node.exec_checked(f'Remove ssh config for {host}', host_block_filter_script(host, path))
    node.append_line(path, block, 'Append ssh config')
    node.node_state.record_checksum(node, path)
    node.node_state.new_file_content(node, path)
    return block
