import pytest

from conftest import ME, RecordingTarget, mode_of
from sshstate.errors import RemoteCommandFailure
from sshstate.host_config import (
    config,
    remove_host_block,
    render_host_block,
    replace_host_block,
)

EXISTING = (
    'ServerAliveInterval 30\n'
    'Host web1\n'
    '  Port = 22\n'
    'Host web1-backup\n'
    '  Port = 2200\n'
    'Host db\n'
    '  User = postgres\n'
)


def test_render_host_block_keeps_option_order():
    block = render_host_block('web1', {'HostName': '10.0.0.5', 'Port': 2222, 'User': 'deploy'})
    assert block == 'Host web1\n  HostName = 10.0.0.5\n  Port = 2222\n  User = deploy'


def test_remove_host_block_exact_host_only():
    """web1 does not match web1-backup's header"""
    assert remove_host_block(EXISTING, 'web1') == (
        'ServerAliveInterval 30\n'
        'Host web1-backup\n'
        '  Port = 2200\n'
        'Host db\n'
        '  User = postgres\n'
    )


def test_remove_host_block_last_block_and_duplicates():
    text = 'Host a\n  X = 1\nHost a\n  X = 2\nHost b\n  Y = 1\nHost a\n  X = 3'
    assert remove_host_block(text, 'a') == 'Host b\n  Y = 1\n'


def test_remove_host_block_multi_pattern_header():
    assert remove_host_block('Host web1 web1.example.com\n  Port = 22\n', 'web1') == ''


def test_remove_host_block_multi_pattern_host():
    """A host given with several patterns matches its own header, not a shorter one"""
    text = 'Host web1\n  Port = 21\nHost web1 web1.example.com\n  Port = 22\nHost db\n  User = postgres\n'
    assert remove_host_block(text, 'web1 web1.example.com') == (
        'Host web1\n  Port = 21\nHost db\n  User = postgres\n'
    )


def test_replace_host_block_appends_at_end():
    result = replace_host_block('Host db\n  User = postgres', 'web1', 'Host web1\n  Port = 22')
    assert result == 'Host db\n  User = postgres\nHost web1\n  Port = 22\n'


@pytest.fixture(params=[False, True], ids=['two-step', 'atomic'])
def atomic(request):
    return request.param


def test_config_replaces_block(node, tmp_path, atomic):
    """Configuring the same host twice leaves only the latest block"""
    path = tmp_path / 'ssh_config'
    config(node, 'web1', {'Port': '22'}, config_file=str(path), atomic=atomic)
    config(node, 'web1', {'Port': '2222'}, config_file=str(path), atomic=atomic)

    assert path.read_text() == 'Host web1\n  Port = 2222\n'
    assert mode_of(path) == 0o600


def test_config_multi_pattern_host_replaces_block(node, tmp_path, atomic):
    path = tmp_path / 'ssh_config'
    config(node, 'web1 web1.example.com', {'Port': '22'}, config_file=str(path), atomic=atomic)
    config(node, 'web1 web1.example.com', {'Port': '2222'}, config_file=str(path), atomic=atomic)

    assert path.read_text() == 'Host web1 web1.example.com\n  Port = 2222\n'


def test_config_prefix_host_does_not_interfere(node, tmp_path, atomic):
    path = tmp_path / 'ssh_config'
    config(node, 'web1', {'Port': '22'}, config_file=str(path), atomic=atomic)
    config(node, 'web1-backup', {'Port': '2200'}, config_file=str(path), atomic=atomic)
    config(node, 'web1', {'Port': '2222'}, config_file=str(path), atomic=atomic)

    assert path.read_text() == (
        'Host web1-backup\n'
        '  Port = 2200\n'
        'Host web1\n'
        '  Port = 2222\n'
    )


def test_config_preserves_other_content(node, tmp_path, atomic):
    path = tmp_path / 'ssh_config'
    path.write_text(EXISTING)

    config(node, 'db', {'User': 'admin', 'Port': '5433'}, config_file=str(path), atomic=atomic)

    assert path.read_text() == (
        'ServerAliveInterval 30\n'
        'Host web1\n'
        '  Port = 22\n'
        'Host web1-backup\n'
        '  Port = 2200\n'
        'Host db\n'
        '  User = admin\n'
        '  Port = 5433\n'
    )


def test_config_value_with_quotes(node, tmp_path):
    path = tmp_path / 'ssh_config'
    config(node, 'jump', {'ProxyCommand': "ssh -W '%h:%p' bastion"}, config_file=str(path))

    assert path.read_text() == "Host jump\n  ProxyCommand = ssh -W '%h:%p' bastion\n"


def test_config_default_path_in_user_ssh_dir(node, home_root):
    """Without config_file the admin user's ~/.ssh/config is edited"""
    config(node, 'web1', {'Port': '22'})

    path = home_root / ME / '.ssh' / 'config'
    assert path.read_text() == 'Host web1\n  Port = 22\n'
    assert mode_of(path) == 0o600


def test_config_atomic_from_settings(node, target, tmp_path):
    node.settings.atomic_config = True
    config(node, 'web1', {'Port': '22'}, config_file=str(tmp_path / 'ssh_config'))

    assert target.count('awk') == 0
    assert target.count('mv -f') == 1


def test_config_two_step_runs_delete_then_append(node, target, tmp_path):
    config(node, 'web1', {'Port': '22'}, config_file=str(tmp_path / 'ssh_config'))

    touch, delete, append = target.scripts
    assert touch.startswith('touch ')
    assert 'awk' in delete
    assert 'printf' in append


def test_config_append_failure_leaves_block_removed(node, tmp_path):
    """Delete and append are separate commands; a failed append loses the block"""
    path = tmp_path / 'ssh_config'
    path.write_text('Host web1\n  Port = 22\nHost db\n  User = postgres\n')
    node.target = RecordingTarget(fail_on=['printf'])

    with pytest.raises(RemoteCommandFailure, match='Append ssh config'):
        config(node, 'web1', {'Port': '2222'}, config_file=str(path))

    assert path.read_text() == 'Host db\n  User = postgres\n'
