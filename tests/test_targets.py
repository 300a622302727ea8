import shlex
from unittest.mock import patch

import pytest

from sshstate.targets import ContainerTarget, LocalTarget, SSHTarget, target_from_url


def test_local_target_runs_script_with_stdin():
    """LocalTarget runs sh scripts and feeds stdin"""
    result = LocalTarget().run('cat; echo done', stdin='hello\n')

    assert result.returncode == 0
    assert result.stdout == 'hello\ndone\n'


def test_local_target_reports_exit_status():
    result = LocalTarget().run('exit 3')
    assert result.returncode == 3


def test_local_target_sudo_prefix():
    assert LocalTarget(sudo=True)._command('true') == ['sudo', '-n', 'sh', '-c', 'true']


def test_ssh_target_command():
    """SSHTarget quotes the script as a single remote sh -c argument"""
    target = SSHTarget('web1', user='root', port=2222, ssh_options=['StrictHostKeyChecking=no'])
    cmd = target._command("echo 'hi there'")

    assert cmd[0] == 'ssh'
    assert 'BatchMode=yes' in cmd
    assert 'StrictHostKeyChecking=no' in cmd
    assert cmd[cmd.index('-p') + 1] == '2222'
    assert cmd[-2] == 'root@web1'
    assert shlex.split(cmd[-1]) == ['sh', '-c', "echo 'hi there'"]
    assert target.name == 'root@web1'


def test_ssh_target_sudo():
    cmd = SSHTarget('web1', sudo=True)._command('id')
    assert cmd[-1].startswith('sudo -n sh -c ')


def test_container_target_prefers_apple():
    """Should prefer apple/container when available."""
    with patch('shutil.which') as mock_which:
        mock_which.side_effect = lambda cmd: '/usr/local/bin/container' if cmd == 'container' else None
        target = ContainerTarget('app')

    assert target.runtime == 'apple'
    assert target._command('id') == ['container', 'exec', '-i', 'app', 'sh', '-c', 'id']


def test_container_target_falls_back_to_docker():
    with patch('shutil.which') as mock_which:
        mock_which.side_effect = lambda cmd: '/usr/bin/docker' if cmd == 'docker' else None
        target = ContainerTarget('app')

    assert target.runtime_cmd == 'docker'
    assert target.name == 'docker:app'


def test_container_target_raises_without_runtime():
    with patch('shutil.which', return_value=None):
        with pytest.raises(RuntimeError, match='No container runtime found'):
            ContainerTarget('app')


def test_explicit_runtime_raises_if_not_available():
    with patch('shutil.which', return_value=None):
        with pytest.raises(RuntimeError, match='Docker runtime requested but not found'):
            ContainerTarget('app', runtime='docker')


def test_target_from_url():
    assert isinstance(target_from_url('local'), LocalTarget)

    ssh = target_from_url('ssh://deploy@web1:2200')
    assert isinstance(ssh, SSHTarget)
    assert (ssh.user, ssh.host, ssh.port) == ('deploy', 'web1', 2200)

    bare = target_from_url('root@db1')
    assert isinstance(bare, SSHTarget)
    assert bare.name == 'root@db1'

    with patch('shutil.which', return_value='/usr/bin/docker'):
        container = target_from_url('docker://app')
    assert isinstance(container, ContainerTarget)
    assert container.container_name == 'app'


def test_target_from_url_rejects_unknown_scheme():
    with pytest.raises(ValueError, match='Unsupported target scheme'):
        target_from_url('ftp://example.com')
