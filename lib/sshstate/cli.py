#!/usr/bin/env python3
"""sshstate CLI - idempotent SSH key and config management."""

import sys
from pathlib import Path
from typing import Callable, Optional

import click

from sshstate.authorize import authorize_key, authorize_key_for_localhost
from sshstate.config import Settings
from sshstate.errors import SSHStateError
from sshstate.host_config import config as set_host_config
from sshstate.keys import generate_key, install_key, public_key
from sshstate.node import Node
from sshstate.session import Session
from sshstate.targets import target_from_url


def _parse_options(pairs: tuple[str, ...]) -> dict[str, str]:
    """Turn ('Port=22', 'User=deploy') into an ordered dict."""
    options = {}
    for pair in pairs:
        key, sep, value = pair.partition('=')
        if not sep or not key.strip():
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint='OPTIONS')
        options[key.strip()] = value.strip()
    return options


def _run(ctx: click.Context, description: str, operation: Callable[[Node], object]):
    """Run operation against the selected target inside a logged session.

    Exits with status 1 on any sshstate error.
    """
    settings: Settings = ctx.obj['settings']
    try:
        target = target_from_url(ctx.obj['target'], sudo=ctx.obj['sudo'],
                                 ssh_options=ctx.obj['ssh_options'])
    except (RuntimeError, ValueError) as e:
        click.secho(f"❌ {e}", fg='red')
        sys.exit(1)

    session = Session.start(target.name, settings.logs_dir)
    session.log_event(description)
    node = Node(target, settings=settings, session=session)
    try:
        result = operation(node)
    except SSHStateError as e:
        session.fail(e)
        click.secho(f"❌ {e}", fg='red')
        sys.exit(1)
    session.complete()
    return result


@click.group()
@click.version_option(package_name='sshstate')
@click.option('--target', '-t', default='local', show_default=True,
              help='local, ssh://[user@]host[:port], docker://name or container://name')
@click.option('--config', '-c', 'config_file', type=click.Path(dir_okay=False, path_type=Path),
              help='Settings file (default: ./sshstate.yml)')
@click.option('--sudo', is_flag=True, help='Run remote commands through sudo -n')
@click.option('--ssh-option', '-o', 'ssh_options', multiple=True,
              help='Extra ssh -o option, may be repeated')
@click.pass_context
def main(ctx: click.Context, target: str, config_file: Optional[Path], sudo: bool,
         ssh_options: tuple[str, ...]) -> None:
    """Idempotent SSH key and client config management for remote hosts."""
    try:
        settings = Settings.load(config_file)
    except ValueError as e:
        click.secho(f"❌ {e}", fg='red')
        sys.exit(1)
    ctx.obj = {
        'settings': settings,
        'target': target,
        'sudo': sudo,
        'ssh_options': list(ssh_options),
    }


@main.command('generate-key')
@click.argument('user')
@click.option('--type', 'key_type', default='rsa', show_default=True, help='Key type')
@click.option('--filename', help='File name within ~USER/.ssh')
@click.option('--passphrase', default='', help='Passphrase for the private key')
@click.option('--comment', help='Comment for a new key')
@click.option('--no-dir', is_flag=True, help='Do not ensure ~USER/.ssh exists')
@click.pass_context
def generate_key_cmd(ctx, user: str, key_type: str, filename: Optional[str],
                     passphrase: str, comment: Optional[str], no_dir: bool) -> None:
    """Generate a key pair for USER unless one already exists."""
    created = _run(ctx, f'generate-key for {user}', lambda node: generate_key(
        node, user, key_type=key_type, filename=filename,
        passphrase=passphrase, comment=comment, no_dir=no_dir,
    ))
    if created:
        click.echo(f"✓ Generated {key_type} key for {user}")
    else:
        click.echo(f"✓ Key for {user} already exists")


@main.command('install-key')
@click.argument('user')
@click.argument('key_name')
@click.argument('private_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('public_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def install_key_cmd(ctx, user: str, key_name: str, private_file: Path, public_file: Path) -> None:
    """Install a local key pair as ~USER/.ssh/KEY_NAME on the target."""
    private_key = private_file.read_text()
    public = public_file.read_text()
    _run(ctx, f'install-key {key_name} for {user}',
         lambda node: install_key(node, user, key_name, private_key, public))
    click.echo(f"✓ Installed {key_name} for {user}")


@main.command('public-key')
@click.argument('user')
@click.option('--type', 'key_type', default='rsa', show_default=True, help='Key type')
@click.option('--filename', help='Public key file name')
@click.option('--dir', 'directory', help='Directory holding the key (default: ~USER/.ssh)')
@click.pass_context
def public_key_cmd(ctx, user: str, key_type: str, filename: Optional[str],
                   directory: Optional[str]) -> None:
    """Print USER's public key."""
    content = _run(ctx, f'public-key for {user}', lambda node: public_key(
        node, user, filename=filename, dir=directory, key_type=key_type,
    ))
    click.echo(content, nl=False)


@main.command('authorize-key')
@click.argument('user')
@click.argument('key', required=False)
@click.option('--from-file', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='Read the public key from a local file')
@click.option('--for-user', help="Modify this user's authorized_keys instead")
@click.pass_context
def authorize_key_cmd(ctx, user: str, key: Optional[str], from_file: Optional[Path],
                      for_user: Optional[str]) -> None:
    """Authorize a public KEY for USER."""
    if from_file:
        key = from_file.read_text()
    if not key:
        raise click.UsageError("Pass a KEY or --from-file")
    added = _run(ctx, f'authorize-key on user {user}',
                 lambda node: authorize_key(node, user, key, authorize_for_user=for_user))
    click.echo(f"✓ Key authorized for {for_user or user}" if added
               else f"✓ Key already authorized for {for_user or user}")


@main.command('authorize-localhost')
@click.argument('user')
@click.argument('public_key_filename')
@click.option('--for-user', help="Modify this user's authorized_keys instead")
@click.pass_context
def authorize_localhost_cmd(ctx, user: str, public_key_filename: str,
                            for_user: Optional[str]) -> None:
    """Authorize ~USER/.ssh/PUBLIC_KEY_FILENAME for access from localhost."""
    added = _run(ctx, f'authorize-localhost {public_key_filename} for {user}',
                 lambda node: authorize_key_for_localhost(
                     node, user, public_key_filename, authorize_for_user=for_user))
    click.echo("✓ Key authorized for localhost" if added
               else "✓ Key already authorized for localhost")


@main.command('config')
@click.argument('host')
@click.argument('options', nargs=-1)
@click.option('--user', help='Owner of the ssh config (default: admin_user setting)')
@click.option('--config-file', help='Full path of the ssh config file')
@click.option('--atomic', is_flag=True, help='Rewrite the whole file in one step')
@click.pass_context
def config_cmd(ctx, host: str, options: tuple[str, ...], user: Optional[str],
               config_file: Optional[str], atomic: bool) -> None:
    """Set the ssh config for HOST to OPTIONS (KEY=VALUE ...)."""
    parsed = _parse_options(options)
    _run(ctx, f'config for host {host}', lambda node: set_host_config(
        node, host, parsed, user=user, config_file=config_file, atomic=True if atomic else None,
    ))
    click.echo(f"✓ Updated ssh config for {host}")


if __name__ == '__main__':
    main()
