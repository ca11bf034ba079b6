"""Command-line interface for WhisperFTP."""

import logging
import posixpath
import queue
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import click

from whisper_ftp import __version__
from whisper_ftp.config.credentials import CredentialEncryption
from whisper_ftp.config.paths import get_default_download_dir, get_log_file_path
from whisper_ftp.config.settings import SettingsManager
from whisper_ftp.ftp.client import FTPClient
from whisper_ftp.ftp.connection import FTPConnectionConfig
from whisper_ftp.ftp.exceptions import FTPAuthenticationError, FTPCancelledError, FTPError
from whisper_ftp.ftp.listing import FileSystemEntry
from whisper_ftp.transfer.models import BatchResult, DeleteRequest, TransferRequest
from whisper_ftp.transfer.orchestrator import TransferOrchestrator
from whisper_ftp.utils.logging import setup_logging
from whisper_ftp.utils.threading import TaskStatus, ThreadedTask
from whisper_ftp.utils.validators import validate_connection, validate_ftp_path, validate_timeout

logger = logging.getLogger("whisper_ftp.cli")

POLL_INTERVAL = 0.1


@click.group()
@click.version_option(__version__, prog_name="whisper-ftp")
@click.option('--host', '-H', help='FTP server address (host or ftp://host)')
@click.option('--port', '-p', type=click.IntRange(1, 65535), help='FTP server port')
@click.option('--user', '-u', default='anonymous', show_default=True, help='Username')
@click.option('--password', envvar='WHISPER_FTP_PASSWORD', default='',
              help='Password (or set WHISPER_FTP_PASSWORD)')
@click.option('--tls/--no-tls', default=None, help='Use explicit FTPS (AUTH TLS)')
@click.option('--active', is_flag=True, help='Use active instead of passive mode')
@click.option('--timeout', type=float, help='Connect timeout in seconds (default from settings)')
@click.option('--saved', '-s', 'saved_name', help='Use a saved connection by name')
@click.option('--log-level', default='WARNING',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Logging level')
@click.option('--log-file', type=click.Path(dir_okay=False, path_type=Path),
              help='Log file path (defaults to the application log)')
@click.pass_context
def cli(ctx, host: Optional[str], port: Optional[int], user: str, password: str,
        tls: Optional[bool], active: bool, timeout: Optional[float], saved_name: Optional[str],
        log_level: str, log_file: Optional[Path]):
    """WhisperFTP - transfer files to and from FTP servers."""
    ctx.ensure_object(dict)

    setup_logging(
        level=getattr(logging, log_level.upper()),
        log_file=log_file or get_log_file_path(),
    )

    ctx.obj['settings'] = SettingsManager()
    ctx.obj['encryption'] = CredentialEncryption()
    ctx.obj['connection'] = {
        'host': host,
        'port': port,
        'user': user,
        'password': password,
        'tls': tls,
        'passive': None if not active else False,
        'timeout': timeout,
        'saved': saved_name,
    }


def _resolve_config(ctx) -> FTPConnectionConfig:
    """Build the connection config from --saved or the --host options."""
    options = ctx.obj['connection']
    manager: SettingsManager = ctx.obj['settings']

    if options['timeout'] is not None:
        ok, message = validate_timeout(options['timeout'])
        if not ok:
            raise click.BadParameter(message, param_hint="'--timeout'")

    config = _base_config(ctx, options, manager)
    if options['timeout'] is not None:
        config = config.with_timeout(options['timeout'])
    return config


def _base_config(ctx, options: dict, manager: SettingsManager) -> FTPConnectionConfig:
    try:
        if options['saved']:
            record = manager.get_connection(options['saved'])
            if record is None:
                raise click.UsageError(f"No saved connection named '{options['saved']}'")
            config = manager.build_connection_config(record, ctx.obj['encryption'])
            manager.touch_connection(record.name)
            if options['passive'] is not None:
                config = replace(config, passive_mode=options['passive'])
            return config

        if not options['host']:
            raise click.UsageError("Either --host or --saved is required")

        return manager.build_config(
            address=options['host'],
            username=options['user'],
            password=options['password'],
            port=options['port'],
            use_tls=options['tls'],
            passive_mode=options['passive'],
        )
    except ValueError as e:
        raise click.UsageError(str(e))


def _run_batch(ctx, config: FTPConnectionConfig, operation: str, request) -> BatchResult:
    """
    Run a batch on a worker thread, echoing status lines and progress.

    The orchestrator reports progress into the task's queue, and the
    polling loop prints each new whole percentage. Ctrl-C cancels the
    batch; the partial result is still returned.
    """
    statuses: "queue.Queue[str]" = queue.Queue()
    task: ThreadedTask
    orchestrator = TransferOrchestrator(
        FTPClient(),
        config,
        on_progress=lambda percent: task.report_progress(percent),
        on_status=statuses.put,
        skip_delay=ctx.obj['settings'].settings.skip_delay,
    )
    task = ThreadedTask(getattr(orchestrator, operation), args=(request,))
    task.start()

    shown = -1
    try:
        while task.is_running:
            _echo_pending(statuses)
            shown = _echo_progress(task, shown)
            time.sleep(POLL_INTERVAL)
    except KeyboardInterrupt:
        click.echo("Cancelling...", err=True)
        task.cancel()

    outcome = task.get_result()
    _echo_pending(statuses)
    _echo_progress(task, shown)

    if outcome.status == TaskStatus.FAILED:
        raise click.ClickException(str(outcome.error))
    if outcome.result is None:
        raise click.ClickException("Operation cancelled")
    return outcome.result


def _echo_pending(statuses: "queue.Queue[str]") -> None:
    while True:
        try:
            click.echo(statuses.get_nowait())
        except queue.Empty:
            return


def _echo_progress(task: ThreadedTask, shown: int) -> int:
    """Print the latest queued progress if it moved; returns what is shown."""
    updates = task.get_all_progress()
    if updates and int(updates[-1]) != shown:
        shown = int(updates[-1])
        click.echo(f"Progress: {shown}%")
    return shown


def _check_remote_paths(paths) -> None:
    for path in paths:
        ok, message = validate_ftp_path(path)
        if not ok:
            raise click.BadParameter(message, param_hint=f"'{path}'")


def _remote_entries(client: FTPClient, config: FTPConnectionConfig, paths: List[str]) -> List[FileSystemEntry]:
    """Describe remote paths, telling files from directories with CWD."""
    entries = []
    for path in paths:
        is_directory = client.directory_exists(config, path)
        name = posixpath.basename(path.rstrip("/")) or path
        entries.append(FileSystemEntry(name=name, path=path, is_directory=is_directory))
    return entries


def _exit_for(result: BatchResult) -> None:
    if result.fail_count:
        sys.exit(1)


@cli.command()
@click.pass_context
def check(ctx):
    """Check that the server is reachable and accepts the login."""
    config = _resolve_config(ctx)
    client = FTPClient()

    click.echo(f"Connecting to {config.host}:{config.port}...")
    try:
        connected = client.connect(config)
    except FTPCancelledError:
        click.echo("Connection cancelled", err=True)
        sys.exit(1)

    if connected:
        click.echo("Connected")
        return

    if isinstance(client.last_error, FTPAuthenticationError):
        click.echo("Login rejected: check username and password", err=True)
    else:
        click.echo(f"Connection failed: {client.last_error}", err=True)
    sys.exit(1)


@cli.command(name="ls")
@click.argument('path', default='/')
@click.pass_context
def list_directory(ctx, path: str):
    """List a remote directory."""
    _check_remote_paths([path])
    config = _resolve_config(ctx)
    try:
        entries = FTPClient().refresh_listing(config, path)
    except FTPError as e:
        raise click.ClickException(str(e))

    for entry in entries:
        marker = "d" if entry.is_directory else "-"
        stamp = entry.modified.strftime('%Y-%m-%d %H:%M') if entry.modified_is_exact else "?"
        click.echo(f"{marker} {entry.size:>12} {stamp:>16}  {entry.name}")


@cli.command()
@click.argument('local_paths', nargs=-1, required=True,
                type=click.Path(exists=True, path_type=Path))
@click.option('--to', 'remote_dir', default='/', show_default=True,
              help='Remote target directory')
@click.pass_context
def upload(ctx, local_paths, remote_dir: str):
    """Upload local files and directories."""
    config = _resolve_config(ctx)
    _check_remote_paths([remote_dir])

    request = TransferRequest(
        items=[FileSystemEntry.from_local_path(p) for p in local_paths],
        target_directory=remote_dir,
    )
    _exit_for(_run_batch(ctx, config, "upload", request))


@cli.command()
@click.argument('remote_paths', nargs=-1, required=True)
@click.option('--to', 'local_dir', type=click.Path(file_okay=False, path_type=Path),
              help='Local target directory')
@click.pass_context
def download(ctx, remote_paths, local_dir: Optional[Path]):
    """Download remote files and directories."""
    config = _resolve_config(ctx)
    manager: SettingsManager = ctx.obj['settings']
    _check_remote_paths(remote_paths)

    target = local_dir or Path(manager.settings.download_path or get_default_download_dir())
    target.mkdir(parents=True, exist_ok=True)

    try:
        items = _remote_entries(FTPClient(), config, list(remote_paths))
    except FTPError as e:
        raise click.ClickException(str(e))

    request = TransferRequest(items=items, target_directory=str(target))
    _exit_for(_run_batch(ctx, config, "download", request))


@cli.command(name="rm")
@click.argument('remote_paths', nargs=-1, required=True)
@click.confirmation_option(prompt='Delete the given remote paths?')
@click.pass_context
def remove(ctx, remote_paths):
    """Delete remote files and directories (recursively)."""
    config = _resolve_config(ctx)
    _check_remote_paths(remote_paths)

    try:
        items = _remote_entries(FTPClient(), config, list(remote_paths))
    except FTPError as e:
        raise click.ClickException(str(e))

    _exit_for(_run_batch(ctx, config, "delete", DeleteRequest(items=items)))


@cli.group()
def saved():
    """Manage saved connections."""


@saved.command(name="list")
@click.pass_context
def saved_list(ctx):
    """List saved connections, most recent first."""
    records = ctx.obj['settings'].recent_connections()
    if not records:
        click.echo("No saved connections")
        return

    for record in records:
        last_used = record.last_used or "never"
        tls = " (TLS)" if record.use_tls else ""
        click.echo(f"{record.name}: {record.username}@{record.address}:{record.port}{tls}  last used {last_used}")


@saved.command(name="add")
@click.argument('name')
@click.argument('address')
@click.option('--user', '-u', default='anonymous', show_default=True)
@click.option('--password', prompt=True, hide_input=True, default='')
@click.option('--port', '-p', type=click.IntRange(1, 65535), default=21, show_default=True)
@click.option('--tls', is_flag=True, help='Use explicit FTPS (AUTH TLS)')
@click.pass_context
def saved_add(ctx, name: str, address: str, user: str, password: str, port: int, tls: bool):
    """Save a connection under NAME."""
    ok, message = validate_connection(address, user, password, port)
    if not ok:
        raise click.UsageError(message)

    ctx.obj['settings'].save_connection(
        name, address, user, password, ctx.obj['encryption'], port=port, use_tls=tls
    )
    click.echo(f"Saved connection '{name}'")


@saved.command(name="remove")
@click.argument('name')
@click.pass_context
def saved_remove(ctx, name: str):
    """Remove the saved connection NAME."""
    if not ctx.obj['settings'].remove_connection(name, ctx.obj['encryption']):
        raise click.ClickException(f"No saved connection named '{name}'")
    click.echo(f"Removed connection '{name}'")


def main():
    """Console script entry point."""
    cli(obj={})


if __name__ == '__main__':
    main()
