"""Main entry point for the inputlirc CLI application."""

import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any

import typer

from common.backends import FatalError
from common.logging_utils import setup_logging_handler
from common.version import __version__

from .config_loader import ConfigLoader
from .daemon_manager import DEFAULT_PID_FILE, DaemonManager, daemonize, drop_privileges
from .key_names import KeyNameTable
from .models import ServerConfig, parse_timing
from .server import Server

EXIT_USAGE = os.EX_USAGE
EXIT_OSERR = os.EX_OSERR

app = typer.Typer(
    help='Relay input device key presses to LIRC clients over a Unix socket',
    no_args_is_help=True,
)

logger = logging.getLogger('inputlirc')


def setup_signal_handlers(server: Server) -> None:
    """Exit cleanly on SIGINT/SIGTERM and let broken client pipes surface as errors."""
    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info(f'Received signal {signum}, shutting down...')
        server.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGPIPE, signal.SIG_IGN)


def build_config(config_file: Path | None, overrides: dict[str, Any]) -> ServerConfig:
    """Merge the config file with command-line overrides (None means 'not given').

    Raises:
        FileNotFoundError: If config_file does not exist
        ValueError: If the resulting configuration is invalid
    """
    settings, _path = ConfigLoader.load(config_file)
    for key, value in overrides.items():
        if value is None or value is False or value == []:
            continue
        settings[key] = value
    return ServerConfig(**settings)


def _usage_error(message: str) -> typer.Exit:
    typer.echo(f'❌ {message}', err=True)
    return typer.Exit(EXIT_USAGE)


def _serve(server: Server, app_config: ServerConfig, foreground: bool, daemon: DaemonManager) -> None:
    root_logger = logging.getLogger('inputlirc')
    try:
        server.setup()

        if not foreground:
            daemonize()
            daemon.write_pid()
            setup_logging_handler(root_logger, app_config.log_level, foreground=False, log_file=app_config.log_file)

        if app_config.user:
            drop_privileges(app_config.user)
            logger.info(f'Running as user {app_config.user}')

        setup_signal_handlers(server)
        server.run()
    finally:
        server.close()
        daemon.cleanup()


@app.command()
def start(
    devices: list[str] = typer.Argument(None, help='Device paths, or name:<glob> to match device names'),
    config: Path | None = typer.Option(None, '--config', help='Path to TOML config file'),
    grab: bool = typer.Option(False, '--grab', '-g', help='Grab devices for exclusive use'),
    key_min: int | None = typer.Option(None, '--key-min', '-m', help='Lowest key code to report [default: 88]'),
    capture_modifiers: bool = typer.Option(False, '--capture-modifiers', '-c', help='Report ctrl/shift/alt/meta as key name prefixes'),
    repeat_window: float | None = typer.Option(None, '--repeat-window', '-r', help='Milliseconds within which a press counts as a repeat [default: 500]'),
    socket_path: Path | None = typer.Option(None, '--socket', '-s', help='Listening socket path [default: /var/run/lirc/lircd]'),
    name: str | None = typer.Option(None, '--name', '-n', help='Remote name reported to clients instead of the device name'),
    autorepeat: bool = typer.Option(False, '--autorepeat', '-a', help='Emulate key repeat for devices without it'),
    autorepeat_timing: str | None = typer.Option(None, '--autorepeat-timing', '-A', help='Autorepeat DELAY,PERIOD in ms [default: 250,33]'),
    translation: Path | None = typer.Option(None, '--translation', '-t', help='Key name translation table'),
    user: str | None = typer.Option(None, '--user', '-u', help='Run as this user after opening devices'),
    foreground: bool = typer.Option(False, '--foreground', '-f', help='Run in foreground'),
    rescan_interval: float | None = typer.Option(None, '--rescan-interval', help='Seconds between attempts to reopen lost devices [default: 5]'),
    log_file: Path | None = typer.Option(None, '--log-file', help='Log file used in background mode (default: syslog)'),
    pid_file: Path = typer.Option(DEFAULT_PID_FILE, '--pid-file', help='PID file used in background mode'),
    debug: bool = typer.Option(False, '--debug', help='Enable debug logging'),
) -> None:
    """Start the inputlirc server.

    By default the server detaches into the background once devices and the
    socket are open. Use --foreground to keep it in the terminal.

    Examples:
        inputlirc start /dev/input/event3
        inputlirc start -g -f 'name:*IR Receiver*'
        inputlirc start -a -A 300,40 -m 0 -c /dev/input/by-id/usb-remote-event-kbd
    """
    overrides: dict[str, Any] = {
        'devices': list(devices or []),
        'grab': grab,
        'key_min': key_min,
        'capture_modifiers': capture_modifiers,
        'repeat_window': None if repeat_window is None else repeat_window / 1000.0,
        'socket_path': socket_path,
        'source_name': name,
        'autorepeat': autorepeat,
        'translation_file': translation,
        'user': user,
        'rescan_interval': rescan_interval,
        'log_file': log_file,
        'log_level': 'DEBUG' if debug else None,
    }
    try:
        if autorepeat_timing is not None:
            overrides['autorepeat_delay'], overrides['autorepeat_period'] = parse_timing(autorepeat_timing)
        app_config = build_config(config, overrides)
    except FileNotFoundError as e:
        raise _usage_error(f'Config file not found: {e}') from e
    except Exception as e:
        raise _usage_error(f'Invalid configuration: {e}') from e

    try:
        key_names = KeyNameTable.load(app_config.translation_file)
    except OSError as e:
        raise _usage_error(f'Cannot read translation table: {e}') from e

    setup_logging_handler(logging.getLogger('inputlirc'), app_config.log_level, foreground=True)

    daemon = DaemonManager(pid_file)
    if not foreground:
        try:
            locked = daemon.acquire_lock()
        except OSError as e:
            typer.echo(f'❌ Cannot create PID file {pid_file}: {e}', err=True)
            raise typer.Exit(EXIT_OSERR) from e
        if not locked:
            typer.echo('❌ Another instance of inputlirc is already running', err=True)
            pid = daemon.get_pid()
            if pid:
                typer.echo(f'   PID: {pid}', err=True)
            raise typer.Exit(EXIT_OSERR)

    server = Server(app_config, key_names)
    try:
        _serve(server, app_config, foreground, daemon)
    except FatalError as e:
        logger.error(f'Fatal: {e}')
        raise typer.Exit(EXIT_OSERR) from e
    except OSError as e:
        logger.error(f'Fatal error: {e}', exc_info=True)
        raise typer.Exit(EXIT_OSERR) from e


@app.command()
def stop(
    pid_file: Path = typer.Option(DEFAULT_PID_FILE, '--pid-file', help='PID file of the running server'),
) -> None:
    """Stop a background inputlirc server."""
    daemon = DaemonManager(pid_file)
    if not daemon.is_running():
        typer.echo('❌ inputlirc is not running', err=True)
        raise typer.Exit(1)

    pid = daemon.get_pid()
    typer.echo(f'Stopping inputlirc (PID: {pid})...')
    if not daemon.stop():
        typer.echo('❌ Failed to stop inputlirc', err=True)
        raise typer.Exit(1)
    typer.echo('✓ inputlirc stopped')


@app.command()
def status(
    pid_file: Path = typer.Option(DEFAULT_PID_FILE, '--pid-file', help='PID file of the running server'),
) -> None:
    """Show whether a background inputlirc server is running."""
    daemon = DaemonManager(pid_file)
    if not daemon.is_running():
        typer.echo('❌ inputlirc is not running')
        raise typer.Exit(1)
    typer.echo('✓ inputlirc is running')
    pid = daemon.get_pid()
    if pid:
        typer.echo(f'   PID: {pid}')


@app.command()
def version() -> None:
    """Print the inputlirc version."""
    typer.echo(f'inputlirc {__version__}')


if __name__ == '__main__':
    app()
