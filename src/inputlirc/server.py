"""Server lifecycle: listening socket, component wiring and cleanup."""

import os
import socket
import time
from contextlib import suppress
from pathlib import Path

from common.backends import FatalError
from common.backends.evdev_backend import (
    Clock,
    DecoderOptions,
    DeviceDecoder,
    DeviceRegistry,
    RegistryOptions,
)
from common.logging_utils import get_logger

from .client_hub import ClientHub
from .key_names import KeyNameTable
from .models import ServerConfig
from .scheduler import Scheduler

LISTEN_BACKLOG = 3


def create_listener(path: Path) -> socket.socket:
    """Bind a world-connectable Unix stream socket at path.

    The parent directory is created if needed and a stale socket file is
    removed first.

    Raises:
        FatalError: If the socket cannot be created, bound or listened on
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.unlink(missing_ok=True)
    except OSError as e:
        raise FatalError(f'Cannot prepare socket path {path}: {e}') from e

    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.bind(str(path))
        os.chmod(path, 0o666)
        sock.listen(LISTEN_BACKLOG)
        sock.setblocking(False)
    except OSError as e:
        sock.close()
        raise FatalError(f'Cannot listen on {path}: {e}') from e
    return sock


class Server:
    """Owns every resource the server holds and releases them in close()."""

    def __init__(
        self,
        config: ServerConfig,
        key_names: KeyNameTable,
        registry: DeviceRegistry | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.config = config
        self.key_names = key_names
        self.clock = clock
        self.logger = get_logger('inputlirc.server')
        self.registry = registry or DeviceRegistry(
            get_logger('inputlirc.devices'),
            RegistryOptions(
                grab=config.grab,
                autorepeat=config.autorepeat,
                autorepeat_delay=config.autorepeat_delay,
                autorepeat_period=config.autorepeat_period,
            ),
        )
        self.hub = ClientHub()
        self.listener: socket.socket | None = None
        self.scheduler: Scheduler | None = None

    def setup(self) -> None:
        """Open devices and the listening socket.

        Raises:
            FatalError: If the socket cannot be created or no device opens
        """
        for target in self.config.devices:
            self.registry.open(target)
        if not self.registry.open_devices:
            raise FatalError('No usable input devices')

        self.listener = create_listener(self.config.socket_path)
        self.logger.info(f'Listening on {self.config.socket_path}')

        decoder = DeviceDecoder(
            DecoderOptions(
                key_min=self.config.key_min,
                capture_modifiers=self.config.capture_modifiers,
                repeat_window=self.config.repeat_window,
                source_name=self.config.source_name,
            ),
            self.key_names,
            self.hub,
        )
        self.scheduler = Scheduler(
            self.registry,
            decoder,
            self.hub,
            self.listener,
            clock=self.clock,
            rescan_interval=self.config.rescan_interval,
        )

    def run(self) -> None:
        if self.scheduler is None:
            self.setup()
        self.scheduler.run()

    def stop(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()

    def close(self) -> None:
        self.hub.close_all()
        if self.scheduler is not None:
            self.scheduler.close()
            self.scheduler = None
        self.registry.close_all()
        if self.listener is not None:
            self.listener.close()
            self.listener = None
            with suppress(OSError):
                self.config.socket_path.unlink(missing_ok=True)

    def __enter__(self) -> 'Server':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
