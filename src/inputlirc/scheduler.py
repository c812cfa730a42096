"""The single-threaded event loop that drives devices, clients and timers."""

import logging
import selectors
import socket
import time
from typing import Any

from common.backends.evdev_backend import Clock, Device, DeviceDecoder, DeviceRegistry

from .client_hub import ClientHub

DEFAULT_RESCAN_INTERVAL = 5.0
MAX_WAIT = 30.0
WAIT_SLACK = 0.001

_LISTENER = object()


class Scheduler:
    """Waits on device handles, the listening socket and the nearest timer deadline.

    All state (device list, client list, autorepeat timers) is touched only
    from run(), so nothing here needs a lock.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        decoder: DeviceDecoder,
        hub: ClientHub,
        listener: socket.socket,
        clock: Clock = time.monotonic,
        rescan_interval: float = DEFAULT_RESCAN_INTERVAL,
        selector: selectors.BaseSelector | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.registry = registry
        self.decoder = decoder
        self.hub = hub
        self.listener = listener
        self.clock = clock
        self.rescan_interval = rescan_interval
        self.selector = selector or selectors.DefaultSelector()
        self.logger = logger or logging.getLogger('inputlirc.scheduler')
        self._next_rescan = clock() + rescan_interval
        self._running = False

        self.selector.register(listener, selectors.EVENT_READ, _LISTENER)
        for device in registry.open_devices:
            self._watch(device)

    # -------------------- Wait set --------------------
    def _watch(self, device: Device) -> None:
        self.selector.register(device.handle, selectors.EVENT_READ, device)

    def _unwatch(self, device: Device) -> None:
        try:
            self.selector.unregister(device.handle)
        except (KeyError, ValueError):
            pass

    def _drop_device(self, device: Device, error: OSError) -> None:
        self.logger.warning(f'Read from {device} failed: {error}')
        self._unwatch(device)
        self.registry.mark_closed(device)

    # -------------------- Deadlines --------------------
    def next_timeout(self, now: float) -> float:
        """Seconds to wait: the earliest of rescan and autorepeat deadlines, plus slack."""
        deadlines = [MAX_WAIT]
        if self.registry.needs_rescan:
            deadlines.append(max(0.0, self._next_rescan - now))
        for device in self.registry.open_devices:
            if device.autorepeat is not None:
                left = device.autorepeat.time_left(now)
                if left is not None:
                    deadlines.append(left)
        return min(min(deadlines) + WAIT_SLACK, MAX_WAIT)

    # -------------------- Loop --------------------
    def run_once(self) -> None:
        timeout = self.next_timeout(self.clock())
        ready = self.selector.select(timeout)

        for key, _mask in ready:
            if key.data is _LISTENER:
                self.hub.accept(self.listener)
            else:
                self._dispatch_device(key.data)

        now = self.clock()
        self._fire_timers(now)
        if now >= self._next_rescan:
            self._rescan(now)

    def _dispatch_device(self, device: Device) -> None:
        if not device.is_open:
            return
        try:
            events = self.registry.read(device, self.clock())
        except OSError as e:
            self._drop_device(device, e)
            return
        for event in events:
            self.decoder.process(device, event)

    def _fire_timers(self, now: float) -> None:
        for device in self.registry.open_devices:
            self.decoder.fire_autorepeat(device, now)

    def _rescan(self, now: float) -> None:
        self._next_rescan = now + self.rescan_interval
        if not self.registry.needs_rescan:
            return
        for device in self.registry.rescan():
            self._watch(device)

    def run(self) -> None:
        """Loop until stop() is called or a signal handler raises."""
        self._running = True
        self.logger.info(
            f'Serving {len(self.registry.open_devices)} device(s), '
            f'rescan every {self.rescan_interval:g}s'
        )
        while self._running:
            self.run_once()

    def stop(self) -> None:
        self._running = False

    def close(self) -> None:
        self.selector.close()

    def __enter__(self) -> 'Scheduler':
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
