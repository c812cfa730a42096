from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Any, Callable

import evdev
from evdev import ecodes

from ..base import DeviceOpenError
from .key_state import AutorepeatTimer
from .parser import parse_event
from .types import Device, KeyEvent

NAME_PREFIX = 'name:'
INPUT_DEVICE_DIR = '/dev/input'


@dataclass(frozen=True)
class RegistryOptions:
    grab: bool = False
    autorepeat: bool = False
    autorepeat_delay: float = 0.25
    autorepeat_period: float = 0.033
    input_dir: str = INPUT_DEVICE_DIR


def name_matches(name: str, pattern: str) -> bool:
    return fnmatchcase(name.casefold(), pattern.casefold())


class DeviceRegistry:
    """Owns every configured input device and reopens the ones that went away."""

    def __init__(
        self,
        logger: Any,
        options: RegistryOptions | None = None,
        open_device: Callable[[str], Any] = evdev.InputDevice,
        list_devices: Callable[[str], list[str]] = evdev.list_devices,
    ) -> None:
        self.logger = logger
        self.options = options or RegistryOptions()
        self._open_device = open_device
        self._list_devices = list_devices
        self.devices: list[Device] = []
        self.patterns: list[str] = []

    # -------------------- Queries --------------------
    @property
    def open_devices(self) -> list[Device]:
        return [d for d in self.devices if d.is_open]

    @property
    def closed_devices(self) -> list[Device]:
        return [d for d in self.devices if not d.is_open]

    @property
    def unmatched_patterns(self) -> list[str]:
        """Name patterns that no open device currently satisfies."""
        names = [d.name for d in self.open_devices if d.by_name]
        return [p for p in self.patterns if not any(name_matches(n, p) for n in names)]

    @property
    def needs_rescan(self) -> bool:
        return bool(self.closed_devices or self.unmatched_patterns)

    @staticmethod
    def has_key_caps(handle: Any) -> bool:
        return ecodes.EV_KEY in handle.capabilities()

    @staticmethod
    def has_hw_autorepeat(handle: Any) -> bool:
        return ecodes.EV_REP in handle.capabilities()

    # -------------------- Opening --------------------
    def open(self, target: str) -> list[Device]:
        """Open a device by path, or every device whose name matches ``name:<glob>``.

        Every target is remembered: a path that fails to open is kept as a
        Closed device, and a pattern keeps being matched by rescan().
        Per-device failures are logged and skipped. Returns the devices opened.
        """
        if target.startswith(NAME_PREFIX):
            pattern = target[len(NAME_PREFIX):]
            if pattern not in self.patterns:
                self.patterns.append(pattern)
            opened = self._open_by_pattern(pattern)
            if not opened:
                self.logger.warning(f'No input device name matches "{pattern}" yet')
            return opened

        device = Device(identity=target)
        self.devices.append(device)
        try:
            self._attach(device, target)
        except DeviceOpenError as e:
            self.logger.warning(f'Cannot use input device {target}, will retry: {e}')
            return []
        self.logger.info(f'Opened input device {device}')
        return [device]

    def _open_by_pattern(self, pattern: str) -> list[Device]:
        opened = []
        for path in self._candidates():
            if path in self._open_paths():
                continue
            try:
                handle = self._open_device(path)
            except OSError as e:
                self.logger.debug(f'Skipping {path}: {e}')
                continue
            if not name_matches(handle.name, pattern):
                with suppress(OSError):
                    handle.close()
                continue
            device = Device(identity=handle.name, by_name=True)
            try:
                self._adopt(device, handle, path)
            except DeviceOpenError as e:
                self.logger.warning(f'Cannot use input device {path} ({handle.name}): {e}')
                continue
            self.devices.append(device)
            self.logger.info(f'Opened input device {device} matching "{pattern}"')
            opened.append(device)
        return opened

    def _candidates(self) -> list[str]:
        try:
            return sorted(self._list_devices(self.options.input_dir))
        except OSError as e:
            self.logger.warning(f'Cannot scan {self.options.input_dir}: {e}')
            return []

    def _open_paths(self) -> set[str]:
        return {d.path for d in self.devices if d.is_open}

    def _attach(self, device: Device, path: str) -> None:
        try:
            handle = self._open_device(path)
        except OSError as e:
            raise DeviceOpenError(str(e)) from e
        self._adopt(device, handle, path)

    def _adopt(self, device: Device, handle: Any, path: str) -> None:
        """Validate and grab handle, then bind it to device. Closes handle on failure."""
        try:
            if not self.has_key_caps(handle):
                raise DeviceOpenError(f'{path} does not report key events')
            if self.options.grab:
                try:
                    handle.grab()
                except OSError as e:
                    raise DeviceOpenError(f'cannot grab: {e}') from e
        except DeviceOpenError:
            with suppress(OSError):
                handle.close()
            raise

        device.handle = handle
        device.name = handle.name
        device.path = path
        device.hw_autorepeat = self.has_hw_autorepeat(handle)
        if self.options.autorepeat and not device.hw_autorepeat:
            if device.autorepeat is None:
                device.autorepeat = AutorepeatTimer(
                    self.options.autorepeat_delay, self.options.autorepeat_period
                )
        else:
            device.autorepeat = None

    # -------------------- Reading / closing --------------------
    def read(self, device: Device, now: float) -> list[KeyEvent]:
        """Drain the events currently queued on device.

        The newest event is stamped with now and the others keep their
        kernel-reported spacing before it, so a batch still tells a quick
        re-press from a held key.

        Raises OSError when the device has gone away.
        """
        raw_events = []
        try:
            for raw in device.handle.read():
                if raw.type == ecodes.EV_KEY:
                    raw_events.append(raw)
        except BlockingIOError:
            pass
        if not raw_events:
            return []
        latest = max(raw.timestamp() for raw in raw_events)
        return [
            parse_event(raw, now - max(0.0, latest - raw.timestamp()))
            for raw in raw_events
        ]

    def mark_closed(self, device: Device) -> None:
        """Close device's handle; the record stays for the next rescan."""
        handle, device.handle = device.handle, None
        if handle is None:
            return
        with suppress(OSError):
            handle.close()
        self.logger.warning(f'Input device {device} closed, waiting for it to come back')

    def close_all(self) -> None:
        for device in self.devices:
            handle, device.handle = device.handle, None
            if handle is None:
                continue
            if self.options.grab:
                with suppress(OSError):
                    handle.ungrab()
            with suppress(OSError):
                handle.close()

    # -------------------- Rescan --------------------
    def rescan(self) -> list[Device]:
        """Reopen closed devices and match unmatched name patterns again.

        Returns every device that became open, old records and new ones.
        """
        reopened = []
        for device in self.closed_devices:
            seen_before = bool(device.path)
            try:
                if device.by_name:
                    self._reattach_by_name(device)
                else:
                    self._attach(device, device.identity)
            except DeviceOpenError as e:
                self.logger.debug(f'Rescan: {device.identity} still unavailable: {e}')
                continue
            device.reset_decode_state()
            self.logger.info(f'{"Reopened" if seen_before else "Opened"} input device {device}')
            reopened.append(device)

        for pattern in self.unmatched_patterns:
            reopened.extend(self._open_by_pattern(pattern))
        return reopened

    def _reattach_by_name(self, device: Device) -> None:
        taken = self._open_paths()
        for path in self._candidates():
            if path in taken:
                continue
            try:
                handle = self._open_device(path)
            except OSError:
                continue
            if handle.name != device.identity:
                with suppress(OSError):
                    handle.close()
                continue
            self._adopt(device, handle, path)
            return
        raise DeviceOpenError(f'no device named "{device.identity}"')
