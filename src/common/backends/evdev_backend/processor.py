from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from evdev import ecodes

from .types import Device, KeyEvent, KeyNameLookup, LineSink


@dataclass(frozen=True)
class DecoderOptions:
    """Settings shared by every device's decode pipeline.

    Attributes:
        key_min: Lowest key code that is reported
        key_max: Highest key code that is reported
        capture_modifiers: Track ctrl/shift/alt/meta as state instead of reporting them
        repeat_window: Max seconds between two presses of one code to count as a repeat
        source_name: Overrides the device name in emitted lines
    """
    key_min: int = 88
    key_max: int = ecodes.KEY_MAX
    capture_modifiers: bool = False
    repeat_window: float = 0.5
    source_name: str | None = None


def format_line(code: int, repeat: int, prefix: str, key_name: str, source: str) -> str:
    return f'{code:x} {repeat:x} {prefix}{key_name} {source}\n'


class DeviceDecoder:
    """Turns key events from a device into protocol lines for the client hub."""

    def __init__(
        self,
        options: DecoderOptions,
        key_names: KeyNameLookup,
        sink: LineSink,
        logger: Any = None,
    ) -> None:
        self.options = options
        self.key_names = key_names
        self.sink = sink
        self.logger = logger or logging.getLogger('inputlirc.decoder')

    def process(self, device: Device, event: KeyEvent) -> str | None:
        """Apply the decode steps to one key event.

        Returns the emitted line, or None if the event was consumed or dropped.
        """
        code = event.code
        if not self.options.key_min <= code <= self.options.key_max:
            return None

        if self.options.capture_modifiers and device.modifiers.update(code, event.value):
            self.logger.debug(f'{device.name}: modifiers now {device.modifiers.prefix() or "none"}')
            return None

        if device.autorepeat is not None:
            device.autorepeat.feed(code, event.value, event.timestamp)

        if event.is_release:
            return None

        return self._report(device, code, event.timestamp)

    def fire_autorepeat(self, device: Device, now: float) -> str | None:
        """Emit a synthetic press if the device's autorepeat timer is due."""
        if device.autorepeat is None:
            return None
        code = device.autorepeat.poll(now)
        if code is None:
            return None
        return self._report(device, code, now)

    def _report(self, device: Device, code: int, now: float) -> str:
        if (
            code == device.last_code
            and device.last_time is not None
            and now - device.last_time < self.options.repeat_window
        ):
            device.repeat += 1
        else:
            device.repeat = 0

        key_name = self.key_names.lookup(code) or f'KEY_CODE_{code}'
        source = self.options.source_name or device.name
        line = format_line(code, device.repeat, device.modifiers.prefix(), key_name, source)

        device.last_code = code
        device.last_time = now
        self.sink.broadcast(line)
        return line
