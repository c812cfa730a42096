"""Evdev backend package.

Device registry, per-device decode pipeline and the key state machines
behind them. Everything here runs on the server's single loop thread.
"""

from .device_manager import DeviceRegistry, RegistryOptions
from .key_state import AutorepeatPhase, AutorepeatTimer, ModifierState
from .parser import parse_event
from .processor import DecoderOptions, DeviceDecoder, format_line
from .types import Clock, Device, DeviceState, KeyEvent

__all__ = [
    'AutorepeatPhase',
    'AutorepeatTimer',
    'Clock',
    'DecoderOptions',
    'Device',
    'DeviceDecoder',
    'DeviceRegistry',
    'DeviceState',
    'KeyEvent',
    'ModifierState',
    'RegistryOptions',
    'format_line',
    'parse_event',
]
