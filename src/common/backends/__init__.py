"""Input device backend for inputlirc.

This module exposes the evdev-based device registry and decode pipeline
together with the error types the server reacts to.
"""

from .base import DeviceOpenError, FatalError

__all__ = [
    'DeviceOpenError',
    'FatalError',
]
