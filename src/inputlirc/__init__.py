"""inputlirc - relay input device key events to LIRC clients.

Reads key presses from evdev input devices and broadcasts them as LIRC
protocol lines to every client connected to a local Unix socket.
"""

from common.version import __version__

__all__ = ['__version__']
