from __future__ import annotations

from typing import Any

from evdev import ecodes

from .types import KeyEvent


def parse_event(event: Any, now: float) -> KeyEvent | None:
    """Turn a raw evdev event into a KeyEvent stamped with now.

    Returns None for anything that is not a key state change.
    """
    if event.type != ecodes.EV_KEY:
        return None
    return KeyEvent(code=event.code, value=event.value, timestamp=now)
