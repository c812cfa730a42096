from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from evdev import ecodes

MODIFIER_ORDER = ('ctrl', 'shift', 'alt', 'meta')

MODIFIER_CODES: dict[int, str] = {
    ecodes.KEY_LEFTCTRL: 'ctrl', ecodes.KEY_RIGHTCTRL: 'ctrl',
    ecodes.KEY_LEFTSHIFT: 'shift', ecodes.KEY_RIGHTSHIFT: 'shift',
    ecodes.KEY_LEFTALT: 'alt', ecodes.KEY_RIGHTALT: 'alt',
    ecodes.KEY_LEFTMETA: 'meta', ecodes.KEY_RIGHTMETA: 'meta',
}


@dataclass
class ModifierState:
    """Held modifier flags for one device.

    Left and right variants share one flag; the last event for either wins.
    """
    ctrl: bool = False
    shift: bool = False
    alt: bool = False
    meta: bool = False

    def update(self, code: int, value: int) -> bool:
        """Apply a modifier key event. Returns False if code is not a modifier."""
        flag = MODIFIER_CODES.get(code)
        if flag is None:
            return False
        setattr(self, flag, value != 0)
        return True

    def prefix(self) -> str:
        """Return the protocol prefix, e.g. 'CTRL_SHIFT_' for ctrl+shift held."""
        return ''.join(f'{flag.upper()}_' for flag in MODIFIER_ORDER if getattr(self, flag))

    def clear(self) -> None:
        for flag in MODIFIER_ORDER:
            setattr(self, flag, False)


class AutorepeatPhase(enum.Enum):
    IDLE = 'idle'
    ARMED = 'armed'
    REPEATING = 'repeating'


class AutorepeatTimer:
    """Synthesizes repeated presses while a key stays down.

    One active code per device; a new press replaces it (last press wins).
    Times are seconds on the caller's monotonic clock.
    """

    def __init__(self, delay: float, period: float) -> None:
        if delay < 0 or period <= 0:
            raise ValueError(f'Invalid autorepeat timing: delay={delay}, period={period}')
        self.delay = delay
        self.period = period
        self.active_code = 0
        self.deadline: Optional[float] = None
        self.phase = AutorepeatPhase.IDLE

    def feed(self, code: int, value: int, now: float) -> None:
        """Track a press (value 1 or 2) or release (value 0) of code."""
        if value:
            self.active_code = code
            self.deadline = now + self.delay
            self.phase = AutorepeatPhase.ARMED
        elif code == self.active_code:
            self.cancel()

    def cancel(self) -> None:
        self.active_code = 0
        self.deadline = None
        self.phase = AutorepeatPhase.IDLE

    def time_left(self, now: float) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - now)

    def poll(self, now: float) -> Optional[int]:
        """Return the active code if a repeat is due, re-arming for the next period."""
        if self.deadline is None or now < self.deadline:
            return None
        self.deadline = now + self.period
        self.phase = AutorepeatPhase.REPEATING
        return self.active_code
