from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from .key_state import AutorepeatTimer, ModifierState

Clock = Callable[[], float]


class DeviceState(enum.Enum):
    OPEN = 'open'
    CLOSED = 'closed'


@dataclass(slots=True, frozen=True)
class KeyEvent:
    code: int
    value: int  # 0 release, 1 press, 2 hardware repeat
    timestamp: float

    @property
    def is_release(self) -> bool:
        return self.value == 0


@dataclass(eq=False)
class Device:
    """One input source and the decode state attached to it.

    Attributes:
        identity: Path for explicitly configured devices, or the hardware
            name that a ``name:`` pattern matched
        by_name: Whether ``identity`` is a hardware name rather than a path
        handle: Open evdev handle, or None while closed pending rescan
        name: Hardware-reported name, used as the default source name
        path: Device node the handle was opened from
        hw_autorepeat: True if the device repeats keys on its own (EV_REP)
        modifiers: Held modifier flags (only tracked with modifier capture)
        last_code: Code of the last reported press
        last_time: Timestamp of the last reported press
        repeat: Running repeat counter
        autorepeat: Software autorepeat timer, None when emulation is off
    """
    identity: str
    by_name: bool = False
    handle: Any = None
    name: str = ''
    path: str = ''
    hw_autorepeat: bool = False
    modifiers: ModifierState = field(default_factory=ModifierState)
    last_code: int = 0
    last_time: Optional[float] = None
    repeat: int = 0
    autorepeat: Optional[AutorepeatTimer] = None

    @property
    def state(self) -> DeviceState:
        return DeviceState.OPEN if self.handle is not None else DeviceState.CLOSED

    @property
    def is_open(self) -> bool:
        return self.handle is not None

    def reset_decode_state(self) -> None:
        """Forget modifiers, repeat bookkeeping and any in-flight autorepeat."""
        self.modifiers.clear()
        self.last_code = 0
        self.last_time = None
        self.repeat = 0
        if self.autorepeat is not None:
            self.autorepeat.cancel()

    def __str__(self) -> str:
        return f'{self.name or self.identity} ({self.path or self.identity})'


class LineSink(Protocol):
    def broadcast(self, line: str) -> None: ...


class KeyNameLookup(Protocol):
    def lookup(self, code: int) -> Optional[str]: ...
