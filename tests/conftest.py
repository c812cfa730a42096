# Fake evdev devices backed by pipes, so the scheduler's selector can wait on them.
from __future__ import annotations

import errno
import os

import pytest
from evdev import InputEvent, ecodes

from common.backends.evdev_backend import Device, ModifierState


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeInputDevice:
    """Stands in for evdev.InputDevice.

    Pushing an event writes a byte to the pipe so the read end becomes
    readable, exactly like a real event node with queued input.
    """

    def __init__(self, path: str, name: str, keys=True, hw_repeat=False, grab_error=None):
        self.path = path
        self.name = name
        self._keys = keys
        self._hw_repeat = hw_repeat
        self._grab_error = grab_error
        self._rfd, self._wfd = os.pipe()
        os.set_blocking(self._rfd, False)
        self.pending: list[InputEvent] = []
        self.error: OSError | None = None
        self.grabbed = False
        self.closed = False

    def capabilities(self):
        caps = {ecodes.EV_SYN: [0]}
        if self._keys:
            caps[ecodes.EV_KEY] = [ecodes.KEY_OK, ecodes.KEY_UP, ecodes.KEY_DOWN]
        if self._hw_repeat:
            caps[ecodes.EV_REP] = [ecodes.REP_DELAY, ecodes.REP_PERIOD]
        return caps

    def fileno(self) -> int:
        return self._rfd

    def grab(self):
        if self._grab_error is not None:
            raise self._grab_error
        self.grabbed = True

    def ungrab(self):
        self.grabbed = False

    def push(self, code: int, value: int, type_: int = ecodes.EV_KEY, sec: int = 0, usec: int = 0) -> None:
        self.pending.append(InputEvent(sec, usec, type_, code, value))
        os.write(self._wfd, b'.')

    def unplug(self) -> None:
        self.error = OSError(errno.ENODEV, 'No such device')
        os.write(self._wfd, b'.')

    def read(self):
        try:
            while os.read(self._rfd, 64):
                pass
        except BlockingIOError:
            pass
        if self.error is not None:
            raise self.error
        if not self.pending:
            raise BlockingIOError(errno.EAGAIN, 'Resource temporarily unavailable')
        events, self.pending = self.pending, []
        return iter(events)

    def close(self):
        if not self.closed:
            self.closed = True
            os.close(self._rfd)
            os.close(self._wfd)


class FakeDeviceNodes:
    """A fake /dev/input: maps paths to device descriptions and opens fresh handles."""

    def __init__(self):
        self.available: dict[str, dict] = {}
        self.opened: dict[str, FakeInputDevice] = {}
        self.handles: list[FakeInputDevice] = []

    def plug(self, path: str, name: str = 'Fake IR Remote', **kwargs) -> None:
        self.available[path] = dict(name=name, **kwargs)

    def unplug(self, path: str) -> None:
        self.available.pop(path, None)
        handle = self.opened.get(path)
        if handle is not None and not handle.closed:
            handle.unplug()

    def open(self, path: str) -> FakeInputDevice:
        if path not in self.available:
            raise FileNotFoundError(errno.ENOENT, 'No such file or directory', path)
        handle = FakeInputDevice(path, **self.available[path])
        self.opened[path] = handle
        self.handles.append(handle)
        return handle

    def list_devices(self, input_dir: str) -> list[str]:
        return [p for p in self.available if p.startswith(input_dir)]

    def close_all(self) -> None:
        for handle in self.handles:
            handle.close()


class RecordingSink:
    def __init__(self):
        self.lines: list[str] = []

    def broadcast(self, line: str) -> None:
        self.lines.append(line)


class StaticNames:
    def __init__(self, names: dict[int, str]):
        self.names = names

    def lookup(self, code: int):
        return self.names.get(code)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def nodes():
    fake = FakeDeviceNodes()
    yield fake
    fake.close_all()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def device():
    return Device(identity='/dev/input/event7', name='remote', path='/dev/input/event7', modifiers=ModifierState())
