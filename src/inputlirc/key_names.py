"""Mapping between evdev key codes and the names reported to LIRC clients.

The built-in table comes from evdev's own ``ecodes`` names (KEY_* and BTN_*).
A translation file can rename entries with lines like::

    KEY_OK = KEY_ENTER
    0x160 = KEY_SELECT
    352 = KEY_SELECT
"""

from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from evdev import ecodes

from common.logging_utils import get_logger


logger = get_logger('inputlirc.key_names')


# Range markers and button-group bases that share a code with a real key.
_MARKER_SUFFIXES = ('_MIN_INTERESTING', '_MAX', '_CNT')
_GROUP_BASES = frozenset({
    'BTN_MISC', 'BTN_MOUSE', 'BTN_JOYSTICK', 'BTN_GAMEPAD',
    'BTN_DIGI', 'BTN_WHEEL', 'BTN_TRIGGER_HAPPY',
})
# Compatibility spellings that input.h defines in terms of another name.
_LEGACY_ALIASES = frozenset({
    'KEY_BRIGHTNESS_ZERO', 'KEY_DIRECTION', 'KEY_HANGUEL', 'KEY_SCREENLOCK',
    'KEY_WIMAX', 'BTN_A', 'BTN_B', 'BTN_X', 'BTN_Y',
})


def preferred_name(aliases) -> str:
    """Pick the kernel's own name for a code that evdev lists under several."""
    aliases = sorted(aliases)
    real = [n for n in aliases if not n.endswith(_MARKER_SUFFIXES) and n not in _GROUP_BASES]
    current = [n for n in real if n not in _LEGACY_ALIASES]
    return (current or real or aliases)[0]


def builtin_key_names() -> dict[int, str]:
    """Return code -> name for every key and button evdev knows.

    Codes with several aliases get the name input.h gives the key itself,
    so 113 is KEY_MUTE rather than KEY_MIN_INTERESTING.
    """
    names: dict[int, str] = {}
    for code, name in ecodes.bytype[ecodes.EV_KEY].items():
        if isinstance(name, (list, tuple)):
            if not name:
                continue
            name = preferred_name(name)
        names[code] = name
    return names


def parse_code(text: str) -> int | None:
    """Parse a decimal or 0x-prefixed key code, None if text is not a number."""
    try:
        return int(text, 0)
    except ValueError:
        return None


class KeyNameTable:
    """Read-only code -> name lookup, fixed once the server starts."""

    def __init__(self, names: Mapping[int, str] | None = None) -> None:
        self._names = MappingProxyType(dict(builtin_key_names() if names is None else names))

    def lookup(self, code: int) -> str | None:
        return self._names.get(code)

    def __len__(self) -> int:
        return len(self._names)

    @classmethod
    def load(cls, override_file: Path | None = None) -> 'KeyNameTable':
        """Build the table, applying override_file on top of the built-in names.

        Raises:
            OSError: If override_file cannot be read
        """
        names = builtin_key_names()
        if override_file is not None:
            text = override_file.read_text(encoding='utf-8', errors='replace')
            applied = apply_overrides(names, text.splitlines())
            logger.info(f'Applied {applied} key name override(s) from {override_file}')
        return cls(names)


def apply_overrides(names: dict[int, str], lines: list[str]) -> int:
    """Apply ``<code-or-name> = <new-name>`` lines to names in place.

    Blank, comment and malformed lines are skipped. Returns how many lines
    changed at least one entry.
    """
    applied = 0
    for lineno, raw in enumerate(lines, 1):
        line = raw.strip()
        if not line or line.startswith('#'):
            continue
        key, sep, new_name = (part.strip() for part in line.partition('='))
        if not sep or not key or not new_name or ' ' in new_name:
            logger.debug(f'Ignoring malformed override line {lineno}: {raw!r}')
            continue

        code = parse_code(key)
        if code is not None:
            if code < 0 or code > ecodes.KEY_MAX:
                logger.debug(f'Ignoring out-of-range code on line {lineno}: {code}')
                continue
            names[code] = new_name
            applied += 1
            continue

        matches = [c for c, name in names.items() if name == key]
        if not matches:
            logger.debug(f'Ignoring unknown key name on line {lineno}: {key}')
            continue
        for c in matches:
            names[c] = new_name
        applied += 1
    return applied
