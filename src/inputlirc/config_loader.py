"""Configuration loader for inputlirc.

This module reads the optional TOML configuration file. Every setting can
also be given on the command line, which takes precedence.

Example::

    [server]
    devices = ["name:*remote*", "/dev/input/by-id/usb-ir-event-kbd"]
    grab = true
    key_min = 88
    repeat_window_ms = 500
    socket = "/var/run/lirc/lircd"
    autorepeat = true
    autorepeat_delay_ms = 250
    autorepeat_period_ms = 33
"""

import tomllib
from pathlib import Path
from typing import Any, ClassVar


class ConfigLoader:
    """Load and validate TOML configuration files."""

    DEFAULT_PATHS: ClassVar[list[Path]] = [
        Path('/etc/inputlirc/config.toml'),
    ]

    # TOML key -> (ServerConfig field, expected type, scale)
    FIELDS: ClassVar[dict[str, tuple[str, type | tuple[type, ...], float | None]]] = {
        'devices': ('devices', list, None),
        'grab': ('grab', bool, None),
        'key_min': ('key_min', int, None),
        'capture_modifiers': ('capture_modifiers', bool, None),
        'repeat_window_ms': ('repeat_window', (int, float), 0.001),
        'socket': ('socket_path', str, None),
        'name': ('source_name', str, None),
        'autorepeat': ('autorepeat', bool, None),
        'autorepeat_delay_ms': ('autorepeat_delay', (int, float), 0.001),
        'autorepeat_period_ms': ('autorepeat_period', (int, float), 0.001),
        'translation': ('translation_file', str, None),
        'user': ('user', str, None),
        'rescan_interval': ('rescan_interval', (int, float), None),
        'log_level': ('log_level', str, None),
        'log_file': ('log_file', str, None),
    }

    PATH_FIELDS: ClassVar[frozenset[str]] = frozenset({'socket_path', 'translation_file', 'log_file'})

    @staticmethod
    def load(config_path: Path | None = None) -> tuple[dict[str, Any], Path | None]:
        """Load settings from a TOML file.

        Args:
            config_path: Path to config file. If None, tries default paths
                and returns no settings when none exists.

        Returns:
            tuple[dict, Path | None]: ServerConfig keyword arguments and the
                path they were read from

        Raises:
            FileNotFoundError: If an explicit config file does not exist
            ValueError: If the configuration is invalid
            tomllib.TOMLDecodeError: If TOML syntax is invalid
        """
        if config_path:
            if not config_path.exists():
                raise FileNotFoundError(f'Config file not found: {config_path}')  # noqa: TRY003
            return (ConfigLoader._load_from_path(config_path), config_path.resolve())

        for path in ConfigLoader.DEFAULT_PATHS:
            if path.exists():
                return (ConfigLoader._load_from_path(path), path.resolve())

        return ({}, None)

    @staticmethod
    def _load_from_path(path: Path) -> dict[str, Any]:
        try:
            with path.open('rb') as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise tomllib.TOMLDecodeError(  # noqa: TRY003
                f'Invalid TOML syntax in {path}: {e}'
            ) from e

        return ConfigLoader._parse_config(data)

    @staticmethod
    def _parse_config(data: dict) -> dict[str, Any]:
        """Turn the ``[server]`` table into ServerConfig keyword arguments.

        Raises:
            ValueError: If a key is unknown or a value has the wrong type
        """
        server = data.get('server', {})
        if not isinstance(server, dict):
            raise TypeError("'server' must be a table")  # noqa: TRY003

        settings: dict[str, Any] = {}
        for key, value in server.items():
            if key not in ConfigLoader.FIELDS:
                raise ValueError(f'Unknown setting: server.{key}')  # noqa: TRY003
            field_name, expected, scale = ConfigLoader.FIELDS[key]
            # bool is an int subclass; only accept it where a bool is expected
            if not isinstance(value, expected) or (isinstance(value, bool) and expected is not bool):
                raise TypeError(f"'{key}' has the wrong type: {value!r}")  # noqa: TRY003
            if key == 'devices' and not all(isinstance(d, str) for d in value):
                raise ValueError('All devices must be strings')  # noqa: TRY003
            if scale is not None:
                value = value * scale
            if field_name in ConfigLoader.PATH_FIELDS:
                value = Path(value).expanduser()
            settings[field_name] = value

        if 'log_level' in settings:
            settings['log_level'] = settings['log_level'].upper()
        return settings
