"""Data models for inputlirc configuration."""

from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

DEFAULT_SOCKET_PATH = Path('/var/run/lirc/lircd')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR')


@dataclass
class ServerConfig:
    """Server configuration.

    Attributes:
        devices: Device paths, or ``name:<glob>`` patterns matched against
            the hardware-reported device name (case-insensitive)
        grab: Request exclusive delivery of events from each device
        key_min: Keys with a lower code are never reported
        capture_modifiers: Report ctrl/shift/alt/meta as name prefixes instead of events
        repeat_window: Max seconds between two presses of one key to count as a repeat
        socket_path: Where the listening socket is created
        source_name: Name reported as the remote; defaults to the device name
        autorepeat: Emulate key repeat for devices that do not repeat on their own
        autorepeat_delay: Seconds from press to the first synthetic repeat
        autorepeat_period: Seconds between synthetic repeats
        translation_file: Key name override file
        user: Switch to this user once devices and socket are open
        rescan_interval: Seconds between attempts to reopen lost devices
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Log file used when running in the background
    """
    devices: list[str] = field(default_factory=list)
    grab: bool = False
    key_min: int = 88
    capture_modifiers: bool = False
    repeat_window: float = 0.5
    socket_path: Path = DEFAULT_SOCKET_PATH
    source_name: str | None = None
    autorepeat: bool = False
    autorepeat_delay: float = 0.25
    autorepeat_period: float = 0.033
    translation_file: Path | None = None
    user: str | None = None
    rescan_interval: float = 5.0
    log_level: str = 'INFO'
    log_file: Path | None = None

    def __post_init__(self) -> None:
        """Validate the server configuration."""
        if not self.devices:
            raise ValueError('At least one input device must be given')  # noqa: TRY003

        if self.key_min < 0:
            raise ValueError(f'key_min must not be negative, got {self.key_min}')  # noqa: TRY003

        if self.repeat_window < 0:
            raise ValueError(f'repeat_window must not be negative, got {self.repeat_window}')  # noqa: TRY003

        if self.autorepeat_delay < 0 or self.autorepeat_period <= 0:
            raise ValueError(  # noqa: TRY003
                f'Invalid autorepeat timing: delay={self.autorepeat_delay}, '
                f'period={self.autorepeat_period}'
            )

        if self.rescan_interval <= 0:
            raise ValueError(f'rescan_interval must be positive, got {self.rescan_interval}')  # noqa: TRY003

        if self.source_name is not None and (not self.source_name or any(c.isspace() for c in self.source_name)):
            raise ValueError(f'Invalid remote name: {self.source_name!r}')  # noqa: TRY003

        if self.log_level not in LOG_LEVELS:
            raise ValueError(f'Invalid log_level: {self.log_level}')  # noqa: TRY003


def parse_timing(text: str) -> tuple[float, float]:
    """Parse an autorepeat ``DELAY,PERIOD`` pair given in milliseconds.

    Returns:
        tuple[float, float]: Delay and period in seconds

    Raises:
        ValueError: If text is not two comma-separated numbers
    """
    parts = [p.strip() for p in text.split(',')]
    if len(parts) != 2:
        raise ValueError(f'Expected DELAY,PERIOD in milliseconds, got {text!r}')  # noqa: TRY003
    delay_ms, period_ms = (float(p) for p in parts)
    return delay_ms / 1000.0, period_ms / 1000.0
