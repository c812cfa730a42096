"""Logging utilities for consistent logger creation across the project.

Loggers are named after module paths ('inputlirc.server',
'inputlirc.devices', ...) and configured once, on the 'inputlirc' root,
by setup_logging_handler().
"""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path

SYSLOG_SOCKET = '/dev/log'


def get_logger(name: str | None = None) -> logging.Logger:
    """Create or retrieve a logger with consistent naming.

    Args:
        name: Logger name. If None, the calling module's ``__name__`` is used.

    Returns:
        logging.Logger: Logger instance

    Examples:
        >>> logger = get_logger('inputlirc.server')
        >>> logger.info('Message')
    """
    if name is None:
        import inspect
        frame = inspect.currentframe()
        if frame is not None and frame.f_back is not None:
            name = frame.f_back.f_globals.get('__name__', 'inputlirc')
        else:
            name = 'inputlirc'

    return logging.getLogger(name)


class ISOFormatter(logging.Formatter):
    """Log formatter with ISO timestamp including milliseconds.

    Formats log messages as:
        <ISO-datetime-with-ms> <log-level> [<module>:<lineno>]: <message>
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).isoformat(timespec='milliseconds')
        message = f'{timestamp} {record.levelname} [{record.module}:{record.lineno}]: {record.getMessage()}'
        if record.exc_info:
            message += '\n' + self.formatException(record.exc_info)
        return message


def setup_logging_handler(
    logger: logging.Logger,
    log_level: str = 'INFO',
    foreground: bool = True,
    log_file: Path | None = None,
) -> None:
    """Set up the logging handler for foreground or background mode.

    Args:
        logger: Logger instance to configure
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        foreground: If True, log to stderr. Otherwise log to log_file, or to
            syslog when no log file is configured
        log_file: Path to log file (used only when foreground=False)
    """
    level = getattr(logging, log_level.upper())
    logger.setLevel(level)
    logger.handlers.clear()

    handler: logging.Handler
    if foreground:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ISOFormatter())
    elif log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file)
        handler.setFormatter(ISOFormatter())
    else:
        handler = logging.handlers.SysLogHandler(
            address=SYSLOG_SOCKET,
            facility=logging.handlers.SysLogHandler.LOG_DAEMON,
        )
        handler.setFormatter(logging.Formatter('inputlirc[%(process)d]: %(message)s'))

    handler.setLevel(level)
    logger.addHandler(handler)
