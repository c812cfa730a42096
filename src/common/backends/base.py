"""Error types shared by the device backend and the server.

Device- and client-scoped failures are plain ``OSError``s caught at the
seam that owns the entity. Only failures that must end the process are
raised as ``FatalError`` and travel up to the top-level run function.
"""


class FatalError(Exception):
    """Raised when the server cannot continue.

    This can happen for various reasons:
    - The listening socket cannot be created, bound or listened on
    - No input device could be opened at startup
    - The configured run-as user does not exist or cannot be switched to

    The top-level run function performs cleanup before the CLI turns this
    into a non-zero exit status.
    """
    pass


class DeviceOpenError(OSError):
    """Raised when a single input device cannot be opened or grabbed.

    Never fatal on its own: the registry logs it and moves on.
    """
    pass
