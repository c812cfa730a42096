"""Process management for inputlirc: PID file, background mode, run-as user."""

import errno
import fcntl
import os
import pwd
import signal
import sys
import time
from pathlib import Path

from common.backends import FatalError

DEFAULT_PID_FILE = Path('/var/run/inputlirc.pid')


class DaemonManager:
    """Single-instance guard backed by a locked PID file.

    The lock is held on an open descriptor for the life of the server, so
    the kernel drops it if the process dies without cleaning up.
    """

    def __init__(self, pid_file: Path = DEFAULT_PID_FILE) -> None:
        self.pid_file = pid_file
        self.pid_fd: int | None = None

    def acquire_lock(self) -> bool:
        """Lock the PID file and record our PID in it.

        Returns:
            bool: False if another instance already holds the lock
        """
        self.pid_file.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.pid_file, os.O_CREAT | os.O_RDWR, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            os.close(fd)
            if e.errno in (errno.EACCES, errno.EAGAIN):
                return False
            raise
        self.pid_fd = fd
        self.write_pid()
        return True

    def write_pid(self) -> None:
        """Rewrite the PID, e.g. after daemonize() changed it."""
        if self.pid_fd is None:
            return
        os.ftruncate(self.pid_fd, 0)
        os.pwrite(self.pid_fd, f'{os.getpid()}\n'.encode(), 0)

    def get_pid(self) -> int | None:
        try:
            return int(self.pid_file.read_text().strip())
        except (ValueError, OSError):
            return None

    def is_running(self) -> bool:
        """Return True if some process holds the PID file lock."""
        try:
            fd = os.open(self.pid_file, os.O_RDONLY)
        except OSError:
            return False
        try:
            fcntl.flock(fd, fcntl.LOCK_SH | fcntl.LOCK_NB)
        except OSError as e:
            return e.errno in (errno.EACCES, errno.EAGAIN)
        else:
            fcntl.flock(fd, fcntl.LOCK_UN)
            return False
        finally:
            os.close(fd)

    def stop(self, timeout: float = 5.0) -> bool:
        """Send SIGTERM to the running server and wait for it to exit.

        Returns:
            bool: True if the process is gone, False if there was nothing to stop
                or we are not allowed to signal it
        """
        pid = self.get_pid()
        if pid is None or not self.is_running():
            return False
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            return True
        except PermissionError:
            return False

        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if not self.is_running():
                return True
            time.sleep(0.1)
        return not self.is_running()

    def cleanup(self) -> None:
        if self.pid_fd is None:
            return
        try:
            self.pid_file.unlink(missing_ok=True)
            os.close(self.pid_fd)
        except OSError:
            pass
        finally:
            self.pid_fd = None


def daemonize() -> None:
    """Detach from the terminal with the classic double fork.

    Descriptors opened before the call (input devices, the listening
    socket, the PID file lock) are carried into the daemon.
    """
    if os.fork() > 0:
        os._exit(0)

    os.chdir('/')
    os.setsid()

    if os.fork() > 0:
        os._exit(0)

    sys.stdout.flush()
    sys.stderr.flush()
    devnull = os.open(os.devnull, os.O_RDWR)
    for stream in (sys.stdin, sys.stdout, sys.stderr):
        os.dup2(devnull, stream.fileno())
    os.close(devnull)


def drop_privileges(user: str) -> None:
    """Switch the process to user, including its supplementary groups.

    Raises:
        FatalError: If the user is unknown or the switch is refused
    """
    try:
        entry = pwd.getpwnam(user)
    except KeyError as e:
        raise FatalError(f'Unknown user: {user}') from e

    try:
        os.initgroups(entry.pw_name, entry.pw_gid)
        os.setgid(entry.pw_gid)
        os.setuid(entry.pw_uid)
    except OSError as e:
        raise FatalError(f'Cannot switch to user {user}: {e}') from e
