import os

import pytest

from common.backends import FatalError
from inputlirc.daemon_manager import DaemonManager, drop_privileges


def test_lock_and_pid(tmp_path):
    pid_file = tmp_path / 'run' / 'inputlirc.pid'
    daemon = DaemonManager(pid_file)
    assert not daemon.is_running()

    assert daemon.acquire_lock()
    try:
        assert daemon.get_pid() == os.getpid()
        assert daemon.is_running()
        assert not DaemonManager(pid_file).acquire_lock()
    finally:
        daemon.cleanup()

    assert not pid_file.exists()
    assert not daemon.is_running()


def test_stale_pid_file_is_not_running(tmp_path):
    pid_file = tmp_path / 'inputlirc.pid'
    pid_file.write_text('999999\n')
    daemon = DaemonManager(pid_file)
    assert not daemon.is_running()
    assert not daemon.stop()


def test_get_pid_garbage(tmp_path):
    pid_file = tmp_path / 'inputlirc.pid'
    pid_file.write_text('not a pid')
    assert DaemonManager(pid_file).get_pid() is None


def test_unknown_user_is_fatal():
    with pytest.raises(FatalError, match='Unknown user'):
        drop_privileges('no-such-user-inputlirc')
