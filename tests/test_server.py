import logging
import socket
import stat

import pytest
from evdev import ecodes
from typer.testing import CliRunner

from common.backends import FatalError
from common.backends.evdev_backend import DeviceRegistry
from inputlirc.config_loader import ConfigLoader
from inputlirc.key_names import KeyNameTable
from inputlirc.main import EXIT_OSERR, EXIT_USAGE, app, build_config
from inputlirc.models import ServerConfig
from inputlirc.server import Server, create_listener


logger = logging.getLogger(__name__)


class TestCreateListener:
    def test_creates_parent_and_opens_permissions(self, tmp_path):
        path = tmp_path / 'run' / 'lirc' / 'lircd'
        listener = create_listener(path)
        try:
            assert stat.S_ISSOCK(path.stat().st_mode)
            assert stat.S_IMODE(path.stat().st_mode) == 0o666
            assert listener.getblocking() is False
        finally:
            listener.close()

    def test_replaces_stale_socket_file(self, tmp_path):
        path = tmp_path / 'lircd'
        path.write_text('stale')
        listener = create_listener(path)
        try:
            assert stat.S_ISSOCK(path.stat().st_mode)
        finally:
            listener.close()

    def test_unusable_path_is_fatal(self, tmp_path):
        blocker = tmp_path / 'not-a-dir'
        blocker.write_text('')
        with pytest.raises(FatalError):
            create_listener(blocker / 'lircd')


def make_server(nodes, tmp_path, devices):
    config = ServerConfig(devices=devices, socket_path=tmp_path / 'lircd', key_min=0)
    registry = DeviceRegistry(logger, open_device=nodes.open, list_devices=nodes.list_devices)
    return Server(config, KeyNameTable(), registry=registry)


class TestServer:
    def test_no_devices_is_fatal(self, nodes, tmp_path):
        server = make_server(nodes, tmp_path, ['/dev/input/event9'])
        with server, pytest.raises(FatalError, match='No usable input devices'):
            server.setup()
        assert not (tmp_path / 'lircd').exists()

    def test_some_devices_missing_is_fine(self, nodes, tmp_path):
        nodes.plug('/dev/input/event3')
        server = make_server(nodes, tmp_path, ['/dev/input/event9', '/dev/input/event3'])
        with server:
            server.setup()
            assert len(server.registry.open_devices) == 1
            assert [d.identity for d in server.registry.closed_devices] == ['/dev/input/event9']

    def test_end_to_end_and_cleanup(self, nodes, tmp_path):
        nodes.plug('/dev/input/event3', name='Fake IR Remote')
        server = make_server(nodes, tmp_path, ['/dev/input/event3'])
        with server:
            server.setup()
            client = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            client.settimeout(1.0)
            client.connect(str(tmp_path / 'lircd'))
            server.scheduler.run_once()

            handle = nodes.opened['/dev/input/event3']
            handle.push(ecodes.KEY_A, 1)
            server.scheduler.run_once()
            assert client.recv(100) == b'1e 0 KEY_A Fake IR Remote\n'

        assert client.recv(100) == b''
        client.close()
        assert handle.closed
        assert not (tmp_path / 'lircd').exists()


@pytest.fixture
def no_default_config(monkeypatch, tmp_path):
    monkeypatch.setattr(ConfigLoader, 'DEFAULT_PATHS', [tmp_path / 'absent.toml'])
    yield
    # start() points the 'inputlirc' logger at the runner's stderr
    logging.getLogger('inputlirc').handlers.clear()


class TestCli:
    def test_build_config_cli_wins(self, tmp_path):
        path = tmp_path / 'config.toml'
        path.write_text('[server]\ndevices = ["/dev/input/event1"]\nkey_min = 10\ngrab = true\n')
        config = build_config(path, {'key_min': 0, 'devices': [], 'grab': False, 'source_name': None})
        assert config.devices == ['/dev/input/event1']
        assert config.key_min == 0
        assert config.grab is True

    def test_missing_devices_is_usage_error(self, no_default_config):
        result = CliRunner().invoke(app, ['start', '-f'])
        assert result.exit_code == EXIT_USAGE

    def test_bad_autorepeat_timing_is_usage_error(self, no_default_config):
        result = CliRunner().invoke(app, ['start', '-f', '-A', '250', '/dev/input/event3'])
        assert result.exit_code == EXIT_USAGE

    def test_missing_translation_table_is_usage_error(self, no_default_config, tmp_path):
        result = CliRunner().invoke(
            app, ['start', '-f', '-t', str(tmp_path / 'missing.conf'), '/dev/input/event3']
        )
        assert result.exit_code == EXIT_USAGE

    def test_no_openable_device_is_runtime_error(self, no_default_config, tmp_path):
        result = CliRunner().invoke(
            app, ['start', '-f', '-s', str(tmp_path / 'lircd'), str(tmp_path / 'event99')]
        )
        assert result.exit_code == EXIT_OSERR
        assert not (tmp_path / 'lircd').exists()

    def test_status_when_not_running(self, tmp_path):
        result = CliRunner().invoke(app, ['status', '--pid-file', str(tmp_path / 'inputlirc.pid')])
        assert result.exit_code == 1
        assert 'not running' in result.output
