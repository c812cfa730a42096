import tomllib
from pathlib import Path

import pytest

from inputlirc.config_loader import ConfigLoader
from inputlirc.models import DEFAULT_SOCKET_PATH, ServerConfig, parse_timing


class TestServerConfig:
    def test_defaults(self):
        config = ServerConfig(devices=['/dev/input/event3'])
        assert config.key_min == 88
        assert config.repeat_window == 0.5
        assert config.socket_path == DEFAULT_SOCKET_PATH
        assert (config.autorepeat_delay, config.autorepeat_period) == (0.25, 0.033)

    @pytest.mark.parametrize('kwargs', [
        {'devices': []},
        {'key_min': -1},
        {'repeat_window': -0.1},
        {'autorepeat_period': 0},
        {'rescan_interval': 0},
        {'source_name': 'two words'},
        {'source_name': ''},
        {'log_level': 'LOUD'},
    ])
    def test_invalid(self, kwargs):
        kwargs.setdefault('devices', ['/dev/input/event3'])
        with pytest.raises(ValueError):
            ServerConfig(**kwargs)


def test_parse_timing():
    assert parse_timing('250,33') == pytest.approx((0.25, 0.033))
    assert parse_timing(' 300 , 40 ') == pytest.approx((0.3, 0.04))
    with pytest.raises(ValueError):
        parse_timing('250')
    with pytest.raises(ValueError):
        parse_timing('fast,slow')


class TestConfigLoader:
    def test_full_file(self, tmp_path):
        path = tmp_path / 'config.toml'
        path.write_text(
            '[server]\n'
            'devices = ["name:*remote*", "/dev/input/event3"]\n'
            'grab = true\n'
            'key_min = 0\n'
            'repeat_window_ms = 300\n'
            'socket = "/tmp/lircd"\n'
            'name = "livingroom"\n'
            'autorepeat = true\n'
            'autorepeat_delay_ms = 400\n'
            'autorepeat_period_ms = 50\n'
            'log_level = "debug"\n'
        )
        settings, loaded_from = ConfigLoader.load(path)
        assert loaded_from == path.resolve()
        config = ServerConfig(**settings)
        assert config.devices == ['name:*remote*', '/dev/input/event3']
        assert config.grab is True
        assert config.key_min == 0
        assert config.repeat_window == pytest.approx(0.3)
        assert config.socket_path == Path('/tmp/lircd')
        assert config.source_name == 'livingroom'
        assert config.autorepeat_delay == pytest.approx(0.4)
        assert config.autorepeat_period == pytest.approx(0.05)
        assert config.log_level == 'DEBUG'

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load(tmp_path / 'nope.toml')

    def test_no_default_file(self, monkeypatch, tmp_path):
        monkeypatch.setattr(ConfigLoader, 'DEFAULT_PATHS', [tmp_path / 'nope.toml'])
        assert ConfigLoader.load() == ({}, None)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / 'config.toml'
        path.write_text('[server]\nturbo = true\n')
        with pytest.raises(ValueError, match='turbo'):
            ConfigLoader.load(path)

    @pytest.mark.parametrize('line', [
        'grab = "yes"',
        'key_min = true',
        'devices = "/dev/input/event3"',
        'repeat_window_ms = "fast"',
    ])
    def test_wrong_types(self, tmp_path, line):
        path = tmp_path / 'config.toml'
        path.write_text(f'[server]\n{line}\n')
        with pytest.raises((TypeError, ValueError)):
            ConfigLoader.load(path)

    def test_bad_syntax(self, tmp_path):
        path = tmp_path / 'config.toml'
        path.write_text('[server\n')
        with pytest.raises(tomllib.TOMLDecodeError):
            ConfigLoader.load(path)
