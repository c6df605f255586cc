"""Tests for redisfs.config — layered configuration and client factory."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml

from redisfs.config import (
    RedisFSConfig,
    address,
    build_client,
    build_engine,
    load_config,
    setup_logging,
    should_color,
)
from redisfs.errors import InvalidArgument
from redisfs.observer import BackgroundObserver, FileObserver

ENV_VARS = ("REDIS_FS_VOLUME", "REDISCLI_AUTH", "REDIS_FS_HISTORY", "NO_COLOR")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's environment out of these tests."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    home = tmp_path / ".redisfs"
    home.mkdir()
    return home


class TestLoadConfig:
    """Tests for load_config() layering."""

    def test_defaults(self, home):
        """No file, no env: plain defaults."""
        config = load_config(home)
        assert config == RedisFSConfig()
        assert config.volume == "main"
        assert config.port == 6379

    def test_yaml_file(self, home):
        """config.yaml overrides defaults."""
        (home / "config.yaml").write_text(yaml.dump({"host": "redis.internal", "port": 6380}))
        config = load_config(home)
        assert (config.host, config.port) == ("redis.internal", 6380)

    def test_env_over_file(self, home, monkeypatch):
        """Environment beats the file."""
        (home / "config.yaml").write_text(yaml.dump({"volume": "fromfile"}))
        monkeypatch.setenv("REDIS_FS_VOLUME", "fromenv")
        monkeypatch.setenv("REDISCLI_AUTH", "secret")
        monkeypatch.setenv("NO_COLOR", "1")
        config = load_config(home)
        assert config.volume == "fromenv"
        assert config.password == "secret"
        assert config.color is False

    def test_overrides_win_and_none_ignored(self, home, monkeypatch):
        """Explicit overrides win; None means 'not given'."""
        monkeypatch.setenv("REDIS_FS_VOLUME", "fromenv")
        config = load_config(home, volume="flag", host=None)
        assert config.volume == "flag"
        assert config.host == "127.0.0.1"

    def test_broken_yaml_falls_back(self, home, caplog):
        """Unparsable YAML logs a warning and uses defaults."""
        (home / "config.yaml").write_text("host: [unclosed")
        with caplog.at_level(logging.WARNING, logger="redisfs.config"):
            config = load_config(home)
        assert config.host == "127.0.0.1"
        assert "Failed to load config" in caplog.text

    def test_invalid_values_fall_back(self, home, caplog):
        """Values of the wrong type are reported, not fatal."""
        (home / "config.yaml").write_text(yaml.dump({"port": "not-a-port"}))
        with caplog.at_level(logging.WARNING, logger="redisfs.config"):
            config = load_config(home)
        assert config.port == 6379
        assert "Invalid configuration" in caplog.text


class TestBuildClient:
    """Tests for build_client()."""

    def test_tcp(self):
        """Host/port clients never decode responses."""
        with patch("redisfs.config.redis.Redis") as redis_cls:
            build_client(RedisFSConfig(host="h", port=1, password="pw", db=2))
        kwargs = redis_cls.call_args.kwargs
        assert kwargs["host"] == "h"
        assert kwargs["port"] == 1
        assert kwargs["db"] == 2
        assert kwargs["decode_responses"] is False
        assert kwargs["socket_timeout"] == 5.0
        assert "ssl" not in kwargs

    def test_tls(self):
        """TLS passes the certificate paths."""
        with patch("redisfs.config.redis.Redis") as redis_cls:
            build_client(RedisFSConfig(tls=True, cacert="/ca.pem"))
        kwargs = redis_cls.call_args.kwargs
        assert kwargs["ssl"] is True
        assert kwargs["ssl_ca_certs"] == "/ca.pem"

    def test_socket(self):
        """A unix socket takes precedence over host/port."""
        with patch("redisfs.config.redis.Redis") as redis_cls:
            build_client(RedisFSConfig(socket="/tmp/redis.sock"))
        assert redis_cls.call_args.kwargs["unix_socket_path"] == "/tmp/redis.sock"

    def test_uri(self):
        """A URI goes through from_url."""
        with patch("redisfs.config.redis.Redis") as redis_cls:
            build_client(RedisFSConfig(uri="redis://example:6379/0", db=3))
        redis_cls.from_url.assert_called_once()
        args, kwargs = redis_cls.from_url.call_args
        assert args == ("redis://example:6379/0",)
        assert kwargs["db"] == 3
        assert kwargs["decode_responses"] is False


class TestBuildEngine:
    """Tests for build_engine()."""

    def test_without_observer(self, fake_redis):
        """The engine is bound to the configured volume."""
        with patch("redisfs.config.build_client", return_value=fake_redis):
            engine = build_engine(RedisFSConfig(volume="work"))
        assert engine.client is fake_redis
        assert engine.volume == "work"
        assert engine.observer is None

    def test_observer_gets_configured_timeout(self, fake_redis):
        """A supplied observer runs in the background with observer_timeout."""
        inner = MagicMock(spec=FileObserver)
        with patch("redisfs.config.build_client", return_value=fake_redis):
            engine = build_engine(RedisFSConfig(observer_timeout=2.5), observer=inner)
        try:
            assert isinstance(engine.observer, BackgroundObserver)
            assert engine.observer.inner is inner
            assert engine.observer.timeout == 2.5
        finally:
            engine.observer.close()

    def test_invalid_volume(self, fake_redis):
        """A bad volume name fails before any observer is started."""
        inner = MagicMock(spec=FileObserver)
        with patch("redisfs.config.build_client", return_value=fake_redis), patch(
            "redisfs.config.BackgroundObserver"
        ) as background:
            with pytest.raises(InvalidArgument):
                build_engine(RedisFSConfig(volume="a:b"), observer=inner)
        background.assert_not_called()


class TestPresentation:
    """Tests for address(), should_color() and setup_logging()."""

    def test_address(self):
        """Socket, URI or host:port."""
        assert address(RedisFSConfig()) == "127.0.0.1:6379"
        assert address(RedisFSConfig(socket="/s")) == "/s"
        assert address(RedisFSConfig(uri="redis://x")) == "redis://x"

    def test_should_color(self, monkeypatch):
        """Explicit setting, then NO_COLOR."""
        assert should_color(RedisFSConfig(color=True)) is True
        assert should_color(RedisFSConfig(color=False)) is False
        monkeypatch.setenv("NO_COLOR", "1")
        assert should_color(RedisFSConfig()) is False

    def test_setup_logging(self):
        """Verbose means DEBUG on the package logger."""
        setup_logging(verbose=True)
        logger = logging.getLogger("redisfs")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        setup_logging(verbose=False)
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        logger.handlers = []
        logger.setLevel(logging.NOTSET)
