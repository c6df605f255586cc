"""
Connection and runtime configuration.

Settings are layered, later layers winning:

    1. RedisFSConfig defaults
    2. {REDISFS_HOME}/config.yaml
    3. environment (REDIS_FS_VOLUME, REDISCLI_AUTH, REDIS_FS_HISTORY, NO_COLOR)
    4. explicit overrides (CLI flags)

Example config.yaml:

    host: redis.internal
    port: 6380
    volume: work
    socket_timeout: 2.5
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import redis
import yaml
from pydantic import BaseModel

from . import REDISFS_HOME
from .engine import FilesystemEngine
from .keys import DEFAULT_VOLUME, validate_volume
from .observer import BackgroundObserver, FileObserver

logger = logging.getLogger("redisfs.config")

CONFIG_FILE = "config.yaml"


class RedisFSConfig(BaseModel):
    """Everything needed to reach Redis and present results."""

    host: str = "127.0.0.1"
    port: int = 6379
    socket: Optional[str] = None
    password: Optional[str] = None
    db: int = 0
    uri: Optional[str] = None
    tls: bool = False
    cacert: Optional[str] = None
    cert: Optional[str] = None
    key: Optional[str] = None
    volume: str = DEFAULT_VOLUME
    socket_timeout: float = 5.0
    json_output: bool = False
    color: Optional[bool] = None
    history_file: str = "~/.redisfs/shell_history"
    observer_timeout: float = 30.0


def _env_overrides() -> dict:
    values: dict = {}
    if os.environ.get("REDIS_FS_VOLUME"):
        values["volume"] = os.environ["REDIS_FS_VOLUME"]
    if os.environ.get("REDISCLI_AUTH"):
        values["password"] = os.environ["REDISCLI_AUTH"]
    if os.environ.get("REDIS_FS_HISTORY"):
        values["history_file"] = os.environ["REDIS_FS_HISTORY"]
    if os.environ.get("NO_COLOR"):
        values["color"] = False
    return values


def load_config(home: Optional[Path] = None, **overrides) -> RedisFSConfig:
    """Build the effective configuration.

    Args:
        home: Directory holding ``config.yaml``. Defaults to ``REDISFS_HOME``.
        **overrides: Field values that win over everything else; ``None``
            values are ignored so unset CLI flags do not mask the file.

    Returns:
        The merged configuration. A broken config file logs a warning and
        is skipped.
    """
    home = Path(home or REDISFS_HOME).expanduser()
    values: dict = {}

    config_file = home / CONFIG_FILE
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text()) or {}
            if not isinstance(data, dict):
                raise ValueError("top level must be a mapping")
            values.update(data)
        except (yaml.YAMLError, ValueError) as exc:
            logger.warning("Failed to load config %s: %s; using defaults", config_file, exc)

    values.update(_env_overrides())
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return RedisFSConfig(**values)
    except ValueError as exc:
        logger.warning("Invalid configuration: %s; using defaults", exc)
        return RedisFSConfig(**{k: v for k, v in overrides.items() if v is not None})


def build_client(config: RedisFSConfig) -> redis.Redis:
    """Create a redis-py client for ``config``.

    Responses are not decoded: file content travels as bytes.
    """
    common = {
        "decode_responses": False,
        "socket_timeout": config.socket_timeout,
        "socket_connect_timeout": config.socket_timeout,
    }
    if config.uri:
        kwargs = dict(common)
        if config.db:
            kwargs["db"] = config.db
        return redis.Redis.from_url(config.uri, **kwargs)

    if config.socket:
        return redis.Redis(
            unix_socket_path=config.socket,
            password=config.password,
            db=config.db,
            **common,
        )

    tls = {}
    if config.tls:
        tls = {
            "ssl": True,
            "ssl_ca_certs": config.cacert,
            "ssl_certfile": config.cert,
            "ssl_keyfile": config.key,
        }
    return redis.Redis(
        host=config.host,
        port=config.port,
        password=config.password,
        db=config.db,
        **tls,
        **common,
    )


def build_engine(config: RedisFSConfig, observer: Optional[FileObserver] = None) -> FilesystemEngine:
    """Engine on the configured volume.

    Args:
        config: Effective configuration.
        observer: Optional hook for content changes. It is wrapped in a
            ``BackgroundObserver`` whose per-notification deadline is
            ``config.observer_timeout``; the caller closes it via
            ``engine.observer.close()``.

    Raises:
        InvalidArgument: If ``config.volume`` is not a valid volume name.
    """
    validate_volume(config.volume)
    background = None
    if observer is not None:
        background = BackgroundObserver(observer, timeout=config.observer_timeout)
    return FilesystemEngine(build_client(config), config.volume, background)


def address(config: RedisFSConfig) -> str:
    """Human-readable server address for prompts and banners."""
    if config.uri:
        return config.uri
    if config.socket:
        return config.socket
    return f"{config.host}:{config.port}"


def should_color(config: RedisFSConfig) -> bool:
    """Explicit setting first, then ``NO_COLOR``, then whether stdout is a tty."""
    if config.color is not None:
        return config.color
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


def setup_logging(verbose: bool = False) -> None:
    """Send log records to stderr; DEBUG when verbose, WARNING otherwise."""
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s")
    )
    root = logging.getLogger("redisfs")
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
