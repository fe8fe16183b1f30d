from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from eddwire.log import get_logger
from eddwire.utils import is_valid_alias, is_ws_url
from eddclient.ws_client import DEFAULT_CONNECT_TIMEOUT

logger = get_logger(__name__)

DEFAULT_SERVER = "ws://localhost:8080/edd"


class ConfigError(ValueError):
    """Raised when the client configuration file or environment is invalid."""
    pass


def default_server() -> str:
    return os.getenv("EDD_SERVER", DEFAULT_SERVER)


def default_connect_timeout() -> float:
    value = os.getenv("EDD_CONNECT_TIMEOUT")
    if not value:
        return DEFAULT_CONNECT_TIMEOUT
    try:
        return float(value)
    except ValueError:
        raise ConfigError(f"EDD_CONNECT_TIMEOUT must be a number, got {value!r}")


@dataclass
class ClientConfig:
    """
    Client settings, from a YAML file such as:

        server: ws://localhost:8080/edd
        connect_timeout: 5
        channels: [chat, lobby]
        username: alice
        password: secret
        log_level: INFO
    """
    server: str = field(default_factory=default_server)
    connect_timeout: float = field(default_factory=default_connect_timeout)
    channels: List[str] = field(default_factory=list)
    username: Optional[str] = None
    password: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not is_ws_url(self.server):
            raise ConfigError(f"Invalid server address: {self.server!r}")
        if self.connect_timeout <= 0:
            raise ConfigError("connect_timeout must be positive")
        for alias in self.channels:
            if not is_valid_alias(alias):
                raise ConfigError(f"Invalid channel alias: {alias!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ClientConfig:
        known = {"server", "connect_timeout", "channels", "username", "password", "log_level"}
        unknown = set(data) - known
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", sorted(unknown))
        kwargs = {k: v for k, v in data.items() if k in known and v is not None}

        channels = kwargs.get("channels")
        if isinstance(channels, str):
            kwargs["channels"] = [channels]
        elif channels is not None and not isinstance(channels, list):
            raise ConfigError("'channels' must be a list of aliases")
        if "connect_timeout" in kwargs:
            try:
                kwargs["connect_timeout"] = float(kwargs["connect_timeout"])
            except (TypeError, ValueError):
                raise ConfigError("'connect_timeout' must be a number")
        for key in ("server", "username", "password", "log_level"):
            if key in kwargs and not isinstance(kwargs[key], str):
                kwargs[key] = str(kwargs[key])
        return cls(**kwargs)


def load_config(path: Optional[Path] = None) -> ClientConfig:
    """Load client settings from YAML; missing file or None means defaults"""
    if path is None:
        return ClientConfig()
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error reading {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")
    logger.debug("Loaded config from %s", path)
    return ClientConfig.from_dict(data)
