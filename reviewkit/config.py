"""Configuration: server address, webhook secret, GitHub access and rule gating.

Values come from an optional YAML file and are overridden by ``REVIEWKIT_*``
environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .errors import ConfigError
from .utils.fileio import read_yaml_file

logger = logging.getLogger(__name__)

ENV_PREFIX = "REVIEWKIT_"
DEFAULT_CONFIG_FILE = ".reviewkit.yaml"
DEFAULT_PORT = 3000
DEFAULT_HOST = "127.0.0.1"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_BRANCHES = ("main", "master")
TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    webhook_secret: Optional[str] = None
    allow_unsigned_webhooks: bool = False
    github_token: Optional[str] = None
    github_api_url: str = DEFAULT_GITHUB_API_URL
    default_branches: Tuple[str, ...] = DEFAULT_BRANCHES
    disabled_rules: Tuple[str, ...] = field(default_factory=tuple)
    log_level: str = "INFO"

    def require_webhook_policy(self) -> None:
        """Fail closed: unsigned webhooks need an explicit opt-in."""

        if self.webhook_secret:
            return
        if not self.allow_unsigned_webhooks:
            raise ConfigError(
                "REVIEWKIT_WEBHOOK_SECRET is required. Set it to the secret configured on the GitHub "
                "webhook, or set REVIEWKIT_ALLOW_UNSIGNED_WEBHOOKS=true to accept unsigned payloads."
            )
        logger.warning("Webhook signature verification is disabled; any caller can trigger reviews")


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


def _as_tuple(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(item.strip() for item in value.split(",") if item.strip())
    if isinstance(value, (list, tuple, set)):
        return tuple(str(item).strip() for item in value if str(item).strip())
    raise ConfigError(f"Expected a list or comma separated string, got {value!r}")


def _as_port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid port: {value!r}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"Port out of range: {port}")
    return port


CONVERTERS = {
    "host": str,
    "port": _as_port,
    "webhook_secret": str,
    "allow_unsigned_webhooks": _as_bool,
    "github_token": str,
    "github_api_url": lambda value: str(value).rstrip("/"),
    "default_branches": _as_tuple,
    "disabled_rules": _as_tuple,
    "log_level": lambda value: str(value).upper(),
}


def _from_mapping(data: Mapping[str, Any], origin: str) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, raw in data.items():
        name = str(key).lower()
        if name not in CONVERTERS:
            raise ConfigError(f"Unknown setting {key!r} in {origin}")
        if raw is None or raw == "":
            continue
        values[name] = CONVERTERS[name](raw)
    return values


def load_settings(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from ``path`` (default ``.reviewkit.yaml``) and the environment."""

    env = os.environ if env is None else env
    config_path = Path(path or env.get(f"{ENV_PREFIX}CONFIG", DEFAULT_CONFIG_FILE))
    values: Dict[str, Any] = {}

    data = read_yaml_file(config_path)
    if data is not None:
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration at {config_path} is not a mapping")
        values.update(_from_mapping(data, str(config_path)))
    elif path is not None:
        raise ConfigError(f"Configuration file {config_path} does not exist")

    overrides = {
        key[len(ENV_PREFIX):]: value
        for key, value in env.items()
        if key.startswith(ENV_PREFIX) and key[len(ENV_PREFIX):].lower() in CONVERTERS
    }
    values.update(_from_mapping(overrides, "environment"))
    return replace(Settings(), **values)
