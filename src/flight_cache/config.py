"""Client configuration helpers.

Host and token are resolved from the environment first, then from YAML
config files; missing files are allowed. The token is only demanded when a
request actually needs it.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .constants import (
    ACCOUNT_CONFIG_PATH,
    CONFIG_ENV,
    CONFIG_PATH,
    DEFAULT_HOST,
    DEFAULT_TIMEOUT,
    HOST_ENV,
    LEGACY_TOKEN_ENV,
    TOKEN_ENV,
)
from .errors import ConfigError, MissingTokenError
from .service_types import CollisionPolicy


@dataclass
class CacheConfig:
    """Settings for one client invocation."""

    host: str = DEFAULT_HOST
    token: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    collision_policy: CollisionPolicy = CollisionPolicy.RENAME

    def require_token(self) -> str:
        """Return the auth token.

        Raises:
            MissingTokenError: If no token was resolved
        """
        if not self.token:
            raise MissingTokenError()
        return self.token


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read a YAML mapping, treating a missing file as empty."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
    account_path: Optional[Path] = None,
) -> CacheConfig:
    """Resolve client configuration.

    Resolution order for each setting is environment, then config file, then
    default.

    Args:
        environ: Environment mapping (defaults to os.environ)
        config_path: Cache config file (defaults to $FLIGHT_CACHE_CONFIG or
            ~/.config/flight/cache.yaml)
        account_path: Account config file holding ``auth_token``

    Raises:
        ConfigError: If a config file is unreadable or has invalid values
    """
    env = os.environ if environ is None else environ

    if config_path is None:
        config_path = Path(env[CONFIG_ENV]) if env.get(CONFIG_ENV) else CONFIG_PATH
    if account_path is None:
        account_path = ACCOUNT_CONFIG_PATH

    data = _read_yaml(config_path.expanduser())
    account = _read_yaml(account_path.expanduser())

    host = env.get(HOST_ENV) or data.get("host") or DEFAULT_HOST
    token = env.get(TOKEN_ENV) or env.get(LEGACY_TOKEN_ENV) or account.get("auth_token")

    raw_timeout = data.get("timeout", DEFAULT_TIMEOUT)
    try:
        if isinstance(raw_timeout, bool):
            raise ValueError(raw_timeout)
        timeout = float(raw_timeout)
    except (TypeError, ValueError):
        timeout = 0.0
    if not timeout > 0:
        raise ConfigError(
            f"Invalid timeout in {config_path}: {raw_timeout!r} (expected a positive number of seconds)"
        )

    try:
        policy = CollisionPolicy(data.get("collision_policy", CollisionPolicy.RENAME.value))
    except ValueError:
        raise ConfigError(
            f"Invalid collision_policy in {config_path}: {data.get('collision_policy')!r} "
            f"(expected 'rename' or 'overwrite')"
        )

    return CacheConfig(
        host=str(host).rstrip("/"),
        token=token,
        timeout=timeout,
        collision_policy=policy,
    )
