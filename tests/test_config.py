"""Tests for configuration resolution."""

import pytest

from flight_cache.config import CacheConfig, load_config
from flight_cache.constants import DEFAULT_HOST, DEFAULT_TIMEOUT
from flight_cache.errors import ConfigError, MissingTokenError
from flight_cache.service_types import CollisionPolicy


@pytest.fixture
def account_file(isolated_home):
    path = isolated_home / ".config" / "flight" / "accounts" / "config.yml"
    path.parent.mkdir(parents=True)
    return path


@pytest.fixture
def cache_file(isolated_home):
    path = isolated_home / ".config" / "flight" / "cache.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def test_defaults_without_files(isolated_home):
    config = load_config()

    assert config.host == DEFAULT_HOST
    assert config.token is None
    assert config.timeout == DEFAULT_TIMEOUT
    assert config.collision_policy == CollisionPolicy.RENAME


def test_token_is_only_required_lazily(isolated_home):
    config = load_config()

    with pytest.raises(MissingTokenError, match="not logged in"):
        config.require_token()


def test_token_from_account_file(account_file):
    account_file.write_text("auth_token: from-file\n")

    assert load_config().require_token() == "from-file"


def test_env_token_overrides_file(account_file, monkeypatch):
    account_file.write_text("auth_token: from-file\n")
    monkeypatch.setenv("FLIGHT_AUTH_TOKEN", "from-env")

    assert load_config().token == "from-env"


def test_legacy_token_env(isolated_home, monkeypatch):
    monkeypatch.setenv("FLIGHT_SSO_TOKEN", "legacy")

    assert load_config().token == "legacy"


def test_host_resolution_order(cache_file, monkeypatch):
    cache_file.write_text("host: https://file.example.com/\n")
    assert load_config().host == "https://file.example.com"

    monkeypatch.setenv("FLIGHT_CACHE_HOST", "https://env.example.com")
    assert load_config().host == "https://env.example.com"


def test_config_path_from_env(isolated_home, tmp_path, monkeypatch):
    custom = tmp_path / "custom.yaml"
    custom.write_text("host: https://custom.example.com\ntimeout: 5\ncollision_policy: overwrite\n")
    monkeypatch.setenv("FLIGHT_CACHE_CONFIG", str(custom))

    config = load_config()

    assert config.host == "https://custom.example.com"
    assert config.timeout == 5.0
    assert config.collision_policy == CollisionPolicy.OVERWRITE


def test_explicit_environ(isolated_home):
    config = load_config(environ={"FLIGHT_AUTH_TOKEN": "t", "FLIGHT_CACHE_HOST": "http://localhost:9292"})

    assert config.token == "t"
    assert config.host == "http://localhost:9292"


def test_empty_file_is_allowed(cache_file):
    cache_file.write_text("")

    assert load_config().host == DEFAULT_HOST


def test_invalid_yaml_is_config_error(cache_file):
    cache_file.write_text("host: [unclosed\n")

    with pytest.raises(ConfigError, match="Could not read config file"):
        load_config()


def test_non_mapping_is_config_error(cache_file):
    cache_file.write_text("- just\n- a list\n")

    with pytest.raises(ConfigError, match="must contain a mapping"):
        load_config()


def test_invalid_collision_policy(cache_file):
    cache_file.write_text("collision_policy: sometimes\n")

    with pytest.raises(ConfigError, match="collision_policy"):
        load_config()


def test_invalid_timeout(cache_file):
    cache_file.write_text("timeout: soon\n")

    with pytest.raises(ConfigError, match="timeout"):
        load_config()


@pytest.mark.parametrize("value", ["0", "-5", "true", "nan"])
def test_non_positive_timeout(cache_file, value):
    cache_file.write_text(f"timeout: {value}\n")

    with pytest.raises(ConfigError, match="positive number"):
        load_config()


def test_fractional_timeout(cache_file):
    cache_file.write_text("timeout: 2.5\n")

    assert load_config().timeout == 2.5


def test_require_token_returns_token():
    assert CacheConfig(token="abc").require_token() == "abc"
