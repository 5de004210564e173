"""Shared test fixtures and utilities."""

from pathlib import Path

import pytest

from flight_cache.client import CacheClient
from tests.fakes import FakeCacheServer, HOST


# ========== Fixtures ==========

@pytest.fixture
def server():
    """Fresh in-memory cache server."""
    return FakeCacheServer()


@pytest.fixture
def client(server):
    """CacheClient wired to the fake server."""
    return CacheClient(host=HOST, token="secret-token", timeout=5, session=server)


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Isolate HOME and flight env vars so no real config is read."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))  # Windows
    for var in ("FLIGHT_CACHE_HOST", "FLIGHT_CACHE_CONFIG", "FLIGHT_AUTH_TOKEN", "FLIGHT_SSO_TOKEN"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def write_file(tmp_path):
    """Factory fixture to write files relative to tmp_path."""
    def _write(path: str, content: bytes = b"test content") -> Path:
        file_path = tmp_path / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(content)
        return file_path
    return _write

