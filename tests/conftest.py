import httpx
import pytest

from hurl import syntax
from hurl.config import Config
from hurl.session import MemoryStorage, SessionStore


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep tests away from the user's config, sessions and HURL_* variables."""
    for env_var in Config.ENV_MAPPINGS:
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setenv('HURL_CONFIG_DIR', str(tmp_path / 'config'))
    monkeypatch.setenv('HURL_DATA_DIR', str(tmp_path / 'data'))


@pytest.fixture
def config():
    return Config(data={'output': {'color': False}})


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def session_store(storage):
    return SessionStore(storage)


@pytest.fixture
def highlighter():
    return syntax.build(color=False)


@pytest.fixture
def make_transport():
    """Build a MockTransport that also records every request it sees."""

    def _make(handler):
        seen = []

        def _handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        transport = httpx.MockTransport(_handler)
        transport.requests = seen
        return transport

    return _make
