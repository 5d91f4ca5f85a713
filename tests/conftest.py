"""
Shared pytest fixtures for npm registry tests.
"""

from datetime import datetime, timezone

import httpx
import pytest

from npm_registry.core.clients.registry import RegistryClient
from npm_registry.core.config import RegistryConfig

REGISTRY = "https://registry.npmjs.org"
DOWNLOADS = "https://api.npmjs.org"

NOW = datetime(2026, 10, 1, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class SleepRecorder:
    """Stands in for asyncio.sleep; records requested delays and returns immediately."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture(autouse=True)
def no_github_token(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def make_client(clock, sleeps):
    """Build an isolated RegistryClient whose requests go to ``handler``.

    ``handler`` may be sync or async and receives the ``httpx.Request``.
    Extra keyword arguments override ``RegistryConfig`` fields.
    """

    def factory(handler, **overrides):
        async def dispatch(request: httpx.Request) -> httpx.Response:
            result = handler(request)
            if hasattr(result, "__await__"):
                result = await result
            return result

        return RegistryClient(
            RegistryConfig(**overrides),
            transport=httpx.MockTransport(dispatch),
            sleep=sleeps,
            clock=clock,
        )

    return factory


@pytest.fixture
def registry_client(sleeps):
    """Client on the default transport, for tests that mock the network with respx."""
    return RegistryClient(sleep=sleeps)


@pytest.fixture
def packument():
    """A small packument with a deprecated release, a prerelease and peer dependencies."""
    return {
        "name": "demo",
        "description": "Demo package",
        "dist-tags": {"latest": "2.0.0", "next": "3.0.0-beta.1"},
        "versions": {
            "1.0.0": {
                "name": "demo",
                "version": "1.0.0",
                "description": "Demo package",
                "main": "index.js",
                "dependencies": {"lodash": "^4.17.0", "debug": "^4.0.0"},
                "peerDependencies": {"react": "^17.0.0"},
                "dist": {"tarball": f"{REGISTRY}/demo/-/demo-1.0.0.tgz", "shasum": "aaa", "unpackedSize": 20480},
                "deprecated": "Use 2.x",
            },
            "1.1.0": {
                "name": "demo",
                "version": "1.1.0",
                "main": "index.js",
                "dependencies": {"lodash": "^4.17.0", "debug": "^4.0.0"},
                "peerDependencies": {"react": "^17.0.0"},
                "dist": {"tarball": f"{REGISTRY}/demo/-/demo-1.1.0.tgz", "shasum": "bbb"},
            },
            "2.0.0": {
                "name": "demo",
                "version": "2.0.0",
                "description": "Demo package, now with ESM",
                "main": "index.js",
                "module": "index.mjs",
                "sideEffects": False,
                "license": "MIT",
                "author": "Alice Example <alice@example.com> (https://example.com)",
                "dependencies": {"lodash": "^4.17.21", "chalk": "^5.0.0"},
                "devDependencies": {"pytest-like": "1.0.0"},
                "peerDependencies": {"react": "^17.0.0 || ^18.0.0", "react-dom": ">=18"},
                "dist": {
                    "tarball": f"{REGISTRY}/demo/-/demo-2.0.0.tgz",
                    "shasum": "ccc",
                    "integrity": "sha512-xyz",
                    "fileCount": 12,
                    "unpackedSize": 51200,
                },
            },
            "3.0.0-beta.1": {
                "name": "demo",
                "version": "3.0.0-beta.1",
                "dist": {"tarball": f"{REGISTRY}/demo/-/demo-3.0.0-beta.1.tgz", "shasum": "ddd"},
            },
        },
        "time": {
            "created": "2020-01-01T00:00:00.000Z",
            "modified": "2026-09-20T00:00:00.000Z",
            "1.0.0": "2020-06-01T00:00:00.000Z",
            "1.1.0": "2021-03-01T00:00:00.000Z",
            "2.0.0": "2026-09-20T00:00:00.000Z",
            "3.0.0-beta.1": "2026-09-25T00:00:00.000Z",
        },
        "repository": {"type": "git", "url": "git+https://github.com/acme/demo.git"},
        "license": "MIT",
        "maintainers": [{"name": "alice", "email": "alice@example.com"}],
    }
