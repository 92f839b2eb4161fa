"""
Shared pytest fixtures and path setup for unit tests.
"""

import os
import sys
from pathlib import Path

# Set environment defaults BEFORE any jobharness imports so Settings picks
# them up. These are test-only defaults.
os.environ.setdefault("JOBHARNESS_ENVIRONMENT", "test")
os.environ.setdefault("JOBHARNESS_TESTING_MODE", "fake")

# Add backend/src to sys.path so jobharness.* imports work when running pytest from repo root.
PROJECT_SRC = Path(__file__).resolve().parents[2]
if str(PROJECT_SRC) not in sys.path:
    sys.path.insert(0, str(PROJECT_SRC))

import pytest
import redis

from jobharness.core import config as config_module
from jobharness.core.modes import HarnessMode, Testing
from jobharness.core.queues import reset_queue_store
from jobharness.core.redis_client import reset_redis_client, set_redis_client
from jobharness.core.registry import registered_workers, restore_registry
from jobharness.pytest_plugin import (  # noqa: F401
    disabled_jobs,
    fake_jobs,
    inline_jobs,
    job_queues,
)


# =============================================================================
# Fake Redis client
# =============================================================================


class FakePipeline:
    """Buffers commands and applies them to the owning FakeRedis on execute()."""

    def __init__(self, client: "FakeRedis", transaction: bool = True):
        self._client = client
        self.transaction = transaction
        self._commands: list[tuple[str, tuple]] = []

    def sadd(self, key, *members):
        self._commands.append(("sadd", (key, *members)))
        return self

    def lpush(self, key, *values):
        self._commands.append(("lpush", (key, *values)))
        return self

    def zadd(self, key, mapping):
        self._commands.append(("zadd", (key, mapping)))
        return self

    def execute(self):
        if self._client.fail_with is not None:
            raise self._client.fail_with
        results = [getattr(self._client, name)(*args) for name, args in self._commands]
        self._client.executed.append(list(self._commands))
        self._commands.clear()
        return results


class FakeRedis:
    """Minimal in-memory stand-in for the synchronous redis client.

    Implements only the commands the real submission path issues, with
    Redis list semantics (LPUSH inserts at the head).
    """

    def __init__(self):
        self.lists: dict[str, list[str]] = {}
        self.sets: dict[str, set[str]] = {}
        self.zsets: dict[str, dict[str, float]] = {}
        self.executed: list[list[tuple[str, tuple]]] = []
        self.fail_with: Exception | None = None

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self, transaction)

    def sadd(self, key, *members):
        bucket = self.sets.setdefault(key, set())
        added = len(set(members) - bucket)
        bucket.update(members)
        return added

    def lpush(self, key, *values):
        lst = self.lists.setdefault(key, [])
        for value in values:
            lst.insert(0, value)
        return len(lst)

    def zadd(self, key, mapping):
        zset = self.zsets.setdefault(key, {})
        added = len(set(mapping) - set(zset))
        zset.update(mapping)
        return added


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_harness():
    """Give every test an empty queue store, default mode and no middleware.

    Workers defined inside a test are unregistered when it finishes.
    """
    config_module.reset_settings()
    reset_queue_store()
    Testing.reset()
    reset_redis_client()
    workers = registered_workers()
    yield
    restore_registry(workers)
    reset_queue_store()
    Testing.reset()
    reset_redis_client()
    config_module.reset_settings()


@pytest.fixture(autouse=True)
def _jobharness_mode_marker(_reset_harness, request):
    """Apply @pytest.mark.jobharness_mode after the harness has been reset."""
    marker = request.node.get_closest_marker("jobharness_mode")
    if marker is None:
        yield
        return
    with Testing.set_mode(HarnessMode.parse(marker.args[0])):
        yield


@pytest.fixture
def fake_redis():
    """Install a FakeRedis as the shared Redis client."""
    client = FakeRedis()
    set_redis_client(client)
    return client


@pytest.fixture
def broken_redis(fake_redis):
    """A FakeRedis whose transactions fail as if the server were down."""
    fake_redis.fail_with = redis.ConnectionError("Connection refused")
    return fake_redis
