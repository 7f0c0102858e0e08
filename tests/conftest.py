"""Shared fixtures: in-memory Redis doubles and a scripted random source."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import redis

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from proficiency_store import ProficiencyStore


class FakeRedis:
    """Hash-only stand-in for redis.Redis(decode_responses=True)."""

    def __init__(self):
        self.hashes = {}

    def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    def hset(self, key, field=None, value=None, mapping=None):
        bucket = self.hashes.setdefault(key, {})
        if mapping:
            bucket.update({k: str(v) for k, v in mapping.items()})
        if field is not None:
            bucket[field] = str(value)
        return len(mapping or {}) + (1 if field is not None else 0)

    def exists(self, key):
        return int(key in self.hashes)

    def delete(self, *keys):
        return sum(1 for k in keys if self.hashes.pop(k, None) is not None)


class FailingRedis:
    """Every command fails as if the server were down."""

    def __init__(self):
        self.calls = 0

    def _fail(self, *args, **kwargs):
        self.calls += 1
        raise redis.ConnectionError("Connection refused")

    hgetall = hset = exists = delete = _fail


class ScriptedRandom:
    """
    Deterministic rng for the item selector.

    random() pops from `values` (then repeats `default`); choice() returns
    seq[choice_index].
    """

    def __init__(self, values=None, default=0.99, choice_index=0):
        self.values = list(values or [])
        self.default = default
        self.choice_index = choice_index
        self.random_calls = 0

    def random(self):
        self.random_calls += 1
        if self.values:
            return self.values.pop(0)
        return self.default

    def choice(self, seq):
        return seq[self.choice_index]


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def store(fake_redis):
    return ProficiencyStore(client=fake_redis, prefix="test")


@pytest.fixture
def failing_store():
    return ProficiencyStore(client=FailingRedis(), prefix="test")


@pytest.fixture
def fixed_now():
    return datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def scripted_random():
    """Factory for ScriptedRandom instances."""
    return ScriptedRandom
