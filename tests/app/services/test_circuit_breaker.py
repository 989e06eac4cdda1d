"""Tests for app.services.circuit_breaker — Redis-backed breaker around the OpenAI API."""
import time
import pytest
from unittest.mock import MagicMock

import openai
import redis

from app.errors import FoundationError
from app.services.circuit_breaker import (
    CircuitBreaker, CircuitOpenError, CLOSED, OPEN, HALF_OPEN,
    get_breaker, get_all_breakers, init_breakers, _registry,
)


class FakeRedis:
    """Minimal in-memory Redis fake for circuit breaker tests."""

    def __init__(self):
        self.get_store = {}
        self.hash_store = {}

    def get(self, key):
        return self.get_store.get(key)

    def set(self, key, value):
        self.get_store[key] = value

    def incr(self, key):
        val = int(self.get_store.get(key, 0)) + 1
        self.get_store[key] = str(val)
        return val

    def delete(self, *keys):
        for k in keys:
            self.get_store.pop(k, None)
            self.hash_store.pop(k, None)

    def hset(self, key, field, value):
        self.hash_store.setdefault(key, {})[field] = value

    def hincrby(self, key, field, amount):
        h = self.hash_store.setdefault(key, {})
        h[field] = str(int(h.get(field, 0)) + amount)

    def hgetall(self, key):
        return dict(self.hash_store.get(key, {}))

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """Fake Redis pipeline that replays queued commands on execute()."""

    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    def __getattr__(self, name):
        def queue(*args):
            self._ops.append((name, args))
            return self
        return queue

    def execute(self):
        for name, args in self._ops:
            getattr(self._redis, name)(*args)
        self._ops = []


class DownRedis:
    """Every command fails the way redis-py does when the server is gone."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise redis.ConnectionError('Connection refused')
        return fail


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cb(fake_redis):
    """Fresh breaker: opens after 3 failures, allows a trial call after 10s."""
    return CircuitBreaker('openai', fake_redis, failure_threshold=3, reset_timeout=10)


@pytest.fixture(autouse=True)
def clean_registry():
    saved = dict(_registry)
    _registry.clear()
    yield
    _registry.clear()
    _registry.update(saved)


def _fail():
    raise TimeoutError('Request timed out')


def _trip(cb):
    for _ in range(cb.failure_threshold):
        with pytest.raises(TimeoutError):
            cb.call(_fail)


# ── State transitions ────────────────────────────────────────────────────────

class TestCircuitBreakerStates:
    def test_starts_closed(self, cb):
        assert cb.state == CLOSED

    def test_success_passes_result_through(self, cb):
        assert cb.call(lambda model: f'reply from {model}', model='gpt-4o-mini') == 'reply from gpt-4o-mini'
        assert cb.state == CLOSED

    def test_counts_consecutive_failures(self, cb):
        for _ in range(2):
            with pytest.raises(TimeoutError):
                cb.call(_fail)
        assert cb.failure_count == 2
        assert cb.state == CLOSED

    def test_success_resets_streak(self, cb):
        with pytest.raises(TimeoutError):
            cb.call(_fail)
        cb.call(lambda: 'ok')
        assert cb.failure_count == 0

    def test_opens_at_threshold(self, cb):
        _trip(cb)
        assert cb.state == OPEN

    def test_open_fails_fast(self, cb):
        _trip(cb)
        func = MagicMock()
        with pytest.raises(CircuitOpenError) as exc_info:
            cb.call(func)
        func.assert_not_called()
        assert exc_info.value.name == 'openai'
        assert 0 < exc_info.value.retry_after <= 10

    def test_half_open_after_timeout(self, cb, fake_redis):
        _trip(cb)
        fake_redis.get_store[cb._key('last_failure')] = str(time.time() - 20)
        assert cb.state == HALF_OPEN

    def test_trial_success_closes(self, cb, fake_redis):
        _trip(cb)
        fake_redis.get_store[cb._key('last_failure')] = str(time.time() - 20)
        assert cb.call(lambda: 'recovered') == 'recovered'
        assert cb.state == CLOSED

    def test_trial_failure_reopens(self, cb, fake_redis):
        _trip(cb)
        fake_redis.get_store[cb._key('last_failure')] = str(time.time() - 20)
        with pytest.raises(TimeoutError):
            cb.call(_fail)
        assert cb.state == OPEN


class TestIgnoredErrors:
    def test_ignored_error_does_not_count(self, fake_redis):
        cb = CircuitBreaker('openai', fake_redis, failure_threshold=1, ignore=(ValueError,))

        def bad_request():
            raise ValueError('messages must not be empty')

        with pytest.raises(ValueError):
            cb.call(bad_request)
        assert cb.failure_count == 0
        assert cb.state == CLOSED

    def test_other_errors_still_count(self, fake_redis):
        cb = CircuitBreaker('openai', fake_redis, failure_threshold=1, ignore=(ValueError,))
        with pytest.raises(TimeoutError):
            cb.call(_fail)
        assert cb.state == OPEN


class TestRedisUnavailable:
    def test_calls_pass_through(self):
        cb = CircuitBreaker('openai', DownRedis())
        assert cb.state == CLOSED
        assert cb.call(lambda: 'ok') == 'ok'

    def test_service_errors_still_propagate(self):
        cb = CircuitBreaker('openai', DownRedis())
        with pytest.raises(TimeoutError):
            cb.call(_fail)

    def test_health_reports_unknown(self):
        health = CircuitBreaker('openai', DownRedis()).get_health()
        assert health['state'] == 'unknown'
        assert health['total_success'] == 0

    def test_reset_does_not_raise(self):
        CircuitBreaker('openai', DownRedis()).reset()


# ── Reset ────────────────────────────────────────────────────────────────────

class TestCircuitBreakerReset:
    def test_reset_closes_circuit(self, cb):
        _trip(cb)
        cb.reset()
        assert cb.state == CLOSED
        assert cb.failure_count == 0
        assert cb.call(lambda: 'ok') == 'ok'

    def test_reset_keeps_health_totals(self, cb):
        _trip(cb)
        cb.reset()
        assert cb.get_health()['total_failure'] == 3


# ── Health metrics ───────────────────────────────────────────────────────────

class TestCircuitBreakerHealth:
    def test_health_after_success(self, cb):
        cb.call(lambda: 'ok')
        health = cb.get_health()
        assert health['name'] == 'openai'
        assert health['state'] == CLOSED
        assert health['total_success'] == 1
        assert health['total_failure'] == 0
        assert health['last_success'] is not None

    def test_health_after_failure(self, cb):
        with pytest.raises(TimeoutError):
            cb.call(_fail)
        health = cb.get_health()
        assert health['total_failure'] == 1
        assert health['last_error'] == 'Request timed out'
        assert health['last_failure'] is not None

    def test_long_error_truncated(self, cb):
        def noisy():
            raise RuntimeError('x' * 500)
        with pytest.raises(RuntimeError):
            cb.call(noisy)
        assert len(cb.get_health()['last_error']) == 200

    def test_health_includes_thresholds(self, cb):
        health = cb.get_health()
        assert health['failure_threshold'] == 3
        assert health['reset_timeout'] == 10


# ── Registry ─────────────────────────────────────────────────────────────────

class TestCircuitBreakerRegistry:
    def test_init_breakers(self, fake_redis):
        breakers = init_breakers(fake_redis)
        assert list(breakers) == ['openai']
        assert breakers['openai'].failure_threshold == 5
        assert breakers['openai'].reset_timeout == 60
        assert openai.BadRequestError in breakers['openai'].ignore
        assert get_all_breakers()['openai'] is breakers['openai']

    def test_get_breaker_returns_registered(self, fake_redis):
        init_breakers(fake_redis)
        assert get_breaker('openai') is get_all_breakers()['openai']

    def test_get_breaker_creates_on_demand(self, fake_redis):
        cb = get_breaker('website', fake_redis, failure_threshold=5)
        assert cb.name == 'website'
        assert cb.failure_threshold == 5
        assert get_breaker('website') is cb


class TestCircuitOpenError:
    def test_attributes(self):
        err = CircuitOpenError('openai', retry_after=30)
        assert err.name == 'openai'
        assert err.retry_after == 30
        assert str(err) == "Circuit breaker 'openai' is open, retry in 30s"
        assert isinstance(err, FoundationError)

    def test_without_retry_after(self):
        assert str(CircuitOpenError('openai')) == "Circuit breaker 'openai' is open"
