"""
Circuit breaker for the OpenAI API, with state and health counters in Redis.

Every RQ worker shares the same Redis keys, so once the API has failed
failure_threshold times in a row all workers stop calling it until
reset_timeout has passed. States:
  - CLOSED     calls pass through
  - OPEN       calls fail fast with CircuitOpenError
  - HALF_OPEN  reset_timeout elapsed; the next call is a trial

If Redis itself is unreachable the breaker stays out of the way (CLOSED) and
the analyzer run fails or succeeds on the API call alone.
"""
import logging
import time

from redis.exceptions import RedisError

from app.config import OPENAI_BREAKER_THRESHOLD, OPENAI_BREAKER_RESET_SECONDS
from app.errors import FoundationError

logger = logging.getLogger('services.circuit_breaker')

CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'


class CircuitOpenError(FoundationError):
    """Raised instead of calling a service whose breaker is open."""

    def __init__(self, name, retry_after=None):
        self.name = name
        self.retry_after = retry_after
        wait = f", retry in {retry_after:.0f}s" if retry_after is not None else ''
        super().__init__(f"Circuit breaker '{name}' is open{wait}")


class CircuitBreaker:
    """
    Usage:
        cb = CircuitBreaker('openai', redis_client, failure_threshold=5, reset_timeout=60)
        response = cb.call(client.chat.completions.create, model=..., messages=...)

    Exceptions listed in ignore are the caller's fault (a malformed request),
    not the service's: they propagate without counting as failures.
    """

    PREFIX = 'cb'

    def __init__(self, name, redis_client, failure_threshold=3, reset_timeout=300, ignore=()):
        self.name = name
        self.redis = redis_client
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.ignore = tuple(ignore)

    def _key(self, suffix):
        return f'{self.PREFIX}:{self.name}:{suffix}'

    def _redis(self, action, fn, default=None):
        try:
            return fn()
        except RedisError as e:
            logger.debug("Circuit '%s': Redis unavailable during %s: %s", self.name, action, e)
            return default

    # ── State ─────────────────────────────────────────────────────────

    def _seconds_since_failure(self):
        last = self._redis('read last failure', lambda: self.redis.get(self._key('last_failure')))
        return time.time() - float(last) if last else None

    @property
    def state(self):
        current = self._redis('read state', lambda: self.redis.get(self._key('state')))
        if current == OPEN:
            elapsed = self._seconds_since_failure()
            if elapsed is not None and elapsed > self.reset_timeout:
                self._redis('set state', lambda: self.redis.set(self._key('state'), HALF_OPEN))
                return HALF_OPEN
        return current or CLOSED

    @property
    def failure_count(self):
        value = self._redis('read failures', lambda: self.redis.get(self._key('failures')))
        return int(value) if value else 0

    # ── Calls ─────────────────────────────────────────────────────────

    def call(self, func, *args, **kwargs):
        """Run func through the breaker. Raises CircuitOpenError while open."""
        if self.state == OPEN:
            elapsed = self._seconds_since_failure()
            retry_after = max(0.0, self.reset_timeout - elapsed) if elapsed is not None else None
            raise CircuitOpenError(self.name, retry_after=retry_after)

        try:
            result = func(*args, **kwargs)
        except self.ignore:
            raise
        except Exception as e:
            self._on_failure(e)
            raise
        self._on_success()
        return result

    def _on_success(self):
        def write():
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.hincrby(self._key('health'), 'success', 1)
            pipe.hset(self._key('health'), 'last_success', str(time.time()))
            pipe.execute()
        self._redis('record success', write)

    def _on_failure(self, error):
        now = str(time.time())

        def write():
            count = self.redis.incr(self._key('failures'))
            pipe = self.redis.pipeline()
            pipe.set(self._key('last_failure'), now)
            pipe.hincrby(self._key('health'), 'failure', 1)
            pipe.hset(self._key('health'), 'last_failure', now)
            pipe.hset(self._key('health'), 'last_error', str(error)[:200])
            if count >= self.failure_threshold:
                pipe.set(self._key('state'), OPEN)
            pipe.execute()
            return count

        count = self._redis('record failure', write)
        if count is None:
            return
        if count >= self.failure_threshold:
            logger.warning("Circuit '%s' opened after %d consecutive failures: %s", self.name, count, error)
        else:
            logger.info("Circuit '%s' failure %d/%d: %s", self.name, count, self.failure_threshold, error)

    def reset(self):
        """Close the breaker and clear the failure streak (health totals are kept)."""
        def write():
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.delete(self._key('last_failure'))
            pipe.execute()
        self._redis('reset', write)
        logger.info("Circuit '%s' manually reset", self.name)

    # ── Health ────────────────────────────────────────────────────────

    def get_health(self):
        """Counters for /api/health. State is 'unknown' when Redis is down."""
        data = self._redis('read health', lambda: self.redis.hgetall(self._key('health')))
        health = {
            'name': self.name,
            'state': 'unknown' if data is None else self.state,
            'failure_count': self.failure_count,
            'failure_threshold': self.failure_threshold,
            'reset_timeout': self.reset_timeout,
        }
        data = data or {}
        health.update({
            'total_success': int(data.get('success', 0)),
            'total_failure': int(data.get('failure', 0)),
            'last_success': float(data['last_success']) if data.get('last_success') else None,
            'last_failure': float(data['last_failure']) if data.get('last_failure') else None,
            'last_error': data.get('last_error', ''),
        })
        return health


# ── Registry ──────────────────────────────────────────────────────────────

_registry = {}


def get_breaker(name, redis_client=None, **kwargs):
    """Named breaker, created on first use with the shared Redis client."""
    if name not in _registry:
        if redis_client is None:
            from app.extensions import redis_client as rc
            redis_client = rc
        _registry[name] = CircuitBreaker(name, redis_client, **kwargs)
    return _registry[name]


def get_all_breakers():
    return dict(_registry)


def init_breakers(redis_client):
    """Register the breakers for every external service (web app and worker)."""
    import openai
    breakers = {
        'openai': CircuitBreaker(
            'openai', redis_client,
            failure_threshold=OPENAI_BREAKER_THRESHOLD,
            reset_timeout=OPENAI_BREAKER_RESET_SECONDS,
            ignore=(openai.BadRequestError,),
        ),
    }
    _registry.update(breakers)
    return breakers
