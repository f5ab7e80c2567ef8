"""Redis-backed per-property lock held for the duration of one cycle.

Acquisition uses SET NX PX so the lock expires on its own if a worker dies
mid-cycle. A running cycle renews the TTL after every item, and both renewal
and release are Lua check-and-act scripts that only touch the key while it
still holds our token.
"""

import logging
import time
import uuid
from contextlib import contextmanager
from typing import Iterator

import redis

from indexer.config import get_settings
from indexer.services.errors import LockUnavailableError, PropertyBusyError

logger = logging.getLogger(__name__)

RELEASE_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""

EXTEND_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('PEXPIRE', KEYS[1], ARGV[2])
end
return 0
"""


class LockLease:
    """A held property lock; ``extend`` pushes its expiry out by the full TTL."""

    def __init__(self, client: redis.Redis, key: str, token: str, timeout: int):
        self.client = client
        self.key = key
        self.token = token
        self.timeout = timeout

    def extend(self) -> bool:
        """Renew the TTL. False means the lock expired and may belong to someone else."""
        try:
            extended = self.client.eval(EXTEND_SCRIPT, 1, self.key, self.token, self.timeout * 1000) == 1
        except redis.RedisError as e:
            logger.warning(f"Could not extend {self.key}: {e}")
            return False
        if not extended:
            logger.warning(f"Lock {self.key} was lost before it could be extended")
        return extended

    def release(self) -> bool:
        try:
            released = self.client.eval(RELEASE_SCRIPT, 1, self.key, self.token) == 1
        except redis.RedisError as e:
            logger.warning(f"Could not release {self.key}, it will expire on its own: {e}")
            return False
        if not released:
            logger.warning(f"Lock {self.key} expired before release")
        return released


class PropertyLock:
    key_prefix = "indexer:lock:property:"

    def __init__(
        self,
        client: redis.Redis | None = None,
        timeout: int | None = None,
        wait: float | None = None,
        retry_interval: float = 0.2,
    ):
        settings = get_settings()
        self._client = client
        self._redis_url = settings.redis_url
        self.timeout = timeout if timeout is not None else settings.property_lock_timeout_seconds
        self.wait = wait if wait is not None else settings.property_lock_wait_seconds
        self.retry_interval = retry_interval

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.Redis.from_url(self._redis_url, decode_responses=True, socket_timeout=5)
        return self._client

    @contextmanager
    def hold(self, property_id: uuid.UUID) -> Iterator[LockLease]:
        """Hold the lock for ``property_id`` or raise PropertyBusyError.

        Raises:
            PropertyBusyError: another cycle holds the lock past the wait window.
            LockUnavailableError: the lock store cannot be reached.
        """
        key = f"{self.key_prefix}{property_id}"
        token = uuid.uuid4().hex
        deadline = time.monotonic() + self.wait

        try:
            while not self.client.set(key, token, nx=True, px=self.timeout * 1000):
                if time.monotonic() >= deadline:
                    raise PropertyBusyError(f"Property {property_id} is already being processed")
                time.sleep(self.retry_interval)
        except redis.RedisError as e:
            raise LockUnavailableError(f"Lock store unavailable: {e}") from e

        lease = LockLease(self.client, key, token, self.timeout)
        try:
            yield lease
        finally:
            lease.release()
