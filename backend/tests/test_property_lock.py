"""
Tests for the per-property cycle lock.
"""

import uuid

import pytest
import redis

from indexer.services.errors import LockUnavailableError, PropertyBusyError
from indexer.services.property_lock import PropertyLock


class TestPropertyLock:
    def test_second_holder_is_rejected(self, fake_redis):
        lock = PropertyLock(client=fake_redis, wait=0)
        property_id = uuid.uuid4()

        with lock.hold(property_id):
            with pytest.raises(PropertyBusyError):
                with lock.hold(property_id):
                    pass

        assert fake_redis.store == {}

    def test_different_properties_do_not_block(self, fake_redis):
        lock = PropertyLock(client=fake_redis, wait=0)

        with lock.hold(uuid.uuid4()):
            with lock.hold(uuid.uuid4()):
                assert len(fake_redis.store) == 2

    def test_released_on_error(self, fake_redis):
        lock = PropertyLock(client=fake_redis, wait=0)

        with pytest.raises(RuntimeError):
            with lock.hold(uuid.uuid4()):
                raise RuntimeError("boom")

        assert fake_redis.store == {}

    def test_foreign_token_not_deleted(self, fake_redis):
        lock = PropertyLock(client=fake_redis, wait=0)
        property_id = uuid.uuid4()
        key = f"{PropertyLock.key_prefix}{property_id}"

        with lock.hold(property_id):
            fake_redis.store[key] = "another-worker"

        assert fake_redis.store[key] == "another-worker"


class BrokenRedis:
    def set(self, *args, **kwargs):
        raise redis.ConnectionError("Connection refused")


class TestLockExpiry:
    def test_extension_keeps_lock_past_ttl(self, fake_redis):
        first = PropertyLock(client=fake_redis, timeout=1, wait=0)
        second = PropertyLock(client=fake_redis, timeout=1, wait=0)
        property_id = uuid.uuid4()

        with first.hold(property_id) as lease:
            fake_redis.advance(0.8)
            assert lease.extend()
            fake_redis.advance(0.8)
            with pytest.raises(PropertyBusyError):
                with second.hold(property_id):
                    pass

    def test_expired_lease_does_not_release_new_holder(self, fake_redis):
        first = PropertyLock(client=fake_redis, timeout=1, wait=0)
        second = PropertyLock(client=fake_redis, timeout=1, wait=0)
        property_id = uuid.uuid4()
        key = f"{PropertyLock.key_prefix}{property_id}"

        with first.hold(property_id) as lease:
            fake_redis.advance(1.1)
            with second.hold(property_id):
                assert not lease.extend()
                assert not lease.release()
                assert fake_redis.get(key) is not None

    def test_store_unavailable(self):
        lock = PropertyLock(client=BrokenRedis(), wait=0)

        with pytest.raises(LockUnavailableError):
            with lock.hold(uuid.uuid4()):
                pass
