"""
Unit Tests for the Initiation Lock
"""

import pytest
import uuid
from unittest.mock import Mock, patch

from redis.exceptions import ConnectionError as RedisConnectionError

from momopay.services.lock_service import InitiationLock


class TestInitiationLock:
    """Test cases for InitiationLock"""

    @pytest.fixture
    def user_id(self):
        return uuid.uuid4()

    def test_key_format(self, user_id):
        assert InitiationLock.get_key(user_id, 'SURVEY') == f'payment-initiation:{user_id}:SURVEY'

    def test_acquire_and_release(self, redis_client, user_id):
        token = InitiationLock.acquire(user_id, 'SURVEY', ttl=10)

        assert token is not None
        assert redis_client.get(InitiationLock.get_key(user_id, 'SURVEY')) == token
        assert 0 < redis_client.ttl(InitiationLock.get_key(user_id, 'SURVEY')) <= 10

        InitiationLock.release(user_id, 'SURVEY', token)

        assert redis_client.exists(InitiationLock.get_key(user_id, 'SURVEY')) == 0

    def test_second_acquire_fails(self, redis_client, user_id):
        assert InitiationLock.acquire(user_id, 'SURVEY') is not None
        assert InitiationLock.acquire(user_id, 'SURVEY') is None

    def test_features_lock_independently(self, redis_client, user_id):
        assert InitiationLock.acquire(user_id, 'SURVEY') is not None
        assert InitiationLock.acquire(user_id, 'VIDEO') is not None

    def test_release_ignores_foreign_token(self, redis_client, user_id):
        token = InitiationLock.acquire(user_id, 'SURVEY')

        InitiationLock.release(user_id, 'SURVEY', 'not-the-owner')

        assert redis_client.get(InitiationLock.get_key(user_id, 'SURVEY')) == token

    def test_hold_releases_on_error(self, redis_client, user_id):
        with pytest.raises(RuntimeError):
            with InitiationLock.hold(user_id, 'SURVEY') as acquired:
                assert acquired is True
                raise RuntimeError('boom')

        assert redis_client.exists(InitiationLock.get_key(user_id, 'SURVEY')) == 0

    def test_hold_reports_contention(self, redis_client, user_id):
        with InitiationLock.hold(user_id, 'SURVEY') as first:
            with InitiationLock.hold(user_id, 'SURVEY') as second:
                assert first is True
                assert second is False

            # The loser must not release the winner's lock
            assert redis_client.exists(InitiationLock.get_key(user_id, 'SURVEY')) == 1

    def test_hold_fails_open_without_redis(self, user_id):
        broken_redis = Mock()
        broken_redis.set.side_effect = RedisConnectionError('connection refused')

        with patch('momopay.services.lock_service.redis_client', broken_redis):
            with InitiationLock.hold(user_id, 'SURVEY') as acquired:
                assert acquired is True

        broken_redis.delete.assert_not_called()

    def test_release_is_a_single_compare_and_delete(self, user_id):
        """Release must not read and delete in separate round trips"""
        mock_redis = Mock()

        with patch('momopay.services.lock_service.redis_client', mock_redis):
            InitiationLock.release(user_id, 'SURVEY', 'owner-token')

        mock_redis.eval.assert_called_once()
        script, numkeys, key, token = mock_redis.eval.call_args.args
        assert 'redis.call("del"' in script
        assert numkeys == 1
        assert key == InitiationLock.get_key(user_id, 'SURVEY')
        assert token == 'owner-token'
        mock_redis.get.assert_not_called()
        mock_redis.delete.assert_not_called()

    def test_release_keeps_lock_retaken_after_expiry(self, redis_client, user_id):
        stale_token = InitiationLock.acquire(user_id, 'SURVEY', ttl=10)
        redis_client.delete(InitiationLock.get_key(user_id, 'SURVEY'))
        fresh_token = InitiationLock.acquire(user_id, 'SURVEY', ttl=10)

        InitiationLock.release(user_id, 'SURVEY', stale_token)

        assert redis_client.get(InitiationLock.get_key(user_id, 'SURVEY')) == fresh_token
