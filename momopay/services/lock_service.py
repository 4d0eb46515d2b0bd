"""
Initiation Lock
Serializes payment initiation per (user, feature) using a Redis SET NX lock
"""

import uuid
from contextlib import contextmanager
from typing import Optional

from redis.exceptions import RedisError

from momopay.extensions import redis_client
from momopay.utils.logger import get_logger

logger = get_logger(__name__)

# Delete the key only while it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class InitiationLock:
    """Short-lived advisory lock held while the in-flight guard runs"""

    DEFAULT_TTL = 10  # seconds

    @staticmethod
    def get_key(user_id, feature_type: str) -> str:
        """Generate Redis key for the lock"""
        return f'payment-initiation:{user_id}:{feature_type}'

    @staticmethod
    def acquire(user_id, feature_type: str, ttl: int = DEFAULT_TTL) -> Optional[str]:
        """Try to take the lock; returns the owner token or None if it is held"""
        token = uuid.uuid4().hex
        key = InitiationLock.get_key(user_id, feature_type)

        if redis_client.set(key, token, ex=ttl, nx=True):
            return token
        return None

    @staticmethod
    def release(user_id, feature_type: str, token: str):
        """Release the lock if this token still owns it"""
        key = InitiationLock.get_key(user_id, feature_type)
        redis_client.eval(_RELEASE_SCRIPT, 1, key, token)

    @staticmethod
    @contextmanager
    def hold(user_id, feature_type: str, ttl: int = DEFAULT_TTL):
        """
        Context manager yielding True when the lock was taken, False when
        another initiation holds it.

        If Redis is unreachable the lock fails open (yields True) and the
        partial unique index on pending payments remains the backstop.
        """
        try:
            token = InitiationLock.acquire(user_id, feature_type, ttl)
        except RedisError as e:
            logger.warning(f'Initiation lock unavailable, continuing without it: {str(e)}')
            yield True
            return

        if token is None:
            yield False
            return

        try:
            yield True
        finally:
            try:
                InitiationLock.release(user_id, feature_type, token)
            except RedisError as e:
                logger.warning(f'Failed to release initiation lock: {str(e)}')
