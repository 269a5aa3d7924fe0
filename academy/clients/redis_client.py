"""
Redis client for per-submission locking.

Two tabs or devices of the same learner can submit to the same lesson at
once. While one submit holds the (learner, lesson) lock the other fails
fast; the store's version check still guards writes when Redis is absent.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import LockError

from academy.config import Settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis client for submission locking"""

    def __init__(self, settings: Settings):
        self._redis_url = settings.redis_url
        self._lock_ttl = settings.submission_lock_ttl
        self._client: Optional[Redis] = None

    async def connect(self):
        """Establish Redis connection"""
        if not self._redis_url:
            logger.warning("Redis URL not configured, submission locking disabled")
            return

        try:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True
            )
            await self._client.ping()
            logger.info("Redis connection established successfully")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            self._client = None

    async def disconnect(self):
        """Close Redis connection"""
        if self._client:
            await self._client.aclose()
            logger.info("Redis connection closed")

    def is_available(self) -> bool:
        """Check if Redis is available"""
        return self._client is not None

    # =============================
    #   Distributed Lock
    # =============================
    @staticmethod
    def _lock_key(user_id: str, lesson_id: str) -> str:
        return f"submission:lock:{user_id}:{lesson_id}"

    @asynccontextmanager
    async def acquire_submission_lock(self, user_id: str, lesson_id: str):
        """
        Hold the (learner, lesson) submission lock for the duration of the block.

        Raises:
            LockError: another submit for the same learner and lesson is in flight
        """
        if not self.is_available():
            logger.debug("Redis not available, skipping submission lock")
            yield True
            return

        lock = self._client.lock(
            self._lock_key(user_id, lesson_id),
            timeout=self._lock_ttl,
            blocking=False,
        )

        acquired = await lock.acquire(blocking=False)
        if not acquired:
            raise LockError(f"Submission for lesson {lesson_id} is already in progress")

        logger.debug(f"Acquired submission lock for {user_id}/{lesson_id}")
        try:
            yield True
        finally:
            try:
                await lock.release()
            except LockError:
                # Lock expired before release
                logger.warning(f"Submission lock for {user_id}/{lesson_id} expired before release")

    async def ping(self) -> bool:
        """Ping Redis server to check connectivity"""
        if self.is_available():
            return await self._client.ping()
        return False
