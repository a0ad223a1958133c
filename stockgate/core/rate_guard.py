"""
Stockgate — Checkout cooldown guard (Redis-backed)

One checkout per customer per window (60s by default). The first submission
arms ``checkout-cooldown:<customer_ref>`` with SET NX EX; any submission that
finds the key still present is rejected with RateLimited, whatever the stock.
A submission the pipeline rejects disarms the key so the customer can fix the
cart and resubmit straight away.

An unreachable Redis fails closed: the submission is refused as a
PersistenceFailure before the pipeline runs.
"""
import logging
from collections.abc import Sequence

from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from stockgate.core.errors import AdmissionError, PersistenceFailure, RateLimited

logger = logging.getLogger(__name__)

COOLDOWN_PREFIX = "checkout-cooldown:"


class CheckoutRateGuard:

    def __init__(self, redis, cooldown_seconds: int):
        self.redis = redis
        self.cooldown_seconds = cooldown_seconds

    def _key(self, customer_ref: str) -> str:
        return f"{COOLDOWN_PREFIX}{customer_ref}"

    async def acquire(self, customer_ref: str) -> None:
        key = self._key(customer_ref)
        try:
            armed = await self.redis.set(key, "1", nx=True, ex=self.cooldown_seconds)
            if armed:
                return
            ttl = await self.redis.ttl(key)
        except RedisError as exc:
            logger.exception("Cooldown store unavailable for %s", customer_ref)
            raise PersistenceFailure() from exc
        retry_after = ttl if ttl and ttl > 0 else self.cooldown_seconds
        logger.warning("Checkout rate limited for %s (retry in %ds)", customer_ref, retry_after)
        raise RateLimited(retry_after=retry_after)

    async def release(self, customer_ref: str) -> None:
        try:
            await self.redis.delete(self._key(customer_ref))
        except RedisError:
            # The key still expires on its own; the pipeline's error matters more.
            logger.exception("Could not release cooldown for %s", customer_ref)

    async def submit(self, pipeline, db: AsyncSession, customer_ref: str, lines: Sequence):
        """Run ``pipeline.admit`` inside the customer's cooldown window."""
        await self.acquire(customer_ref)
        try:
            return await pipeline.admit(db, customer_ref, lines)
        except AdmissionError:
            await self.release(customer_ref)
            raise
