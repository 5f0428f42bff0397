"""
Lead Reservation Service
Short-lived Redis leases so two operators are not handed the same lead
"""
import logging
from typing import List, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from powerdialer.domain.models.lead import DialerLead

logger = logging.getLogger(__name__)


class LeadReservationService:
    """
    Optional lease layer on top of the read-only queue.

    Each lead handed to an operator is leased with SET NX EX under
    `dialer:lease:{lead_id}`. Leases expire on their own; a disposition
    releases the lease early. If Redis is unreachable the queue is
    returned unfiltered.
    """

    KEY_PREFIX = "dialer:lease:"
    DEFAULT_TTL_SECONDS = 900

    def __init__(
        self,
        redis_url: Optional[str] = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        client: Optional[aioredis.Redis] = None,
    ):
        self.redis_url = redis_url or "redis://localhost:6379"
        self.ttl_seconds = ttl_seconds
        self._redis = client

    def _get_redis(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = aioredis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True
            )
        return self._redis

    def _key(self, lead_id: str) -> str:
        return f"{self.KEY_PREFIX}{lead_id}"

    async def claim(self, leads: List[DialerLead], operator_id: str) -> List[DialerLead]:
        """
        Lease every lead not already held by another operator.

        Returns:
            The leads now leased to `operator_id`, in the input order
        """
        redis = self._get_redis()
        claimed: List[DialerLead] = []

        try:
            for lead in leads:
                key = self._key(lead.id)
                if await redis.set(key, operator_id, nx=True, ex=self.ttl_seconds):
                    claimed.append(lead)
                    continue

                holder = await redis.get(key)
                if holder == operator_id:
                    await redis.expire(key, self.ttl_seconds)
                    claimed.append(lead)
        except RedisError as e:
            logger.warning(f"Lead reservation unavailable ({e}), returning unreserved queue")
            return list(leads)

        logger.debug(f"Operator {operator_id} claimed {len(claimed)}/{len(leads)} leads")
        return claimed

    async def release(self, lead_id: str, operator_id: Optional[str] = None) -> bool:
        """
        Drop a lease. With `operator_id`, only that operator's lease is dropped.

        Returns:
            True if a lease was removed
        """
        redis = self._get_redis()
        key = self._key(lead_id)

        try:
            if operator_id is not None:
                holder = await redis.get(key)
                if holder is not None and holder != operator_id:
                    return False
            return bool(await redis.delete(key))
        except RedisError as e:
            logger.warning(f"Failed to release lease for lead {lead_id}: {e}")
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis:
            await self._redis.close()
            self._redis = None
