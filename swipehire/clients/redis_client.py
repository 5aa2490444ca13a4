"""
Redis-backed feed session store.

A feed session is the state one viewer accumulates while scrolling:

  • Viewed posts   — SET    session:{sid}:viewed
  • Liked posts    — SET    session:{sid}:liked
  • Load token     — STRING session:{sid}:load    (id of the newest feed load)
  • Ranked feed    — LIST   session:{sid}:feed    (serialised RankedItem JSON)
  • Ranked total   — STRING session:{sid}:total
  • Ranked load    — STRING session:{sid}:ranked_load (load that stored the feed)

Page 0 ranks the pool and stores the ordering; later pages are LRANGE slices
of it, so scrolling never reshuffles posts. A load only stores its ordering
if it is still the newest load of the session — results of abandoned loads
are dropped. Every key expires after settings.session_ttl.
"""
import logging
import uuid
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import WatchError

from swipehire.config import settings
from swipehire.schemas import RankedItem

logger = logging.getLogger(__name__)


def _key(session_id: str, name: str) -> str:
    return f"session:{session_id}:{name}"


class SessionStore:
    def __init__(self, redis: Optional[aioredis.Redis] = None) -> None:
        self._redis = redis

    async def start(self) -> None:
        if self._redis is None:
            self._redis = aioredis.Redis(
                host=settings.redis_host,
                port=settings.redis_port,
                decode_responses=True,
            )
        await self._redis.ping()
        logger.info("Redis connected at %s:%s", settings.redis_host, settings.redis_port)

    async def stop(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()

    @property
    def redis(self) -> aioredis.Redis:
        if self._redis is None:
            raise RuntimeError("Session store not initialised — call start() at startup")
        return self._redis

    @staticmethod
    def new_session_id() -> str:
        return uuid.uuid4().hex

    # ─────────────────────── Viewed / liked sets ──────────────────────────

    async def _add_member(self, session_id: str, name: str, post_id: str) -> None:
        key = _key(session_id, name)
        await self.redis.sadd(key, post_id)
        await self.redis.expire(key, settings.session_ttl)

    async def mark_viewed(self, session_id: str, post_id: str) -> None:
        await self._add_member(session_id, "viewed", post_id)

    async def mark_liked(self, session_id: str, post_id: str) -> None:
        await self._add_member(session_id, "liked", post_id)

    async def get_viewed(self, session_id: str) -> set[str]:
        return set(await self.redis.smembers(_key(session_id, "viewed")))

    async def get_liked(self, session_id: str) -> set[str]:
        return set(await self.redis.smembers(_key(session_id, "liked")))

    # ─────────────────────── Feed loads ───────────────────────────────────

    async def begin_load(self, session_id: str) -> str:
        """Start a new feed load; any load still in flight becomes stale."""
        load_id = uuid.uuid4().hex
        await self.redis.set(_key(session_id, "load"), load_id, ex=settings.session_ttl)
        return load_id

    async def store_ranking(
        self,
        session_id: str,
        load_id: str,
        ranked: list[RankedItem],
    ) -> bool:
        """
        Replace the session's stored ordering with `ranked`, but only if
        `load_id` is still the current load. Returns False for stale loads.
        """
        load_key = _key(session_id, "load")
        feed_key = _key(session_id, "feed")
        total_key = _key(session_id, "total")
        ranked_load_key = _key(session_id, "ranked_load")
        payload = [r.model_dump_json() for r in ranked]

        async with self.redis.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(load_key)
                if await pipe.get(load_key) != load_id:
                    await pipe.unwatch()
                    return False
                pipe.multi()
                pipe.delete(feed_key)
                if payload:
                    pipe.rpush(feed_key, *payload)
                    pipe.expire(feed_key, settings.session_ttl)
                pipe.set(total_key, len(payload), ex=settings.session_ttl)
                pipe.set(ranked_load_key, load_id, ex=settings.session_ttl)
                await pipe.execute()
            except WatchError:
                # Another load started between the check and the write
                return False
        return True

    async def read_page(
        self,
        session_id: str,
        page_size: int,
        page_index: int,
    ) -> Optional[tuple[list[RankedItem], bool, int, str]]:
        """
        Slice one page out of the stored ordering, together with the id of the
        load that stored it.
        Returns None when the session has no stored ranking (expired or never loaded).
        """
        total, load_id = await self.redis.mget(
            _key(session_id, "total"), _key(session_id, "ranked_load")
        )
        if total is None:
            return None
        total = int(total)
        start = page_index * page_size
        end = start + page_size
        raw = await self.redis.lrange(_key(session_id, "feed"), start, end - 1)
        items = [RankedItem.model_validate_json(r) for r in raw]
        return items, end < total, total, load_id or ""


# Singleton — started/stopped in app lifespan (main.py)
session_store = SessionStore()
