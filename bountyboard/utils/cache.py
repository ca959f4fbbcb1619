"""Achievement snapshot caches, in-process or Redis backed."""

from __future__ import annotations

import json
import math
import threading
import time
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Hashable, Protocol

import redis
from loguru import logger

from bountyboard.config import Settings, settings

if TYPE_CHECKING:
    from bountyboard.services.achievement_engine import AchievementSnapshot

EVICTION_FRACTION = 0.2
REDIS_KEY_PREFIX = "achievements_"
REDIS_GENERATION_PREFIX = "achievement_generation_"


@dataclass(frozen=True)
class CacheStats:
    backend: str
    size: int
    max_size: int | None
    ttl_seconds: int
    hits: int
    misses: int


class AchievementCache(Protocol):
    """What the ledger and achievement services need from a snapshot cache.

    ``generation`` returns a token that changes whenever ``invalidate`` or
    ``clear`` runs. A ``set`` carrying a token that is no longer current is
    dropped, so a snapshot computed before a ledger change never lands after it.
    """

    def get(self, user_id: uuid.UUID) -> "AchievementSnapshot | None": ...

    def generation(self, user_id: uuid.UUID) -> Hashable | None: ...

    def set(
        self,
        user_id: uuid.UUID,
        snapshot: "AchievementSnapshot",
        generation: Hashable | None = None,
    ) -> None: ...

    def invalidate(self, user_id: uuid.UUID) -> None: ...

    def clear(self) -> None: ...

    def stats(self) -> CacheStats: ...


@dataclass
class _CacheEntry:
    snapshot: "AchievementSnapshot"
    computed_at: float


class InMemoryAchievementCache:
    """Process-local map of user id to ``(snapshot, computed_at)``.

    Entries older than ``ttl_seconds`` are dropped on read. Inserting a new key
    into a full map first evicts the oldest fifth of the entries.

    Generations come from one counter, so a token taken before ``clear`` never
    matches after it.
    """

    backend = "memory"

    def __init__(
        self,
        ttl_seconds: int = 3600,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[uuid.UUID, _CacheEntry] = {}
        self._generations: dict[uuid.UUID, int] = {}
        self._counter = 0
        self._cleared_at = 0
        self._hits = 0
        self._misses = 0

    def get(self, user_id: uuid.UUID) -> "AchievementSnapshot | None":
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                self._misses += 1
                return None
            if self._clock() - entry.computed_at >= self.ttl_seconds:
                del self._entries[user_id]
                self._misses += 1
                return None
            self._hits += 1
            return entry.snapshot

    def generation(self, user_id: uuid.UUID) -> int:
        with self._lock:
            return self._generation(user_id)

    def _generation(self, user_id: uuid.UUID) -> int:
        return max(self._generations.get(user_id, 0), self._cleared_at)

    def set(
        self,
        user_id: uuid.UUID,
        snapshot: "AchievementSnapshot",
        generation: Hashable | None = None,
    ) -> None:
        with self._lock:
            if generation is not None and generation != self._generation(user_id):
                logger.debug("Discarded stale achievement snapshot", user_id=str(user_id))
                return
            if user_id not in self._entries and len(self._entries) >= self.max_size:
                self._evict_oldest()
            self._entries[user_id] = _CacheEntry(snapshot=snapshot, computed_at=self._clock())

    def _evict_oldest(self) -> None:
        count = math.ceil(len(self._entries) * EVICTION_FRACTION)
        oldest = sorted(self._entries.items(), key=lambda item: item[1].computed_at)[:count]
        for user_id, _ in oldest:
            del self._entries[user_id]
        logger.debug("Evicted achievement cache entries", evicted=count)

    def invalidate(self, user_id: uuid.UUID) -> None:
        with self._lock:
            self._counter += 1
            self._generations[user_id] = self._counter
            self._entries.pop(user_id, None)

    def clear(self) -> None:
        with self._lock:
            self._counter += 1
            self._cleared_at = self._counter
            self._generations.clear()
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._entries

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                backend=self.backend,
                size=len(self._entries),
                max_size=self.max_size,
                ttl_seconds=self.ttl_seconds,
                hits=self._hits,
                misses=self._misses,
            )


class RedisAchievementCache:
    """Snapshot cache shared between processes through Redis.

    Redis enforces the TTL; size is bounded by the server's eviction policy.
    A Redis failure is logged and treated as a miss so the caller recomputes.
    Generations are ``"<epoch>:<user counter>"`` strings built from two
    counters: ``clear`` bumps the epoch, ``invalidate`` the user's counter.
    Guarded writes ``WATCH`` both so an invalidation racing the write wins.
    """

    backend = "redis"

    def __init__(
        self,
        client: redis.Redis,
        ttl_seconds: int = 3600,
        prefix: str = REDIS_KEY_PREFIX,
        generation_prefix: str = REDIS_GENERATION_PREFIX,
    ) -> None:
        self._redis = client
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix
        self.generation_prefix = generation_prefix
        self._hits = 0
        self._misses = 0

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int = 3600) -> "RedisAchievementCache":
        return cls(redis.Redis.from_url(url, decode_responses=True), ttl_seconds=ttl_seconds)

    def _key(self, user_id: uuid.UUID) -> str:
        return f"{self.prefix}{user_id}"

    def _generation_key(self, user_id: uuid.UUID) -> str:
        return f"{self.generation_prefix}{user_id}"

    @property
    def _epoch_key(self) -> str:
        return f"{self.generation_prefix}epoch"

    def _read_generation(self, client, user_id: uuid.UUID) -> str:
        user_counter, epoch = client.mget(self._generation_key(user_id), self._epoch_key)
        return f"{int(epoch or 0)}:{int(user_counter or 0)}"

    def get(self, user_id: uuid.UUID) -> "AchievementSnapshot | None":
        from bountyboard.services.achievement_engine import AchievementSnapshot

        try:
            payload = self._redis.get(self._key(user_id))
        except redis.RedisError as exc:
            logger.warning("Achievement cache read failed", user_id=str(user_id), error=str(exc))
            self._misses += 1
            return None
        if payload is None:
            self._misses += 1
            return None
        self._hits += 1
        return AchievementSnapshot.from_dict(json.loads(payload))

    def generation(self, user_id: uuid.UUID) -> str | None:
        try:
            return self._read_generation(self._redis, user_id)
        except redis.RedisError as exc:
            logger.warning(
                "Achievement cache generation unavailable", user_id=str(user_id), error=str(exc)
            )
            return None

    def set(
        self,
        user_id: uuid.UUID,
        snapshot: "AchievementSnapshot",
        generation: Hashable | None = None,
    ) -> None:
        payload = json.dumps(snapshot.to_dict(), sort_keys=True)
        try:
            if generation is None:
                self._redis.setex(self._key(user_id), self.ttl_seconds, payload)
                return
            with self._redis.pipeline() as pipe:
                pipe.watch(self._generation_key(user_id), self._epoch_key)
                if self._read_generation(pipe, user_id) != generation:
                    pipe.unwatch()
                    logger.debug("Discarded stale achievement snapshot", user_id=str(user_id))
                    return
                pipe.multi()
                pipe.setex(self._key(user_id), self.ttl_seconds, payload)
                pipe.execute()
        except redis.WatchError:
            logger.debug("Achievement snapshot invalidated during write", user_id=str(user_id))
        except redis.RedisError as exc:
            logger.warning("Achievement cache write failed", user_id=str(user_id), error=str(exc))

    def invalidate(self, user_id: uuid.UUID) -> None:
        try:
            with self._redis.pipeline() as pipe:
                pipe.incr(self._generation_key(user_id))
                pipe.delete(self._key(user_id))
                pipe.execute()
        except redis.RedisError as exc:
            logger.warning(
                "Achievement cache invalidation failed", user_id=str(user_id), error=str(exc)
            )

    def clear(self) -> None:
        try:
            self._redis.incr(self._epoch_key)
            for key in self._redis.scan_iter(f"{self.prefix}*"):
                self._redis.delete(key)
        except redis.RedisError as exc:
            logger.warning("Achievement cache clear failed", error=str(exc))
        self._hits = 0
        self._misses = 0

    def stats(self) -> CacheStats:
        try:
            size = sum(1 for _ in self._redis.scan_iter(f"{self.prefix}*"))
        except redis.RedisError as exc:
            logger.warning("Achievement cache stats unavailable", error=str(exc))
            size = 0
        return CacheStats(
            backend=self.backend,
            size=size,
            max_size=None,
            ttl_seconds=self.ttl_seconds,
            hits=self._hits,
            misses=self._misses,
        )


def build_achievement_cache(config: Settings = settings) -> AchievementCache:
    """Create the cache selected by ``ACHIEVEMENT_CACHE_BACKEND``."""

    if config.ACHIEVEMENT_CACHE_BACKEND == "redis":
        return RedisAchievementCache.from_url(
            str(config.REDIS_URL), ttl_seconds=config.ACHIEVEMENT_CACHE_TTL_SECONDS
        )
    return InMemoryAchievementCache(
        ttl_seconds=config.ACHIEVEMENT_CACHE_TTL_SECONDS,
        max_size=config.ACHIEVEMENT_CACHE_MAX_SIZE,
    )


achievement_cache: AchievementCache = build_achievement_cache()


__all__ = [
    "AchievementCache",
    "CacheStats",
    "InMemoryAchievementCache",
    "RedisAchievementCache",
    "achievement_cache",
    "build_achievement_cache",
]
