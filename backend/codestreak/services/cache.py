from __future__ import annotations
import enum
from dataclasses import dataclass
from typing import Sequence

import structlog
from pydantic import ValidationError

from codestreak.schemas.dashboard import LeaderboardEntry, LeaderboardPayload
from codestreak.services.fallback_store import FallbackStore
from codestreak.services.redis_client import DurableCache

log = structlog.get_logger()

CACHE_PREFIX = "leaderboard:"
DEFAULT_TTL_SECONDS = 60


def leaderboard_key(challenge_id: object) -> str:
    return f"{CACHE_PREFIX}{challenge_id}"


class CacheOutcome(str, enum.Enum):
    HIT = "hit"
    MISS = "miss"
    DEGRADED_MISS = "degraded_miss"  # nothing usable because a tier failed, not because nothing was cached


@dataclass(frozen=True)
class CacheLookup:
    outcome: CacheOutcome
    source: str  # "redis" | "memory"
    entries: list[LeaderboardEntry] | None = None


class CacheManager:
    """
    Two-tier leaderboard cache: Redis when it is ready, the process-local
    fallback store otherwise.

    No public method raises. Redis failures, timeouts and undecodable payloads
    are logged at warning level and turned into "no cached value".
    """

    def __init__(self, fallback: FallbackStore[str], durable: DurableCache, default_ttl: int = DEFAULT_TTL_SECONDS):
        self.fallback = fallback
        self.durable = durable
        self.default_ttl = default_ttl

    # ---------- read ----------

    async def lookup_leaderboard(self, challenge_id: object) -> CacheLookup:
        key = leaderboard_key(challenge_id)
        redis_failed = False

        if self.durable.is_ready():
            try:
                raw = await self.durable.get(key)
            except Exception as e:
                redis_failed = True
                log.warning("leaderboard_cache_read_failed", key=key, source="redis", error=str(e))
            else:
                # A Redis miss is authoritative; the local copy may be older than an invalidation.
                if raw is None:
                    return CacheLookup(CacheOutcome.MISS, "redis")
                entries = self._decode(key, raw, "redis")
                if entries is None:
                    return CacheLookup(CacheOutcome.DEGRADED_MISS, "redis")
                return CacheLookup(CacheOutcome.HIT, "redis", entries)

        raw = self.fallback.get(key)
        if raw is None:
            return CacheLookup(CacheOutcome.DEGRADED_MISS if redis_failed else CacheOutcome.MISS, "memory")
        entries = self._decode(key, raw, "memory")
        if entries is None:
            self.fallback.delete(key)
            return CacheLookup(CacheOutcome.DEGRADED_MISS, "memory")
        return CacheLookup(CacheOutcome.HIT, "memory", entries)

    async def get_leaderboard(self, challenge_id: object) -> list[LeaderboardEntry] | None:
        found = await self.lookup_leaderboard(challenge_id)
        log.info("leaderboard_cache_lookup", challenge_id=str(challenge_id), outcome=found.outcome.value, source=found.source)
        return found.entries

    # ---------- write ----------

    async def set_leaderboard(self, challenge_id: object, entries: Sequence[LeaderboardEntry], ttl_seconds: int | None = None) -> None:
        key = leaderboard_key(challenge_id)
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        payload = LeaderboardPayload.dump_json(list(entries)).decode()

        # Local copy first: it cannot fail, so at least this instance has the value.
        self.fallback.set(key, payload, ttl)

        if not self.durable.is_ready():
            log.info("leaderboard_cache_set", key=key, source="memory", ttl=ttl)
            return
        try:
            await self.durable.set(key, payload, ttl)
        except Exception as e:
            log.warning("leaderboard_cache_write_failed", key=key, source="redis", error=str(e))
        else:
            log.info("leaderboard_cache_set", key=key, source="redis", ttl=ttl)

    async def invalidate_leaderboard(self, challenge_id: object) -> None:
        key = leaderboard_key(challenge_id)
        self.fallback.delete(key)
        if not self.durable.is_ready():
            return
        try:
            await self.durable.delete(key)
        except Exception as e:
            log.warning("leaderboard_cache_invalidate_failed", key=key, source="redis", error=str(e))
        else:
            log.info("leaderboard_cache_invalidated", key=key)

    # ---------- misc ----------

    def status(self) -> dict:
        return {"durable_ready": self.durable.is_ready(), "fallback_keys": len(self.fallback)}

    @staticmethod
    def _decode(key: str, raw: str | bytes, source: str) -> list[LeaderboardEntry] | None:
        try:
            return LeaderboardPayload.validate_json(raw)
        except ValidationError as e:
            log.warning("leaderboard_cache_payload_invalid", key=key, source=source, error=str(e))
            return None
