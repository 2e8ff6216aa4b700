from __future__ import annotations
import asyncio
from typing import Any, Protocol

import redis.asyncio as aioredis
import structlog
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import ConnectionError as RedisConnectionError, RedisError, TimeoutError as RedisTimeoutError

log = structlog.get_logger()

# Errors that mean the link itself is gone, as opposed to a rejected command.
_LINK_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError, asyncio.TimeoutError)


class DurableCache(Protocol):
    """What the cache manager needs from the shared cache service."""

    def is_ready(self) -> bool: ...
    async def get(self, key: str) -> str | None: ...
    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...
    async def delete(self, key: str) -> None: ...


class RedisCacheClient:
    """
    Redis connection with bounded reconnection and a readiness flag.

    Connecting never blocks startup: `start()` schedules the connect loop in
    the background. A failed attempt waits min(attempt * retry_step, retry_cap)
    seconds before the next one. The first ping is not a retry; once
    `max_attempts` retries have also failed over the client's lifetime it
    stops trying for good and `is_ready()` stays False until the process
    restarts.

    redis-py's own per-command retries are disabled so this class is the only
    place that decides when to reconnect.
    """

    def __init__(
        self,
        url: str,
        *,
        max_attempts: int = 3,
        retry_step: float = 0.5,
        retry_cap: float = 2.0,
        socket_timeout: float = 2.0,
        client: Any | None = None,
    ):
        self.url = url
        self.max_attempts = max_attempts
        self.retry_step = retry_step
        self.retry_cap = retry_cap
        self._client = client if client is not None else aioredis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            retry_on_timeout=False,
            retry=Retry(NoBackoff(), 0),
        )
        self._ready = False
        self._closed = False
        self._failed_attempts = 0
        self._connect_task: asyncio.Task | None = None

    # ---------- lifecycle ----------

    @property
    def failed_attempts(self) -> int:
        return self._failed_attempts

    @property
    def gave_up(self) -> bool:
        return self._failed_attempts > self.max_attempts

    def is_ready(self) -> bool:
        return self._ready and not self._closed

    def backoff_delay(self, attempt: int) -> float:
        return min(attempt * self.retry_step, self.retry_cap)

    def start(self) -> None:
        """Schedule a background connect; returns immediately."""
        if self._closed or self.gave_up:
            return
        if self._connect_task is None or self._connect_task.done():
            self._connect_task = asyncio.create_task(self.connect(), name="redis-connect")

    async def connect(self) -> bool:
        """Ping until it works or the retry allowance is spent. Returns readiness."""
        while not self._closed and not self.gave_up:
            try:
                await self._client.ping()
            except (RedisError, *_LINK_ERRORS) as e:
                self._ready = False
                self._failed_attempts += 1
                log.warning("redis_connect_failed", url=self.url, attempt=self._failed_attempts, error=str(e))
                if self.gave_up:
                    log.warning("redis_reconnect_gave_up", url=self.url, attempts=self._failed_attempts)
                    break
                await asyncio.sleep(self.backoff_delay(self._failed_attempts))
            else:
                self._ready = True
                log.info("redis_connected", url=self.url)
                break
        return self.is_ready()

    async def close(self) -> None:
        self._closed = True
        self._ready = False
        task, self._connect_task = self._connect_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        try:
            await self._client.aclose()
            log.info("redis_disconnected", url=self.url)
        except Exception as e:
            log.warning("redis_disconnect_failed", url=self.url, error=str(e))

    def _link_lost(self, e: BaseException) -> None:
        if self._ready:
            log.warning("redis_connection_lost", url=self.url, error=str(e))
        self._ready = False
        self.start()

    # ---------- commands ----------

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except _LINK_ERRORS as e:
            self._link_lost(e)
            raise

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except _LINK_ERRORS as e:
            self._link_lost(e)
            raise

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except _LINK_ERRORS as e:
            self._link_lost(e)
            raise
