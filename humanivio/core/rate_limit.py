from __future__ import annotations

import asyncio
import math
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from redis.asyncio import Redis


@dataclass
class QuotaDecision:
    allowed: bool
    remaining: int
    reset_seconds: int


class QuotaStore(ABC):
    """Per-client admission gate over a fixed window."""

    @abstractmethod
    async def admit(self, key: str) -> QuotaDecision:
        """Consume one request for ``key`` if capacity is left in its current window."""


@dataclass
class ClientQuotaRecord:
    consumed: int
    window_start: float


class InMemoryQuotaStore(QuotaStore):
    """Process-local quota counters.

    A client's window opens on its first request and closes ``window_seconds``
    later; the next request after that opens a fresh window with the counter
    at zero. Counters are not shared between processes.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._records: dict[str, ClientQuotaRecord] = {}
        self._lock = asyncio.Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._records)

    def _expired(self, record: ClientQuotaRecord, now: float) -> bool:
        return now - record.window_start >= self.window_seconds

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.window_seconds:
            return
        self._records = {key: rec for key, rec in self._records.items() if not self._expired(rec, now)}
        self._last_sweep = now

    async def admit(self, key: str) -> QuotaDecision:
        async with self._lock:
            now = self._clock()
            self._sweep(now)

            record = self._records.get(key)
            if record is None or self._expired(record, now):
                record = ClientQuotaRecord(consumed=0, window_start=now)
                self._records[key] = record

            reset_seconds = max(0, math.ceil(record.window_start + self.window_seconds - now))
            if record.consumed >= self.limit:
                return QuotaDecision(allowed=False, remaining=0, reset_seconds=reset_seconds)

            record.consumed += 1
            return QuotaDecision(
                allowed=True,
                remaining=self.limit - record.consumed,
                reset_seconds=reset_seconds,
            )


# Returns {allowed, consumed, pttl}. The counter is only incremented on admission
# and its expiry is set when the window opens.
_ADMIT_SCRIPT = """
local consumed = tonumber(redis.call('GET', KEYS[1]) or '0')
local limit = tonumber(ARGV[1])
if consumed >= limit then
    return {0, consumed, redis.call('PTTL', KEYS[1])}
end
consumed = redis.call('INCR', KEYS[1])
if consumed == 1 then
    redis.call('PEXPIRE', KEYS[1], ARGV[2])
end
return {1, consumed, redis.call('PTTL', KEYS[1])}
"""


class RedisQuotaStore(QuotaStore):
    """Quota counters shared by every process pointed at the same Redis."""

    def __init__(self, redis: Redis, *, limit: int, window_seconds: int, prefix: str = "quota:humanize:") -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self.prefix = prefix
        self._script = redis.register_script(_ADMIT_SCRIPT)

    async def admit(self, key: str) -> QuotaDecision:
        window_ms = self.window_seconds * 1000
        allowed, consumed, pttl = await self._script(keys=[f"{self.prefix}{key}"], args=[self.limit, window_ms])

        pttl = int(pttl)
        reset_seconds = math.ceil(pttl / 1000) if pttl > 0 else self.window_seconds
        return QuotaDecision(
            allowed=bool(int(allowed)),
            remaining=max(0, self.limit - int(consumed)),
            reset_seconds=reset_seconds,
        )
