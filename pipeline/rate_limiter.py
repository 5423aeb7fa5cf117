"""
Fixed window rate limiter for inbound requests

State is process local: horizontally scaled deployments do not share counts.
The store is bounded (least recently used identifiers are evicted first)
and guarded by a lock so it stays consistent if handlers ever run on threads.
"""
import math
import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Optional

from core.logging import get_logger


@dataclass
class RateLimitRecord:
    """Request count for one identifier within its current window"""

    count: int
    reset_time: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single rate limit check"""

    allowed: bool
    limit: int
    remaining: int
    reset_time: float
    retry_after: Optional[int] = None


class FixedWindowRateLimiter:
    """Fixed window request counter keyed by identifier"""

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 15 * 60,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._records: "OrderedDict[str, RateLimitRecord]" = OrderedDict()
        self._lock = Lock()
        self.logger = get_logger("pipeline.rate_limiter", domain="pipeline")

    def hit(self, identifier: str) -> RateLimitDecision:
        """Count one request for ``identifier`` and decide whether it may proceed"""
        with self._lock:
            now = self._clock()
            record = self._records.get(identifier)

            if record is None:
                record = RateLimitRecord(count=1, reset_time=now + self.window_seconds)
                self._records[identifier] = record
                self._evict_if_needed()
            elif now < record.reset_time:
                self._records.move_to_end(identifier)
                if record.count >= self.max_requests:
                    retry_after = max(1, math.ceil(record.reset_time - now))
                    self.logger.warning(
                        f"Rate limit exceeded for {identifier}: {record.count}/{self.max_requests}",
                    )
                    return RateLimitDecision(
                        allowed=False,
                        limit=self.max_requests,
                        remaining=0,
                        reset_time=record.reset_time,
                        retry_after=retry_after,
                    )
                record.count += 1
            else:
                # Window expired, start a new one
                self._records.move_to_end(identifier)
                record.count = 1
                record.reset_time = now + self.window_seconds

            return RateLimitDecision(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests - record.count,
                reset_time=record.reset_time,
            )

    def get_record(self, identifier: str) -> Optional[RateLimitRecord]:
        """Snapshot of the record for ``identifier``"""
        with self._lock:
            record = self._records.get(identifier)
            if record is None:
                return None
            return RateLimitRecord(count=record.count, reset_time=record.reset_time)

    def sweep(self) -> int:
        """Drop records whose window has expired, returning how many were removed"""
        with self._lock:
            now = self._clock()
            expired = [key for key, record in self._records.items() if now >= record.reset_time]
            for key in expired:
                del self._records[key]

        if expired:
            self.logger.debug(f"Swept {len(expired)} expired rate limit records")
        return len(expired)

    def reset(self) -> None:
        """Forget every record (for testing)"""
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __bool__(self) -> bool:
        # An empty limiter is still a limiter
        return True

    def _evict_if_needed(self) -> None:
        # Caller holds the lock
        while len(self._records) > self.max_entries:
            evicted, _ = self._records.popitem(last=False)
            self.logger.debug(f"Evicted rate limit record for {evicted}")
