"""Gregorian to Hijri month resolution behind a cache and a FIFO queue.

The upstream calendar API rate limits aggressively, so every lookup that
misses the cache goes through one queue drained by a single worker task.
The worker sleeps ``request_delay`` seconds between two requests (never
before the first) and exits once the queue is empty; the next miss
starts a fresh worker.

Failures never reach the caller. A date the source cannot convert
resolves to ``'N/A'``, a transport or parse failure to ``'Error'``.
"""
import asyncio
import logging
from collections import deque
from typing import Optional

from .cache import TTLCache
from .models import HijriDate, HijriResult, HIJRI_ERROR, HIJRI_NOT_AVAILABLE, format_month
from .providers import HijriDateProvider, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_DELAY = 1.0


class DateResolver:
    """Resolves the Hijri month/year of the first day of a Gregorian month."""

    def __init__(self, provider: HijriDateProvider, cache: TTLCache, request_delay: float = DEFAULT_REQUEST_DELAY):
        self.provider = provider
        self.cache = cache
        self.request_delay = request_delay
        self._queue: deque = deque()
        self._worker: Optional[asyncio.Task] = None

    def _cached(self, key: str) -> Optional[HijriDate]:
        data = self.cache.load(key)
        if data is None:
            return None
        try:
            return HijriDate.from_dict(data)
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Ignoring malformed cached Hijri date for {key}: {data!r}")
            return None

    async def resolve_hijri_date(self, month: int, year: int) -> HijriResult:
        key = format_month(month, year)
        cached = self._cached(key)
        if cached is not None:
            return cached

        future = asyncio.get_running_loop().create_future()
        self._queue.append((month, year, future))
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._process_queue())
        return await future

    async def _process_queue(self) -> None:
        while self._queue:
            month, year, future = self._queue.popleft()
            if not future.done():
                result = await self._resolve_uncached(month, year)
                if not future.done():
                    future.set_result(result)

            if self._queue and self.request_delay > 0:
                await asyncio.sleep(self.request_delay)

    async def _resolve_uncached(self, month: int, year: int) -> HijriResult:
        key = format_month(month, year)

        # An earlier request in the queue may have resolved the same month
        cached = self._cached(key)
        if cached is not None:
            return cached

        try:
            conversion = await self.provider.convert(month, year)
        except ProviderError as e:
            logger.warning(f"Hijri date conversion failed for {key}: {e}")
            return HIJRI_ERROR
        except Exception as e:
            logger.exception(f"Unexpected error converting {key}: {e}")
            return HIJRI_ERROR

        if not conversion.success:
            logger.info(f"No Hijri conversion available for {key}")
            return HIJRI_NOT_AVAILABLE

        hijri = HijriDate(month=conversion.month, year=conversion.year)
        self.cache.save(key, hijri.to_dict())
        return hijri

    @property
    def pending(self) -> int:
        """Number of requests waiting behind the one in progress."""
        return len(self._queue)
