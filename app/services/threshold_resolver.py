"""Nisab threshold resolution with caching and per-key request coalescing."""
import asyncio
import logging
from numbers import Number
from typing import Optional

from app.constants import NISAB_GOLD_GRAMS
from .cache import TTLCache
from .models import threshold_key
from .providers import (
    GoldPriceProvider,
    CredentialError,
    ErrorKind,
    NetworkError,
    ProviderError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY = 1.0


def nisab_from_gram_price(price_per_gram: float) -> float:
    """Nisab is the value of 85 grams of fine gold."""
    return round(price_per_gram * NISAB_GOLD_GRAMS, 2)


def seed_cache(cache: TTLCache, table: dict) -> int:
    """Write trusted {key: nisab} values (imported gold history) into cache.

    Returns how many were stored.
    """
    for key, value in table.items():
        if isinstance(value, bool) or not isinstance(value, Number):
            raise ValueError(f"Invalid nisab value for {key}: {value!r}")
    return sum(1 for key, value in table.items() if cache.save(str(key), float(value)))


class ThresholdResolver:
    """Resolves the Nisab value for a year or a year-month.

    At most one upstream request per key is in flight at any time:
    concurrent callers for the same key share one task. The in-flight
    marker is always removed when that task finishes, whatever the
    outcome, so later calls can retry.
    """

    def __init__(
        self,
        provider: GoldPriceProvider,
        cache: TTLCache,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: Optional[float] = None,
    ):
        self.provider = provider
        self.cache = cache
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._in_flight: dict[str, asyncio.Task] = {}

    def cached_value(self, key: str) -> Optional[float]:
        value = self.cache.load(key)
        if isinstance(value, bool) or not isinstance(value, Number):
            return None
        return float(value)

    def in_flight(self, key: str) -> bool:
        return key in self._in_flight

    async def resolve_threshold(self, year: int, month: Optional[int] = None) -> float:
        key = threshold_key(year, month)

        cached = self.cached_value(key)
        if cached is not None:
            return cached

        task = self._in_flight.get(key)
        if task is None:
            if not self.provider.is_configured():
                return self._without_credential(key, year, month)
            task = asyncio.create_task(self._fetch(key, year, month))
            self._in_flight[key] = task

        # shield: one cancelled caller must not cancel the shared request
        return await asyncio.shield(task)

    def _without_credential(self, key: str, year: int, month: Optional[int]) -> float:
        if month is not None:
            yearly = self.cached_value(threshold_key(year))
            if yearly is not None:
                logger.info(f"No API key; using yearly nisab {yearly} for {key}")
                return yearly
        raise CredentialError(f"API key required to fetch nisab value for {key}")

    async def _fetch(self, key: str, year: int, month: Optional[int]) -> float:
        try:
            price = await self._fetch_with_retries(key, year, month)
            value = nisab_from_gram_price(price.price_per_gram)
            self.cache.save(key, value)
            logger.info(f"Resolved nisab for {key}: {value} {price.currency} ({price.source})")
            return value
        except ProviderError as e:
            if e.kind is ErrorKind.AUTHORIZATION and not isinstance(e, CredentialError):
                raise CredentialError(str(e), status_code=e.status_code) from e
            raise
        finally:
            self._in_flight.pop(key, None)

    async def _fetch_with_retries(self, key: str, year: int, month: Optional[int]):
        attempt = 0
        while True:
            try:
                return await self._call_provider(year, month)
            except (RateLimitError, NetworkError) as e:
                if attempt >= self.max_retries:
                    logger.error(f"Failed to fetch nisab value for {key}: {e}")
                    raise
                delay = self.retry_delay * (2 ** attempt)
                if isinstance(e, RateLimitError) and e.retry_after is not None:
                    delay = max(delay, e.retry_after)
                logger.warning(
                    f"Nisab fetch for {key} failed ({e}); retry {attempt + 1}/{self.max_retries} in {delay}s"
                )
                attempt += 1
                if delay > 0:
                    await asyncio.sleep(delay)

    async def _call_provider(self, year: int, month: Optional[int]):
        if self.timeout is None:
            return await self.provider.get_price(year, month)
        try:
            return await asyncio.wait_for(self.provider.get_price(year, month), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise NetworkError(f"Gold price request timed out after {self.timeout}s")
