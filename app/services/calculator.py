"""Calculation orchestrator: resolve dependent data, then run the Hawl engine."""
import asyncio
import logging
from typing import Iterable, Optional

from app.constants import NISAB_GRANULARITIES
from .cache import DEFAULT_TTL, HIJRI_CACHE_FILE, NISAB_CACHE_FILE, TTLCache, create_file_cache
from .date_resolver import DateResolver, DEFAULT_REQUEST_DELAY
from .hawl import evaluate
from .models import LedgerEntry, ReportRow, format_month, threshold_key
from .providers import registry
from .threshold_resolver import ThresholdResolver

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 8


def supplied_threshold(table: dict, year: int, month: Optional[int] = None) -> Optional[float]:
    """Value for a period from a caller supplied table; a yearly value covers its months."""
    for key in (threshold_key(year, month), threshold_key(year)):
        if key in table:
            return table[key]
    return None


class HawlCalculator:
    """Composes the date resolver, the threshold resolver and the Hawl engine."""

    def __init__(
        self,
        date_resolver: DateResolver,
        threshold_resolver: ThresholdResolver,
        granularity: str = 'year',
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ):
        if granularity not in NISAB_GRANULARITIES:
            raise ValueError(f"Invalid nisab granularity: {granularity}")
        self.date_resolver = date_resolver
        self.threshold_resolver = threshold_resolver
        self.granularity = granularity
        self.max_concurrency = max(1, max_concurrency)

    def _threshold_period(self, entry: LedgerEntry) -> tuple[int, Optional[int]]:
        if self.granularity == 'month':
            return (entry.year, entry.month)
        return (entry.year, None)

    async def _resolve_hijri_dates(self, months: list[tuple[int, int]]) -> dict:
        results = await asyncio.gather(*(
            self.date_resolver.resolve_hijri_date(month, year) for month, year in months
        ))
        return {format_month(month, year): hijri for (month, year), hijri in zip(months, results)}

    async def _resolve_thresholds(self, periods: list[tuple[int, Optional[int]]]) -> dict:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def resolve(year, month):
            async with semaphore:
                return await self.threshold_resolver.resolve_threshold(year, month)

        results = await asyncio.gather(*(resolve(year, month) for year, month in periods))
        return {threshold_key(year, month): value for (year, month), value in zip(periods, results)}

    async def calculate(self, entries: Iterable[LedgerEntry], nisab_table: Optional[dict] = None) -> list[ReportRow]:
        """Produce one report row per entry with a positive net value.

        nisab_table holds caller supplied values ("YYYY" or "YYYY-MM") that
        take precedence for this run only; they are never written to the
        shared cache.

        Raises:
            ProviderError: If any Nisab value cannot be resolved; no
                partial report is returned.
        """
        working = sorted(
            (entry for entry in entries if entry.net_value > 0),
            key=lambda entry: entry.sort_key,
        )
        if not working:
            return []

        months = list(dict.fromkeys((entry.month, entry.year) for entry in working))
        periods = list(dict.fromkeys(self._threshold_period(entry) for entry in working))
        logger.info(
            f"Calculating hawl for {len(working)} entries "
            f"({len(months)} months, {len(periods)} nisab periods)"
        )

        supplied = {str(key): float(value) for key, value in (nisab_table or {}).items()}
        unresolved = [period for period in periods if supplied_threshold(supplied, *period) is None]

        hijri_dates, thresholds = await asyncio.gather(
            self._resolve_hijri_dates(months),
            self._resolve_thresholds(unresolved),
        )
        return evaluate(working, hijri_dates, {**thresholds, **supplied})


def create_caches(
    data_dir: Optional[str] = None,
    ttl: float = DEFAULT_TTL,
    time_provider=None,
) -> tuple[TTLCache, TTLCache]:
    """(hijri_cache, nisab_cache); file backed when data_dir is given."""
    if data_dir:
        return (
            create_file_cache('hijri', data_dir, HIJRI_CACHE_FILE, ttl=ttl, time_provider=time_provider),
            create_file_cache('nisab', data_dir, NISAB_CACHE_FILE, ttl=ttl, time_provider=time_provider),
        )
    return (
        TTLCache('hijri', ttl=ttl, time_provider=time_provider),
        TTLCache('nisab', ttl=ttl, time_provider=time_provider),
    )


def build_calculator(
    hijri_cache: TTLCache,
    nisab_cache: TTLCache,
    api_key: Optional[str] = None,
    granularity: str = 'year',
    request_delay: float = DEFAULT_REQUEST_DELAY,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    currency: Optional[str] = None,
    timeout: Optional[float] = None,
) -> HawlCalculator:
    """Wire providers and resolvers around shared caches.

    Resolvers hold event-loop bound state, so build one calculator per run
    and share only the caches.
    """
    date_resolver = DateResolver(registry.get_hijri_provider(), hijri_cache, request_delay=request_delay)
    threshold_resolver = ThresholdResolver(
        registry.get_gold_price_provider(api_key, currency=currency),
        nisab_cache,
        timeout=timeout,
    )
    return HawlCalculator(
        date_resolver,
        threshold_resolver,
        granularity=granularity,
        max_concurrency=max_concurrency,
    )


def summarize(rows: list[ReportRow]) -> dict:
    zakat_rows = [row for row in rows if row.zakat_due is not None]
    return {
        'count': len(rows),
        'zakat_events': len(zakat_rows),
        'zakat_total': round(sum(row.zakat_due for row in zakat_rows), 2),
    }


def run_calculation(calculator: HawlCalculator, entries: list[LedgerEntry], nisab_table: Optional[dict] = None) -> list[ReportRow]:
    """Synchronous entry point for Flask views and CLI commands."""
    return asyncio.run(calculator.calculate(entries, nisab_table))
