"""Nisab tables derived from historical gold price records.

Input is either a list of ``{"date": "YYYY-MM-DD", "price": n}`` records or
an object keyed by date whose values are such records. Prices are grams of
24k gold in the reporting currency.
"""
import json
import logging
from collections import defaultdict

from .threshold_resolver import nisab_from_gram_price

logger = logging.getLogger(__name__)


def _records(data) -> list:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return list(data.values())
    raise ValueError('Gold price data must be a list or an object keyed by date')


def compute_nisab_table(data) -> dict[str, float]:
    """Average prices per year and per year-month and turn them into Nisab values.

    Returns:
        Dict keyed 'YYYY' and 'YYYY-MM'
    """
    yearly = defaultdict(list)
    monthly = defaultdict(list)
    skipped = 0

    for record in _records(data):
        try:
            year, month = str(record['date']).split('-')[:2]
            int(year), int(month)
            price = float(record['price'])
        except (KeyError, TypeError, ValueError):
            skipped += 1
            continue
        yearly[year].append(price)
        monthly[f"{year}-{month}"].append(price)

    if skipped:
        logger.warning(f"Skipped {skipped} malformed gold price records")

    table = {}
    for key, prices in list(yearly.items()) + list(monthly.items()):
        table[key] = nisab_from_gram_price(sum(prices) / len(prices))
    return table


def load_nisab_table(path: str) -> dict[str, float]:
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return compute_nisab_table(data)
