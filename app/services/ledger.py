"""Structural validation of ingested ledgers.

The accepted shape is the one produced by the upload collaborator::

    {
        "monthlyData": [{"date": "01/2023", "amount": 6000, "interest": null}],
        "nisabData": {"2023": 5000},
        "goldApiKey": "optional"
    }

Anything else is rejected with LedgerError before it reaches the calculator.
"""
import math
import re
from dataclasses import dataclass, field
from typing import Optional

from .models import LedgerEntry

_DATE_RE = re.compile(r'^\s*(\d{1,2})/(\d{4})\s*$')
_NISAB_KEY_RE = re.compile(r'^\d{4}(-\d{2})?$')


class LedgerError(ValueError):
    """Ingested ledger does not have the expected structure."""
    pass


@dataclass
class LedgerPayload:
    entries: list[LedgerEntry]
    nisab_table: dict[str, float] = field(default_factory=dict)
    api_key: Optional[str] = None


def parse_gregorian_month(value: str) -> tuple[int, int]:
    """Parse 'MM/YYYY' into (month, year)."""
    if not isinstance(value, str):
        raise LedgerError(f"Invalid date: {value!r}")
    match = _DATE_RE.match(value)
    if not match:
        raise LedgerError(f"Invalid date: {value!r}. Use MM/YYYY")
    month, year = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise LedgerError(f"Invalid month in date: {value!r}")
    return month, year


def _to_number(value, label: str, allow_none: bool = False) -> float:
    if value is None and allow_none:
        return 0.0
    if isinstance(value, bool):
        raise LedgerError(f"Invalid {label}: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise LedgerError(f"Invalid {label}: {value!r}")
    if not math.isfinite(number):
        raise LedgerError(f"Invalid {label}: {value!r}")
    return number


def parse_entry(raw: dict) -> LedgerEntry:
    if not isinstance(raw, dict):
        raise LedgerError('Invalid monthly data format')
    month, year = parse_gregorian_month(raw.get('date'))
    amount = _to_number(raw.get('amount'), 'amount')
    if amount < 0:
        raise LedgerError(f"Amount must not be negative: {amount}")
    interest = _to_number(raw.get('interest'), 'interest', allow_none=True)
    return LedgerEntry(month=month, year=year, amount=amount, interest=interest)


def parse_nisab_table(raw) -> dict[str, float]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise LedgerError('Missing or invalid nisab data')
    table = {}
    for key, value in raw.items():
        if not _NISAB_KEY_RE.match(str(key)):
            raise LedgerError('Invalid nisab data format')
        table[str(key)] = _to_number(value, f"nisab value for {key}")
    return table


def parse_ledger_payload(payload) -> LedgerPayload:
    """Validate an ingested ledger document and build LedgerEntry objects."""
    if not isinstance(payload, dict):
        raise LedgerError('Invalid JSON format')

    monthly = payload.get('monthlyData')
    if not isinstance(monthly, list) or not monthly:
        raise LedgerError('Missing or invalid monthly data')

    entries = [parse_entry(raw) for raw in monthly]
    nisab_table = parse_nisab_table(payload.get('nisabData'))

    api_key = payload.get('goldApiKey') or None
    if api_key is not None and not isinstance(api_key, str):
        raise LedgerError('Invalid goldApiKey')

    return LedgerPayload(entries=entries, nisab_table=nisab_table, api_key=api_key)
