"""Hawl state machine.

Scans a chronologically sorted ledger once and decides, per entry,
whether a Hawl starts, continues, resets or completes with zakat due.
Everything here is synchronous: Hijri dates and Nisab values are
resolved beforehand and passed in as plain maps.

Elapsed time is counted in lunar months. An entry for the Gregorian month
right after the previous qualifying entry adds one, whatever the Hijri
dates say: first-of-month conversions drift against the lunar calendar,
so their distance over adjacent months is sometimes 0 or 2. Across a gap
in the ledger the lunar distance between the two Hijri dates is added
(at least one); when either date is unknown the gap counts as one.
"""
import re
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from app.constants import (
    HAWL_LUNAR_MONTHS,
    ZAKAT_RATE,
    NOTE_BELOW_NISAB,
    NOTE_HAWL_BEGINS,
    NOTE_HAWL_CONTINUES,
    NOTE_ZAKAT_DUE,
    ROW_CLASS_BELOW_NISAB,
    ROW_CLASS_CONTINUES,
    ROW_CLASS_HAWL_START,
    ROW_CLASS_ZAKAT_DUE,
)
from .ledger import parse_gregorian_month
from .models import HijriDate, HijriResult, HIJRI_NOT_AVAILABLE, LedgerEntry, ReportRow, is_known_hijri, threshold_key

_HIJRI_TEXT_RE = re.compile(r'^(\d{1,2})/(\d{1,5})$')


class MissingThresholdError(LookupError):
    """No Nisab value was resolved for an entry's period."""
    pass


@dataclass
class HawlState:
    is_active: bool = False
    start_date: Optional[str] = None
    months_elapsed: int = 0
    last_hijri: Optional[HijriDate] = None
    last_date: Optional[str] = None

    def start(self, date: str, hijri: Optional[HijriDate]) -> None:
        self.is_active = True
        self.start_date = date
        self.months_elapsed = 1
        self.last_hijri = hijri
        self.last_date = date

    def reset(self) -> None:
        self.is_active = False
        self.start_date = None
        self.months_elapsed = 0
        self.last_hijri = None
        self.last_date = None


@dataclass(frozen=True)
class HawlStatus:
    note: str
    row_class: str
    zakat: Optional[float] = None


def coerce_hijri(value) -> Optional[HijriDate]:
    """Accept a HijriDate or its 'MM/YYYY' text; anything else is unknown."""
    if is_known_hijri(value):
        return value
    if isinstance(value, str):
        match = _HIJRI_TEXT_RE.match(value.strip())
        if match and 1 <= int(match.group(1)) <= 12:
            return HijriDate(month=int(match.group(1)), year=int(match.group(2)))
    return None


def lunar_months_between(earlier: HijriDate, later: HijriDate) -> int:
    return later.month_index - earlier.month_index


def gregorian_months_between(earlier: str, later: str) -> int:
    """Month distance between two 'MM/YYYY' dates."""
    earlier_month, earlier_year = parse_gregorian_month(earlier)
    later_month, later_year = parse_gregorian_month(later)
    return (later_year - earlier_year) * 12 + (later_month - earlier_month)


def elapsed_increment(state: HawlState, current_date: str, hijri: Optional[HijriDate]) -> int:
    """Lunar months to add for a qualifying entry while a Hawl is active."""
    if state.last_date is None or gregorian_months_between(state.last_date, current_date) <= 1:
        return 1
    if hijri is None or state.last_hijri is None:
        return 1
    return max(lunar_months_between(state.last_hijri, hijri), 1)


def calculate_zakat_amount(total: float) -> float:
    return round(total * ZAKAT_RATE, 2)


def calculate_hawl_status(
    total: float,
    nisab: float,
    state: HawlState,
    current_date: str,
    hijri: Optional[HijriDate] = None,
) -> HawlStatus:
    """Apply one transition to state and describe the resulting row."""
    if total < nisab:
        state.reset()
        return HawlStatus(note=NOTE_BELOW_NISAB, row_class=ROW_CLASS_BELOW_NISAB)

    if not state.is_active:
        state.start(current_date, hijri)
        return HawlStatus(note=NOTE_HAWL_BEGINS, row_class=ROW_CLASS_HAWL_START)

    state.months_elapsed += elapsed_increment(state, current_date, hijri)
    state.last_hijri = hijri
    state.last_date = current_date

    if state.months_elapsed >= HAWL_LUNAR_MONTHS:
        start_date = state.start_date
        state.reset()
        return HawlStatus(
            note=f"{NOTE_ZAKAT_DUE} {start_date}",
            row_class=ROW_CLASS_ZAKAT_DUE,
            zakat=calculate_zakat_amount(total),
        )

    return HawlStatus(note=NOTE_HAWL_CONTINUES, row_class=ROW_CLASS_CONTINUES)


def lookup_threshold(thresholds: Mapping[str, float], entry: LedgerEntry) -> float:
    """Monthly value first, yearly value second."""
    for key in (threshold_key(entry.year, entry.month), threshold_key(entry.year)):
        if key in thresholds and thresholds[key] is not None:
            return float(thresholds[key])
    raise MissingThresholdError(f"No nisab value for {entry.date}")


def _render_hijri(value: Optional[HijriResult]) -> str:
    if value is None:
        return HIJRI_NOT_AVAILABLE
    return str(value)


def evaluate(
    entries: Iterable[LedgerEntry],
    hijri_dates: Mapping[str, HijriResult],
    thresholds: Mapping[str, float],
) -> list[ReportRow]:
    """Run the Hawl state machine over entries sorted by Gregorian date.

    Args:
        entries: Ledger entries in ascending (year, month) order
        hijri_dates: 'MM/YYYY' -> HijriDate or sentinel string
        thresholds: 'YYYY' or 'YYYY-MM' -> Nisab value

    Returns:
        One ReportRow per entry, in the same order.

    Raises:
        ValueError: If entries are out of order
        MissingThresholdError: If an entry has no Nisab value
    """
    state = HawlState()
    rows = []
    previous = None

    for entry in entries:
        if previous is not None and entry.sort_key < previous:
            raise ValueError(f"Ledger entries out of order at {entry.date}")
        previous = entry.sort_key

        total = entry.net_value
        nisab = lookup_threshold(thresholds, entry)
        raw_hijri = hijri_dates.get(entry.date)
        status = calculate_hawl_status(total, nisab, state, entry.date, coerce_hijri(raw_hijri))

        rows.append(ReportRow(
            date=entry.date,
            hijri_date=_render_hijri(raw_hijri),
            amount=entry.amount,
            interest=entry.interest,
            total=total,
            nisab_threshold=nisab,
            zakat_due=status.zakat,
            note=status.note,
            row_class=status.row_class,
        ))

    return rows
