"""Value types shared by the resolvers, the Hawl engine and the API."""
from dataclasses import dataclass, asdict
from typing import Optional, Union

# Sentinels returned by the date resolver instead of a HijriDate
HIJRI_NOT_AVAILABLE = 'N/A'
HIJRI_ERROR = 'Error'


def format_month(month: int, year: int) -> str:
    return f"{month:02d}/{year}"


@dataclass(frozen=True)
class LedgerEntry:
    """One monthly wealth snapshot in the Gregorian calendar."""
    month: int
    year: int
    amount: float
    interest: float = 0.0

    @property
    def date(self) -> str:
        return format_month(self.month, self.year)

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.year, self.month)

    @property
    def net_value(self) -> float:
        """Amount minus non-halal interest income."""
        return (self.amount or 0) - (self.interest or 0)


@dataclass(frozen=True)
class HijriDate:
    month: int
    year: int

    def __str__(self) -> str:
        return format_month(self.month, self.year)

    @property
    def month_index(self) -> int:
        """Absolute lunar month count, for month distance arithmetic."""
        return self.year * 12 + (self.month - 1)

    def to_dict(self) -> dict:
        return {'month': self.month, 'year': self.year}

    @classmethod
    def from_dict(cls, data: dict) -> 'HijriDate':
        return cls(month=int(data['month']), year=int(data['year']))


HijriResult = Union[HijriDate, str]


def is_known_hijri(value: Optional[HijriResult]) -> bool:
    """True for a real HijriDate, False for sentinels and None."""
    return isinstance(value, HijriDate)


@dataclass(frozen=True)
class ReportRow:
    """Verdict for one ledger entry."""
    date: str
    hijri_date: str
    amount: float
    interest: float
    total: float
    nisab_threshold: float
    zakat_due: Optional[float]
    note: str
    row_class: str

    def to_dict(self) -> dict:
        return asdict(self)


def threshold_key(year: int, month: Optional[int] = None) -> str:
    """Nisab table key: 'YYYY' for yearly values, 'YYYY-MM' for monthly."""
    if month is None:
        return str(year)
    return f"{year}-{month:02d}"
