"""Pluggable data provider interfaces for Hijri dates and gold prices."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass
class HijriConversion:
    """Result of one Gregorian to Hijri lookup."""
    success: bool
    month: Optional[int] = None
    year: Optional[int] = None
    source: str = ''


@dataclass
class GoldPrice:
    """Gold price data point."""
    price_per_gram: float   # 24k fine gold
    currency: str
    source: str


class HijriDateProvider(ABC):
    """Abstract base for Gregorian to Hijri date sources."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier."""
        pass

    @abstractmethod
    async def convert(self, month: int, year: int) -> HijriConversion:
        """Convert the first day of a Gregorian month.

        Returns:
            HijriConversion with success=False when the source answered
            but could not convert the date.

        Raises:
            ProviderError: On transport or payload failures
        """
        pass


class GoldPriceProvider(ABC):
    """Abstract base for gold price sources."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier."""
        pass

    @property
    @abstractmethod
    def requires_api_key(self) -> bool:
        """Whether this provider needs an API key."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if provider is properly configured (API key set if required)."""
        pass

    @abstractmethod
    async def get_price(self, year: int, month: Optional[int] = None) -> GoldPrice:
        """Fetch the 24k gram price for a year or a year-month.

        Raises:
            ProviderError: If fetch fails
        """
        pass


class ErrorKind(Enum):
    AUTHORIZATION = 'authorization'
    CONFIGURATION = 'configuration'
    DATA_FORMAT = 'data_format'
    UPSTREAM = 'upstream'
    RATE_LIMIT = 'rate_limit'
    QUOTA = 'quota'
    NETWORK = 'network'


class ProviderError(Exception):
    """Base exception for provider errors.

    The kind is fixed where the error is raised so callers branch on it
    instead of inspecting the message.
    """
    kind = ErrorKind.UPSTREAM

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ProviderError):
    """API key invalid or lacking rights."""
    kind = ErrorKind.AUTHORIZATION


class CredentialError(ProviderError):
    """Credential problem surfaced to callers, prefixed for display."""
    kind = ErrorKind.AUTHORIZATION
    prefix = 'API key error: '

    def __init__(self, message: str, status_code: Optional[int] = None):
        if not message.startswith(self.prefix):
            message = f"{self.prefix}{message}"
        super().__init__(message, status_code)


class ConfigurationError(ProviderError):
    """Endpoint missing or provider misconfigured."""
    kind = ErrorKind.CONFIGURATION


class DataFormatError(ProviderError):
    """Upstream payload is missing expected fields."""
    kind = ErrorKind.DATA_FORMAT


class UpstreamError(ProviderError):
    """Non-success status not covered by a more specific error."""
    kind = ErrorKind.UPSTREAM


class RateLimitError(ProviderError):
    """API rate limit exceeded."""
    kind = ErrorKind.RATE_LIMIT

    def __init__(self, message: str, status_code: Optional[int] = 429, retry_after: Optional[float] = None):
        super().__init__(message, status_code)
        self.retry_after = retry_after


class QuotaExceededError(ProviderError):
    """Monthly request quota used up; retrying will not help."""
    kind = ErrorKind.QUOTA


class NetworkError(ProviderError):
    """Network connectivity issue or timeout."""
    kind = ErrorKind.NETWORK
