"""Gold price provider implementations."""
import json
from datetime import date, datetime, timezone
from numbers import Number
from typing import Optional

import httpx

from app.services.config import get_goldapi_key, get_gold_price_currency, get_provider_timeout, get_user_agent
from . import (
    GoldPriceProvider,
    GoldPrice,
    AuthenticationError,
    ConfigurationError,
    DataFormatError,
    NetworkError,
    QuotaExceededError,
    RateLimitError,
    UpstreamError,
)


QUOTA_EXCEEDED_MESSAGE = 'Monthly API quota exceeded'


def _today() -> date:
    return datetime.now(timezone.utc).date()


def period_start(year: int, month: Optional[int] = None) -> date:
    """First day of the requested period (1 January for a whole year)."""
    return date(year, month or 1, 1)


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class GoldAPIProvider(GoldPriceProvider):
    """GoldAPI.io provider - requires API key.

    Provides historical and current 24k gram prices for gold in the
    configured currency. Free tier: 300 requests/month.
    """

    BASE_URL = "https://www.goldapi.io/api"

    def __init__(
        self,
        api_key: Optional[str] = None,
        currency: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self._api_key = api_key or get_goldapi_key()
        self.currency = (currency or get_gold_price_currency()).upper()
        self._client = client
        self._timeout = timeout if timeout is not None else get_provider_timeout()

    @property
    def name(self) -> str:
        return "goldapi"

    @property
    def requires_api_key(self) -> bool:
        return True

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def build_url(self, year: int, month: Optional[int] = None) -> str:
        target = period_start(year, month)
        if target < _today():
            return f"{self.BASE_URL}/XAU/{self.currency}/{target.strftime('%Y%m%d')}"
        return f"{self.BASE_URL}/XAU/{self.currency}"

    async def _get(self, url: str) -> httpx.Response:
        headers = {
            'User-Agent': get_user_agent(),
            'x-access-token': self._api_key,
        }
        if self._client is not None:
            return await self._client.get(url, headers=headers)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(url, headers=headers)

    async def get_price(self, year: int, month: Optional[int] = None) -> GoldPrice:
        """Fetch the 24k gram price for the start of the period."""
        if not self._api_key:
            raise AuthenticationError("API key not configured")

        url = self.build_url(year, month)
        try:
            response = await self._get(url)
        except httpx.TimeoutException:
            raise NetworkError("Request timed out")
        except httpx.HTTPError as e:
            raise NetworkError(f"Network error: {e}")

        status = response.status_code
        if status == 401:
            raise AuthenticationError("Authentication failed: Invalid API key", status_code=401)
        if status == 403:
            raise AuthenticationError("Permission denied: Insufficient access rights", status_code=403)
        if status == 404:
            raise ConfigurationError("API endpoint not found", status_code=404)
        if status == 429:
            raise RateLimitError(
                "Rate limit exceeded: Too many requests",
                retry_after=_parse_retry_after(response.headers.get('Retry-After')),
            )
        if not response.is_success:
            raise UpstreamError(f"API request failed: HTTP error {status}", status_code=status)

        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError):
            raise DataFormatError("Invalid JSON response")

        if not isinstance(data, dict):
            raise DataFormatError("Invalid API response format")

        error = data.get('error')
        if isinstance(error, str) and QUOTA_EXCEEDED_MESSAGE in error:
            raise QuotaExceededError(
                "Monthly API quota exceeded. Add billing details to upgrade to Unlimited requests/month plan."
            )

        price = data.get('price_gram_24k')
        if isinstance(price, bool) or not isinstance(price, Number) or price <= 0:
            raise DataFormatError("Invalid API response format")

        return GoldPrice(price_per_gram=float(price), currency=self.currency, source=self.name)
