"""Hijri date provider implementations."""
import json
from typing import Optional

import httpx

from app.services.config import get_provider_timeout, get_user_agent
from . import HijriDateProvider, HijriConversion, DataFormatError, NetworkError, RateLimitError


def parse_hijri_date_string(value: str) -> tuple[int, int]:
    """Extract (month, year) from 'DD-MM-YYYY' or 'YYYY-MM-DD'."""
    parts = str(value).split('-')
    if len(parts) != 3:
        raise DataFormatError(f"Unexpected Hijri date format: {value!r}")
    try:
        if len(parts[0]) == 4:
            year, month = int(parts[0]), int(parts[1])
        else:
            month, year = int(parts[1]), int(parts[2])
    except ValueError:
        raise DataFormatError(f"Unexpected Hijri date format: {value!r}")
    if not 1 <= month <= 12 or year <= 0:
        raise DataFormatError(f"Hijri date out of range: {value!r}")
    return month, year


class AladhanProvider(HijriDateProvider):
    """Aladhan calendar API - free, no key, rate limited.

    Converts the first day of a Gregorian month. Only the Hijri month
    and year are kept.
    """

    BASE_URL = "https://api.aladhan.com/v1"

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self._client = client
        self._timeout = timeout if timeout is not None else get_provider_timeout()

    @property
    def name(self) -> str:
        return "aladhan"

    def build_url(self, month: int, year: int) -> str:
        return f"{self.BASE_URL}/gToH/01-{month:02d}-{year}"

    async def _get(self, url: str) -> httpx.Response:
        headers = {'Accept': 'application/json', 'User-Agent': get_user_agent()}
        if self._client is not None:
            return await self._client.get(url, headers=headers)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(url, headers=headers)

    async def convert(self, month: int, year: int) -> HijriConversion:
        url = self.build_url(month, year)
        try:
            response = await self._get(url)
        except httpx.TimeoutException:
            raise NetworkError(f"Timeout converting {month:02d}/{year}")
        except httpx.HTTPError as e:
            raise NetworkError(f"Network error: {e}")

        if response.status_code == 429:
            raise RateLimitError("Rate limit exceeded")

        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError):
            raise DataFormatError("Invalid JSON response", status_code=response.status_code)

        if not isinstance(data, dict):
            raise DataFormatError("Invalid response format", status_code=response.status_code)

        # The API answers invalid dates with a JSON body and a non-200 code
        if data.get('code') != 200:
            return HijriConversion(success=False, source=self.name)

        payload = data.get('data')
        hijri = payload.get('hijri') if isinstance(payload, dict) else None
        if not isinstance(hijri, dict) or 'date' not in hijri:
            raise DataFormatError("Missing hijri date in response")

        hijri_month, hijri_year = parse_hijri_date_string(hijri['date'])
        return HijriConversion(success=True, month=hijri_month, year=hijri_year, source=self.name)

