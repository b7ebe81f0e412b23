"""Time provider abstraction for testable cache expiry.

Timestamps in this module are POSIX seconds (UTC). Cache envelopes store
the write time as a float so TTL checks are a plain subtraction.

This module provides a TimeProvider class that can be frozen for testing,
allowing deterministic tests that don't depend on the wall clock.
"""
import time
from typing import Optional


class TimeProvider:
    """Provides the current time, allowing tests to freeze and advance it.

    Usage:
        # Production: uses the real clock
        provider = TimeProvider()
        now = provider.now()

        # Testing: freeze to a specific instant
        provider = TimeProvider(frozen_time=1_700_000_000.0)
        provider.advance(60)
        provider.now()  # 1_700_000_060.0
    """

    _instance: Optional['TimeProvider'] = None

    def __init__(self, frozen_time: Optional[float] = None):
        """Initialize TimeProvider.

        Args:
            frozen_time: If provided, now() returns this value until
                        advance() moves it. If None, returns time.time().
        """
        self._frozen_time = frozen_time

    def now(self) -> float:
        """Get current time in epoch seconds, or the frozen time if set."""
        if self._frozen_time is not None:
            return self._frozen_time
        return time.time()

    def advance(self, seconds: float) -> None:
        """Move a frozen clock forward. No-op on a real clock."""
        if self._frozen_time is not None:
            self._frozen_time += seconds

    @classmethod
    def get_default(cls) -> 'TimeProvider':
        """Get the default TimeProvider instance (singleton for production)."""
        if cls._instance is None:
            cls._instance = TimeProvider()
        return cls._instance

    @classmethod
    def set_default(cls, provider: 'TimeProvider') -> None:
        """Set the default TimeProvider (for testing)."""
        cls._instance = provider

    @classmethod
    def reset_default(cls) -> None:
        """Reset to production TimeProvider."""
        cls._instance = None


def get_now(time_provider: Optional[TimeProvider] = None) -> float:
    """Convenience function to get the current epoch time."""
    if time_provider is None:
        time_provider = TimeProvider.get_default()
    return time_provider.now()
