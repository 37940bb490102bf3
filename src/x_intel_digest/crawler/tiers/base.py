"""Shared contract for fetch tiers."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Protocol

from x_intel_digest.crawler.models import FetchTier, TierResult

Clock = Callable[[], datetime]
Sleeper = Callable[[float], None]


class TierUnavailableError(Exception):
    """Raised when a tier cannot run at all (missing tool, bad credentials)."""


class TierFetcher(Protocol):
    """Protocol for fetch tiers.

    Implementations iterate the roster sequentially, skip accounts that
    fail, and return everything that fell inside the time window.
    """

    tier: FetchTier

    def fetch(self, accounts: Sequence[str]) -> TierResult:
        """Fetch recent posts for every account in roster order."""
        ...
