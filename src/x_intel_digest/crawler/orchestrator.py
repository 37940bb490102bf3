"""Acquisition orchestrator: tiered fetching with fallback."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from x_intel_digest.crawler.models import FetchReport, IntelligenceItem, TierResult
from x_intel_digest.crawler.tiers.base import TierFetcher, TierUnavailableError
from x_intel_digest.crawler.tiers.delegated import DelegatedScraperTier
from x_intel_digest.crawler.tiers.embedded import EmbeddedScraperTier
from x_intel_digest.crawler.tiers.official_api import OfficialApiTier

if TYPE_CHECKING:
    from x_intel_digest.config import Settings

logger = logging.getLogger(__name__)


class NoRecentPostsError(Exception):
    """Raised when no tier found any post inside the time window."""

    def __init__(self, report: FetchReport) -> None:
        tiers = ", ".join(t.value for t in report.attempted_tiers) or "none"
        super().__init__(f"no posts in the last 24 hours (tiers tried: {tiers})")
        self.report = report


class AcquisitionOrchestrator:
    """Runs fetch tiers in priority order until one yields posts.

    The tier list is fixed at construction; the first tier returning at
    least one item wins and the remaining tiers are not attempted. A tier
    that returns nothing, or fails outright, falls through to the next.

    Example:
        >>> orchestrator = AcquisitionOrchestrator.from_settings(get_settings())
        >>> items = orchestrator.fetch(["elonmusk"])
    """

    def __init__(self, tiers: Sequence[TierFetcher]) -> None:
        """Initialize the orchestrator.

        Args:
            tiers: Fetch tiers in priority order.
        """
        self.tiers = list(tiers)

    @classmethod
    def from_settings(cls, settings: Settings, **tier_kwargs: Any) -> AcquisitionOrchestrator:
        """Build the standard tier table.

        The official API tier is included only when credentials are set.
        ``tier_kwargs`` (e.g. ``clock``, ``sleep``) are passed to every tier.
        """
        tiers: list[TierFetcher] = [DelegatedScraperTier.from_settings(settings.x, **tier_kwargs)]
        if settings.x.has_api_credentials:
            tiers.append(OfficialApiTier.from_settings(settings.x, **tier_kwargs))
        else:
            logger.info("No API credentials configured, official API tier disabled")
        tiers.append(EmbeddedScraperTier.from_settings(settings.x, settings.proxy, **tier_kwargs))
        return cls(tiers)

    def _run_tier(self, tier: TierFetcher, accounts: Sequence[str]) -> TierResult:
        try:
            return tier.fetch(accounts)
        except TierUnavailableError as e:
            logger.warning("Tier %s unavailable: %s", tier.tier.value, e)
            return TierResult(tier=tier.tier, error=str(e))
        except Exception as e:
            logger.exception("Tier %s crashed: %s", tier.tier.value, e)
            return TierResult(tier=tier.tier, error=str(e))

    def run(self, accounts: Sequence[str]) -> FetchReport:
        """Try each tier in order and record every attempt.

        Args:
            accounts: Account handles, processed in this order.

        Returns:
            FetchReport whose ``items`` come from the winning tier, if any.
        """
        roster = list(accounts)
        report = FetchReport()

        for tier in self.tiers:
            logger.info("Trying tier %s", tier.tier.value)
            result = self._run_tier(tier, roster)
            report.attempts.append(result)

            if result.succeeded:
                if result.failed_accounts:
                    logger.info(
                        "Tier %s succeeded with %d failed accounts: %s",
                        tier.tier.value,
                        len(result.failed_accounts),
                        ", ".join(result.failed_accounts),
                    )
                return report

            logger.warning("Tier %s found no recent posts, falling back", tier.tier.value)

        return report

    def fetch(self, accounts: Sequence[str]) -> list[IntelligenceItem]:
        """Fetch recent posts for ``accounts``.

        Returns:
            Items from the first tier that found any.

        Raises:
            NoRecentPostsError: If every attempted tier came back empty.
        """
        report = self.run(accounts)
        if report.winning_tier is None:
            raise NoRecentPostsError(report)
        return report.items
