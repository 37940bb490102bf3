"""Fetch tier implementations, one per acquisition strategy."""

from x_intel_digest.crawler.tiers.base import TierFetcher, TierUnavailableError
from x_intel_digest.crawler.tiers.delegated import DelegatedScraperTier
from x_intel_digest.crawler.tiers.embedded import EmbeddedScraperTier
from x_intel_digest.crawler.tiers.official_api import OfficialApiTier

__all__ = [
    "DelegatedScraperTier",
    "EmbeddedScraperTier",
    "OfficialApiTier",
    "TierFetcher",
    "TierUnavailableError",
]
