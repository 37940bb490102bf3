"""Crawler layer - tiered acquisition of recent X posts."""

from x_intel_digest.crawler.accounts import resolve_accounts
from x_intel_digest.crawler.models import FetchReport, FetchTier, IntelligenceItem, TierResult
from x_intel_digest.crawler.orchestrator import AcquisitionOrchestrator, NoRecentPostsError
from x_intel_digest.crawler.window import is_within_window, parse_timestamp

__all__ = [
    "AcquisitionOrchestrator",
    "FetchReport",
    "FetchTier",
    "IntelligenceItem",
    "NoRecentPostsError",
    "TierResult",
    "is_within_window",
    "parse_timestamp",
    "resolve_accounts",
]
