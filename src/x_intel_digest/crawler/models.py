"""Data models for the crawler module."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class FetchTier(Enum):
    """Acquisition strategies, declared in priority order."""

    DELEGATED_SCRAPER = "delegated_scraper"
    OFFICIAL_API = "official_api"
    EMBEDDED_SCRAPER = "embedded_scraper"


@dataclass(frozen=True)
class IntelligenceItem:
    """One discovered post.

    Attributes:
        link: Permanent URL of the post.
        summary: Author handle and body text, e.g. ``@user: text``.
    """

    link: str
    summary: str

    @classmethod
    def from_post(cls, link: str, username: str, text: str) -> IntelligenceItem | None:
        """Build an item from raw post fields.

        Returns None when the link or the text is empty, so callers can
        drop incomplete records without special casing.
        """
        link = (link or "").strip()
        text = (text or "").strip()
        if not link or not text:
            return None
        return cls(link=link, summary=f"@{username}: {text}")


@dataclass
class TierResult:
    """Outcome of running one fetch tier over the account roster."""

    tier: FetchTier
    items: list[IntelligenceItem] = field(default_factory=list)
    failed_accounts: dict[str, str] = field(default_factory=dict)
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        """A tier only counts as successful when it produced items."""
        return len(self.items) > 0


@dataclass
class FetchReport:
    """Record of one orchestrator run across all attempted tiers."""

    attempts: list[TierResult] = field(default_factory=list)

    @property
    def winning_tier(self) -> FetchTier | None:
        for attempt in self.attempts:
            if attempt.succeeded:
                return attempt.tier
        return None

    @property
    def items(self) -> list[IntelligenceItem]:
        for attempt in self.attempts:
            if attempt.succeeded:
                return attempt.items
        return []

    @property
    def attempted_tiers(self) -> list[FetchTier]:
        return [attempt.tier for attempt in self.attempts]
