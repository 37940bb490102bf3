"""Tests for crawler data models."""

from x_intel_digest.crawler.models import FetchReport, FetchTier, IntelligenceItem, TierResult


class TestIntelligenceItem:
    """Tests for IntelligenceItem."""

    def test_from_post(self) -> None:
        item = IntelligenceItem.from_post("https://x.com/a/status/1", "a", "  hi  ")
        assert item == IntelligenceItem(link="https://x.com/a/status/1", summary="@a: hi")

    def test_from_post_rejects_empty_fields(self) -> None:
        assert IntelligenceItem.from_post("", "a", "hi") is None
        assert IntelligenceItem.from_post("https://x.com/a/status/1", "a", "   ") is None


class TestFetchReport:
    """Tests for FetchReport."""

    def test_empty_report(self) -> None:
        report = FetchReport()
        assert report.winning_tier is None
        assert report.items == []
        assert report.attempted_tiers == []

    def test_winner_is_first_successful_attempt(self) -> None:
        item = IntelligenceItem(link="l", summary="s")
        report = FetchReport(
            attempts=[
                TierResult(tier=FetchTier.DELEGATED_SCRAPER, error="unavailable"),
                TierResult(tier=FetchTier.EMBEDDED_SCRAPER, items=[item]),
            ]
        )
        assert report.winning_tier is FetchTier.EMBEDDED_SCRAPER
        assert report.items == [item]

    def test_tier_priority_order(self) -> None:
        assert list(FetchTier) == [
            FetchTier.DELEGATED_SCRAPER,
            FetchTier.OFFICIAL_API,
            FetchTier.EMBEDDED_SCRAPER,
        ]
