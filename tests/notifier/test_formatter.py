"""Tests for digest rendering."""

from datetime import datetime

import pytest

from x_intel_digest.crawler.models import IntelligenceItem
from x_intel_digest.notifier.formatter import (
    MAX_DIGEST_CHARS,
    SEPARATOR,
    TRUNCATION_MARKER,
    render_digest,
    render_header,
    render_item,
)

NOW = datetime(2024, 6, 1, 12, 30, 45)


@pytest.fixture
def items() -> list[IntelligenceItem]:
    return [
        IntelligenceItem(link="https://twitter.com/a/status/1", summary="@a: first"),
        IntelligenceItem(link="https://twitter.com/b/status/2", summary="@b: second"),
    ]


def long_items(count: int, size: int = 300) -> list[IntelligenceItem]:
    return [
        IntelligenceItem(link=f"https://twitter.com/a/status/{n}", summary="@a: " + "x" * size)
        for n in range(count)
    ]


class TestRenderDigest:
    """Tests for render_digest."""

    def test_header(self, items: list[IntelligenceItem]) -> None:
        digest = render_digest(items, "SecIntel", now=NOW)
        lines = digest.splitlines()

        assert "SecIntel" in lines[0]
        assert lines[1] == "Time: 2024-06-01 12:30:45"
        assert lines[2] == "2 updates"
        assert lines[3] == SEPARATOR

    def test_items_numbered_in_order(self, items: list[IntelligenceItem]) -> None:
        digest = render_digest(items, "X", now=NOW)

        assert "1. @a: first\n🔗 https://twitter.com/a/status/1\n" in digest
        assert "2. @b: second\n🔗 https://twitter.com/b/status/2\n" in digest
        assert digest.index("1. @a") < digest.index("2. @b")
        assert TRUNCATION_MARKER not in digest

    def test_empty_items(self) -> None:
        digest = render_digest([], "X", now=NOW)
        assert digest == render_header("X", 0, NOW)

    def test_idempotent_with_fixed_clock(self, items: list[IntelligenceItem]) -> None:
        assert render_digest(items, "X", now=NOW) == render_digest(items, "X", now=NOW)

    def test_truncates_at_first_item_over_ceiling(self) -> None:
        batch = long_items(30)
        length = len(render_header("X", len(batch), NOW))
        k = 0
        for index, entry in enumerate(batch, start=1):
            length += len(render_item(index, entry))
            if length > MAX_DIGEST_CHARS:
                k = index
                break
        assert 0 < k < len(batch)

        digest = render_digest(batch, "X", now=NOW)

        assert digest.endswith(TRUNCATION_MARKER)
        assert f"\n{k}. @a:" in digest
        assert f"\n{k + 1}. @a:" not in digest
        assert f"status/{k}\n" not in digest  # item k+1 has link index k

    def test_header_count_reflects_all_items(self) -> None:
        digest = render_digest(long_items(30), "X", now=NOW)
        assert digest.splitlines()[2] == "30 updates"

    def test_custom_ceiling(self, items: list[IntelligenceItem]) -> None:
        digest = render_digest(items, "X", now=NOW, max_chars=10)

        assert "1. @a: first" in digest
        assert "2. @b: second" not in digest
        assert digest.endswith(TRUNCATION_MARKER)
