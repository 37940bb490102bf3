"""Digest rendering for bot delivery.

This module turns a batch of intelligence items into one plain-text
message, truncated to stay under the transport's message size limit.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from x_intel_digest.crawler.models import IntelligenceItem

MAX_DIGEST_CHARS = 4000
SEPARATOR = "=" * 30
TRUNCATION_MARKER = "... (too many updates, truncated)\n"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def render_header(label: str, count: int, now: datetime) -> str:
    """Render the digest header: label, time, count and separator."""
    return (
        f"【{label} Security Intel】\n"
        f"Time: {now.strftime(TIME_FORMAT)}\n"
        f"{count} updates\n"
        f"{SEPARATOR}\n\n"
    )


def render_item(index: int, item: IntelligenceItem) -> str:
    """Render one numbered entry."""
    return f"{index}. {item.summary}\n🔗 {item.link}\n\n"


def render_digest(
    items: Sequence[IntelligenceItem],
    label: str,
    now: datetime | None = None,
    max_chars: int = MAX_DIGEST_CHARS,
) -> str:
    """Render a batch of items as a single digest message.

    Items are appended in input order. Once the text exceeds
    ``max_chars`` after an item, the truncation marker is appended and
    the remaining items are left out.

    Args:
        items: Items to include.
        label: Topic label for the header.
        now: Timestamp shown in the header (defaults to local time).
        max_chars: Size ceiling that triggers truncation.

    Returns:
        The rendered message.
    """
    now = now or datetime.now()
    parts = [render_header(label, len(items), now)]
    length = len(parts[0])

    for index, item in enumerate(items, start=1):
        entry = render_item(index, item)
        parts.append(entry)
        length += len(entry)
        if length > max_chars:
            parts.append(TRUNCATION_MARKER)
            break

    return "".join(parts)
