"""Embedded scraper tier: the public embedded profile timeline.

Needs no credentials, which makes it the baseline every run can fall
back to. The timeline page is a Next.js document whose ``__NEXT_DATA__``
script tag carries the posts as JSON.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

import httpx
from bs4 import BeautifulSoup

from x_intel_digest.crawler.models import FetchTier, IntelligenceItem, TierResult
from x_intel_digest.crawler.tiers.base import Clock, Sleeper
from x_intel_digest.crawler.window import is_within_window, parse_timestamp, utc_now

if TYPE_CHECKING:
    from x_intel_digest.config import ProxySettings, XSettings

logger = logging.getLogger(__name__)

# Constants
TIMELINE_URL = "https://syndication.twitter.com/srv/timeline-profile/screen-name/{username}"
PERMALINK_URL = "https://twitter.com/{username}/status/{tweet_id}"
STREAM_LIMIT = 20
PER_ACCOUNT_CAP = 5
ACCOUNT_DELAY = 2.0
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class TimelineError(Exception):
    """Raised when the embedded timeline cannot be read."""


@dataclass(frozen=True)
class ScrapedPost:
    """One post read from the embedded timeline."""

    tweet_id: str
    username: str
    text: str
    created_at: datetime
    permalink: str


def parse_timeline_html(html: str) -> list[ScrapedPost]:
    """Extract posts from an embedded timeline page, newest first.

    Entries without a parsable timestamp or id are dropped.

    Raises:
        TimelineError: If the page carries no timeline data.
    """
    soup = BeautifulSoup(html, "html.parser")
    script = soup.find("script", id="__NEXT_DATA__")
    if script is None or not script.string:
        raise TimelineError("timeline data not found in page")

    try:
        data = json.loads(script.string)
        entries = data["props"]["pageProps"]["timeline"]["entries"]
    except (ValueError, KeyError, TypeError) as e:
        raise TimelineError(f"unexpected timeline payload: {e}") from e

    posts: list[ScrapedPost] = []
    for entry in entries or []:
        if not isinstance(entry, dict) or entry.get("type") != "tweet":
            continue
        tweet = (entry.get("content") or {}).get("tweet") or {}
        post = _post_from_tweet(tweet)
        if post is not None:
            posts.append(post)

    # Pinned posts can sit at the top regardless of age
    posts.sort(key=lambda p: p.created_at, reverse=True)
    return posts


def _post_from_tweet(tweet: dict[str, Any]) -> ScrapedPost | None:
    created_at = parse_timestamp(tweet.get("created_at"))
    tweet_id = str(tweet.get("id_str") or tweet.get("id") or "")
    if created_at is None or not tweet_id:
        return None

    username = str((tweet.get("user") or {}).get("screen_name") or "")
    permalink = tweet.get("permalink")
    if permalink and str(permalink).startswith("/"):
        link = f"https://twitter.com{permalink}"
    else:
        link = PERMALINK_URL.format(username=username, tweet_id=tweet_id)

    return ScrapedPost(
        tweet_id=tweet_id,
        username=username,
        text=str(tweet.get("full_text") or tweet.get("text") or ""),
        created_at=created_at,
        permalink=link,
    )


class EmbeddedTimeline:
    """Reads a user's recent posts from the embedded profile timeline."""

    def __init__(self, http: httpx.Client) -> None:
        self._http = http

    def iter_posts(self, username: str, limit: int = STREAM_LIMIT) -> Iterator[ScrapedPost]:
        """Yield up to ``limit`` posts of ``username``, newest first.

        Raises:
            TimelineError: If the timeline cannot be fetched or parsed.
        """
        url = TIMELINE_URL.format(username=username)
        try:
            response = self._http.get(url)
        except httpx.HTTPError as e:
            raise TimelineError(f"request failed: {e}") from e
        if response.status_code != 200:
            raise TimelineError(f"HTTP {response.status_code}")

        yield from parse_timeline_html(response.text)[:limit]


def build_http_client(timeout: float, proxy_url: str | None = None) -> httpx.Client:
    """Create the HTTP client for the tier, proxied when configured.

    A proxy that cannot be configured is logged and skipped.
    """
    headers = {"User-Agent": USER_AGENT}
    if proxy_url:
        try:
            return httpx.Client(timeout=timeout, headers=headers, proxy=proxy_url)
        except (ValueError, ImportError, httpx.InvalidURL) as e:
            logger.warning("Failed to set proxy %s: %s; continuing without proxy", proxy_url, e)
    return httpx.Client(timeout=timeout, headers=headers)


class EmbeddedScraperTier:
    """Fetches posts from the public embedded timeline.

    The stream is read newest-first, so the first post outside the time
    window ends that account's stream early.
    """

    tier = FetchTier.EMBEDDED_SCRAPER

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        proxy_url: str | None = None,
        stream_limit: int = STREAM_LIMIT,
        per_account_cap: int = PER_ACCOUNT_CAP,
        clock: Clock = utc_now,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self.timeout = timeout
        self.proxy_url = proxy_url
        self.stream_limit = stream_limit
        self.per_account_cap = per_account_cap
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls, settings: XSettings, proxy: ProxySettings, **kwargs: Any
    ) -> EmbeddedScraperTier:
        return cls(timeout=settings.timeout, proxy_url=proxy.active_url, **kwargs)

    def fetch(self, accounts: Sequence[str]) -> TierResult:
        result = TierResult(tier=self.tier)
        logger.info("Embedded scraper monitoring %d accounts", len(accounts))

        with build_http_client(self.timeout, self.proxy_url) as http:
            timeline = EmbeddedTimeline(http)

            for index, username in enumerate(accounts):
                logger.info("Embedded scraper fetching @%s", username)
                result.items.extend(self._collect(timeline, username, result))
                if index < len(accounts) - 1:
                    self._sleep(ACCOUNT_DELAY)

        logger.info("Embedded scraper found %d recent posts", len(result.items))
        return result

    def _collect(
        self, timeline: EmbeddedTimeline, username: str, result: TierResult
    ) -> list[IntelligenceItem]:
        items: list[IntelligenceItem] = []
        try:
            for post in timeline.iter_posts(username, self.stream_limit):
                if not is_within_window(post.created_at, now=self._clock()):
                    break

                item = IntelligenceItem.from_post(
                    link=post.permalink, username=username, text=post.text
                )
                if item is not None:
                    items.append(item)
                if len(items) >= self.per_account_cap:
                    break
        except TimelineError as e:
            result.failed_accounts[username] = str(e)
            logger.warning("Embedded scraper failed for @%s: %s", username, e)
        return items
