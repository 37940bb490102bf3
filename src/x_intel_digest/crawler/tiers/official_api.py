"""Official API tier: X API v2 user lookup plus user timeline."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import httpx

from x_intel_digest.crawler.models import FetchTier, IntelligenceItem, TierResult
from x_intel_digest.crawler.tiers.base import Clock, Sleeper, TierUnavailableError
from x_intel_digest.crawler.window import is_within_window, parse_timestamp, utc_now

if TYPE_CHECKING:
    from x_intel_digest.config import XSettings

logger = logging.getLogger(__name__)

# Constants
DEFAULT_HOST = "https://api.twitter.com"
PERMALINK_URL = "https://twitter.com/{username}/status/{tweet_id}"
TIMELINE_MAX_RESULTS = 10
TIMELINE_FIELDS = ("created_at", "text")
ACCOUNT_DELAY = 2.0


class XApiError(Exception):
    """Raised when the X API returns an error payload or status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _error_detail(payload: Any) -> str | None:
    """Pull the most useful error text out of an API error payload."""
    if not isinstance(payload, dict):
        return None
    errors = payload.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        first = errors[0]
        return str(first.get("detail") or first.get("message") or first.get("title") or "")
    detail = payload.get("detail") or payload.get("title")
    return str(detail) if detail else None


class XApiClient:
    """Thin X API v2 client over an open :class:`httpx.Client`.

    Example:
        >>> with httpx.Client(base_url=DEFAULT_HOST, timeout=30) as http:
        ...     api = XApiClient(http, bearer_token="...")
        ...     user_id = api.lookup_user_id("jack")
        ...     tweets = api.get_user_tweets(user_id)
    """

    def __init__(self, http: httpx.Client, bearer_token: str) -> None:
        self._http = http
        self._headers = {"Authorization": f"Bearer {bearer_token}"}

    @staticmethod
    def obtain_app_token(http: httpx.Client, api_key: str, api_secret: str) -> str:
        """Exchange a consumer key/secret pair for an app-only bearer token.

        Raises:
            XApiError: If the exchange is rejected.
        """
        response = http.post(
            "/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(api_key, api_secret),
        )
        payload = _json_or_empty(response)
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if response.status_code >= 400 or not token:
            detail = _error_detail(payload) or f"HTTP {response.status_code}"
            raise XApiError(f"token exchange failed: {detail}", response.status_code)
        return str(token)

    def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            response = self._http.get(path, params=params, headers=self._headers)
        except httpx.HTTPError as e:
            raise XApiError(f"request to {path} failed: {e}") from e

        payload = _json_or_empty(response)
        if response.status_code >= 400:
            detail = _error_detail(payload) or f"HTTP {response.status_code}"
            raise XApiError(detail, response.status_code)
        if not isinstance(payload, dict):
            raise XApiError(f"unexpected response from {path}", response.status_code)
        return payload

    def lookup_user_id(self, username: str) -> str:
        """Resolve a handle to its numeric user id.

        Raises:
            XApiError: If the lookup fails or the user does not exist.
        """
        payload = self._get(f"/2/users/by/username/{username}")
        data = payload.get("data")
        if isinstance(data, dict) and data.get("id"):
            return str(data["id"])
        raise XApiError(_error_detail(payload) or f"user @{username} not found")

    def get_user_tweets(
        self, user_id: str, max_results: int = TIMELINE_MAX_RESULTS
    ) -> list[dict[str, Any]]:
        """Fetch the most recent posts of a user.

        Returns:
            Post dicts with ``id``, ``text`` and ``created_at``; empty if
            the user has not posted.
        """
        payload = self._get(
            f"/2/users/{user_id}/tweets",
            params={"max_results": max_results, "tweet.fields": ",".join(TIMELINE_FIELDS)},
        )
        data = payload.get("data")
        if data is None:
            if payload.get("errors"):
                raise XApiError(_error_detail(payload) or "timeline request failed")
            return []
        return [tweet for tweet in data if isinstance(tweet, dict)]


def _json_or_empty(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {}


class OfficialApiTier:
    """Fetches posts through the official X API v2.

    Each account costs two requests (id lookup, then timeline). A failure
    for one account is logged and skipped; the remaining accounts still run.
    """

    tier = FetchTier.OFFICIAL_API

    def __init__(
        self,
        *,
        bearer_token: str | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
        host: str = DEFAULT_HOST,
        timeout: float = 30.0,
        clock: Clock = utc_now,
        sleep: Sleeper = time.sleep,
    ) -> None:
        if not bearer_token and not (api_key and api_secret):
            raise ValueError("a bearer token or an API key/secret pair is required")
        self._bearer_token = bearer_token
        self._api_key = api_key
        self._api_secret = api_secret
        self.host = host
        self.timeout = timeout
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: XSettings, **kwargs: Any) -> OfficialApiTier:
        return cls(
            bearer_token=settings.bearer_token.get_secret_value() if settings.bearer_token else None,
            api_key=settings.api_key.get_secret_value() if settings.api_key else None,
            api_secret=settings.api_secret.get_secret_value() if settings.api_secret else None,
            timeout=settings.timeout,
            **kwargs,
        )

    def _resolve_token(self, http: httpx.Client) -> str:
        if self._bearer_token:
            return self._bearer_token
        try:
            return XApiClient.obtain_app_token(http, self._api_key or "", self._api_secret or "")
        except (XApiError, httpx.HTTPError) as e:
            raise TierUnavailableError(str(e)) from e

    def fetch(self, accounts: Sequence[str]) -> TierResult:
        result = TierResult(tier=self.tier)
        logger.info("Official API monitoring %d accounts", len(accounts))
        if not accounts:
            return result

        with httpx.Client(base_url=self.host, timeout=self.timeout) as http:
            api = XApiClient(http, self._resolve_token(http))

            for index, username in enumerate(accounts):
                logger.info("Official API fetching @%s", username)
                try:
                    user_id = api.lookup_user_id(username)
                    tweets = api.get_user_tweets(user_id)
                except XApiError as e:
                    result.failed_accounts[username] = str(e)
                    logger.warning("Official API failed for @%s: %s", username, e)
                else:
                    if not tweets:
                        logger.info("@%s has no recent posts", username)
                    result.items.extend(self._to_items(username, tweets))

                if index < len(accounts) - 1:
                    self._sleep(ACCOUNT_DELAY)

        logger.info("Official API found %d recent posts", len(result.items))
        return result

    def _to_items(self, username: str, tweets: list[dict[str, Any]]) -> list[IntelligenceItem]:
        items: list[IntelligenceItem] = []
        for tweet in tweets:
            created_at = parse_timestamp(tweet.get("created_at"))
            if created_at is None or not is_within_window(created_at, now=self._clock()):
                continue
            tweet_id = str(tweet.get("id") or "")
            if not tweet_id:
                continue
            item = IntelligenceItem.from_post(
                link=PERMALINK_URL.format(username=username, tweet_id=tweet_id),
                username=username,
                text=str(tweet.get("text") or ""),
            )
            if item is not None:
                items.append(item)
        return items
