"""Delegated scraper tier: an external cookie-session crawler run per account.

The crawler prints a JSON array of posts, usually preceded by log lines,
so the array is located in the combined stdout/stderr output.
"""

from __future__ import annotations

import json
import logging
import shlex
import subprocess
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from x_intel_digest.crawler.models import FetchTier, IntelligenceItem, TierResult
from x_intel_digest.crawler.tiers.base import Clock, Sleeper, TierUnavailableError
from x_intel_digest.crawler.window import is_within_window, parse_timestamp, utc_now

if TYPE_CHECKING:
    from x_intel_digest.config import XSettings

logger = logging.getLogger(__name__)

# Delays (seconds)
SUCCESS_DELAY = 15.0
FAILURE_DELAY = 5.0
RATE_LIMIT_DELAY = 120.0

RATE_LIMIT_MARKERS = ("429", "too many requests")


@dataclass(frozen=True)
class CommandResult:
    """Exit status and combined output of one crawler invocation."""

    returncode: int
    output: str


class CommandRunner(Protocol):
    """Protocol for running the external crawler command."""

    def run(self, args: Sequence[str], cwd: str | None, timeout: float | None) -> CommandResult:
        """Run ``args`` and return the combined stdout/stderr."""
        ...


class SubprocessRunner:
    """Runs the crawler with :func:`subprocess.run`, stderr merged into stdout."""

    def run(self, args: Sequence[str], cwd: str | None, timeout: float | None) -> CommandResult:
        try:
            completed = subprocess.run(
                list(args),
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            output = e.output or ""
            if isinstance(output, bytes):
                output = output.decode("utf-8", errors="replace")
            return CommandResult(returncode=-1, output=f"{output}\ntimed out after {timeout}s")
        return CommandResult(returncode=completed.returncode, output=completed.stdout or "")


class MalformedOutputError(Exception):
    """Raised when the crawler output holds no decodable JSON array."""


def extract_json_array(output: str) -> list[Any]:
    """Find the first JSON array in ``output``.

    Text before the array (diagnostics) and after it is ignored. A ``[``
    that does not start a valid array, as in ``[info] ...`` log prefixes,
    is skipped and the search continues.

    Raises:
        MalformedOutputError: If no JSON array can be decoded.
    """
    decoder = json.JSONDecoder()
    start = output.find("[")
    if start == -1:
        raise MalformedOutputError("no JSON array in crawler output")

    last_error: ValueError | None = None
    while start != -1:
        try:
            value, _ = decoder.raw_decode(output, start)
        except ValueError as e:
            last_error = e
        else:
            if isinstance(value, list):
                return value
        start = output.find("[", start + 1)

    raise MalformedOutputError(f"could not decode crawler output: {last_error}")


def is_rate_limited(output: str) -> bool:
    """Check the crawler output for rate-limit signals."""
    lowered = output.lower()
    return any(marker in lowered for marker in RATE_LIMIT_MARKERS)


class DelegatedScraperTier:
    """Fetches posts by shelling out to the cookie-session crawler.

    Accounts are processed one at a time. A failed account gets a short
    cool-down, or a long one when the output signals rate limiting; a
    successful account is followed by a longer pause to stay under the
    platform's limits.
    """

    tier = FetchTier.DELEGATED_SCRAPER

    def __init__(
        self,
        command: Sequence[str],
        *,
        cwd: str | None = None,
        timeout: float | None = None,
        runner: CommandRunner | None = None,
        clock: Clock = utc_now,
        sleep: Sleeper = time.sleep,
    ) -> None:
        """Initialize the tier.

        Args:
            command: Command prefix; the account handle is appended.
            cwd: Working directory for the command.
            timeout: Per-account timeout in seconds.
            runner: Command runner (defaults to a subprocess runner).
            clock: Wall-clock source for the time window.
            sleep: Sleep function used for rate-limit delays.
        """
        if not command:
            raise ValueError("command must not be empty")
        self.command = list(command)
        self.cwd = cwd
        self.timeout = timeout
        self._runner = runner or SubprocessRunner()
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: XSettings, **kwargs: Any) -> DelegatedScraperTier:
        return cls(
            shlex.split(settings.kit_command),
            cwd=settings.kit_dir,
            timeout=settings.kit_timeout,
            **kwargs,
        )

    def fetch(self, accounts: Sequence[str]) -> TierResult:
        result = TierResult(tier=self.tier)
        logger.info("Delegated scraper monitoring %d accounts", len(accounts))

        for index, username in enumerate(accounts):
            is_last = index == len(accounts) - 1
            logger.info("Delegated scraper fetching @%s", username)

            try:
                outcome = self._runner.run([*self.command, username], self.cwd, self.timeout)
            except FileNotFoundError as e:
                raise TierUnavailableError(f"crawler command not found: {e}") from e
            except OSError as e:
                result.failed_accounts[username] = str(e)
                logger.warning("Delegated scraper failed for @%s: %s", username, e)
                if not is_last:
                    self._sleep(FAILURE_DELAY)
                continue

            try:
                if outcome.returncode != 0:
                    raise MalformedOutputError(f"exit status {outcome.returncode}")
                records = extract_json_array(outcome.output)
            except MalformedOutputError as e:
                result.failed_accounts[username] = str(e)
                logger.warning(
                    "Delegated scraper failed for @%s: %s\nOutput: %s", username, e, outcome.output
                )
                if is_rate_limited(outcome.output):
                    logger.warning(
                        "Rate limit detected, cooling down for %.0f seconds", RATE_LIMIT_DELAY
                    )
                    if not is_last:
                        self._sleep(RATE_LIMIT_DELAY)
                elif not is_last:
                    self._sleep(FAILURE_DELAY)
                continue

            try:
                items = self._parse_records(username, records)
            except (TypeError, ValueError, AttributeError) as e:
                result.failed_accounts[username] = f"malformed record: {e}"
                logger.warning("Delegated scraper got a malformed record for @%s: %s", username, e)
                if not is_last:
                    self._sleep(FAILURE_DELAY)
                continue

            result.items.extend(items)
            if not is_last:
                self._sleep(SUCCESS_DELAY)

        logger.info("Delegated scraper found %d recent posts", len(result.items))
        return result

    def _parse_records(self, username: str, records: list[Any]) -> list[IntelligenceItem]:
        items: list[IntelligenceItem] = []
        for record in records:
            if not isinstance(record, dict):
                continue

            created_at = parse_timestamp(record.get("createdAt"))
            if created_at is None:
                logger.debug("Skipping post with unparsable time %r", record.get("createdAt"))
                continue
            if not is_within_window(created_at, now=self._clock()):
                continue

            item = IntelligenceItem.from_post(
                link=str(record.get("permanentUrl") or ""),
                username=str(record.get("username") or username),
                text=str(record.get("text") or ""),
            )
            if item is not None:
                items.append(item)
        return items
