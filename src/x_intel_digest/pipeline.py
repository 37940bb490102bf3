"""One fetch-and-deliver cycle.

The pipeline wires the crawler to the notifier: resolve the roster,
fetch through the tiers, then render and deliver the digest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from x_intel_digest.config import Settings
from x_intel_digest.crawler.accounts import resolve_accounts
from x_intel_digest.crawler.models import FetchReport
from x_intel_digest.crawler.orchestrator import AcquisitionOrchestrator, NoRecentPostsError
from x_intel_digest.notifier.dispatcher import NotificationDispatcher
from x_intel_digest.notifier.formatter import render_digest
from x_intel_digest.notifier.models import BotConfigurationError, DeliveryError, DispatchReport

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""

    fetch_report: FetchReport | None = None
    dispatch_report: DispatchReport | None = None
    digest: str | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DigestPipeline:
    """Fetches recent posts and pushes them as one digest.

    Example:
        >>> pipeline = DigestPipeline(get_settings())
        >>> result = pipeline.run()
        >>> result.ok
        True
    """

    def __init__(
        self,
        settings: Settings,
        *,
        dry_run: bool = False,
        label: str | None = None,
        orchestrator: AcquisitionOrchestrator | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            settings: Application settings.
            dry_run: Render the digest without delivering it.
            label: Topic label for the digest (defaults to settings).
            orchestrator: Acquisition orchestrator (built from settings if omitted).
            dispatcher: Notification dispatcher (built from settings if omitted).
        """
        self.settings = settings
        self.dry_run = dry_run
        self.label = label or settings.digest_label
        self.orchestrator = orchestrator or AcquisitionOrchestrator.from_settings(settings)
        self.dispatcher = dispatcher or NotificationDispatcher.from_settings(settings.onebot)

    def run(self) -> PipelineResult:
        """Run one cycle.

        Returns:
            PipelineResult; ``error`` is set when no posts were found or
            delivery failed for any destination.
        """
        result = PipelineResult()

        if not self.dry_run:
            try:
                self.dispatcher.check_config()
            except BotConfigurationError as e:
                logger.error("Bot is not configured: %s", e)
                result.error = e
                return result

        accounts = resolve_accounts(self.settings.x)
        logger.info("Monitoring %d accounts", len(accounts))

        result.fetch_report = self.orchestrator.run(accounts)
        if result.fetch_report.winning_tier is None:
            result.error = NoRecentPostsError(result.fetch_report)
            logger.warning("No tier found recent posts, nothing to send")
            return result

        items = result.fetch_report.items
        logger.info(
            "Tier %s found %d posts", result.fetch_report.winning_tier.value, len(items)
        )

        if self.dry_run:
            result.digest = render_digest(items, self.label)
            return result

        try:
            result.dispatch_report = self.dispatcher.send(items, self.label)
        except DeliveryError as e:
            result.dispatch_report = e.report
            result.error = e
        except BotConfigurationError as e:
            result.error = e
        else:
            result.digest = result.dispatch_report.message

        return result
