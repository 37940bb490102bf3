"""Digest dispatcher for group and private-user delivery."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any

from x_intel_digest.notifier.formatter import render_digest
from x_intel_digest.notifier.models import (
    BotConfigurationError,
    DeliveryError,
    DeliveryResult,
    Destination,
    DestinationKind,
    DispatchEnvelope,
    DispatchReport,
)
from x_intel_digest.notifier.onebot import OneBotClient

if TYPE_CHECKING:
    from x_intel_digest.config import OneBotSettings
    from x_intel_digest.crawler.models import IntelligenceItem

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Renders a digest and delivers it to every configured destination.

    The group destination is attempted first, then the private user.
    A failure on one destination never prevents the attempt on the other;
    each destination gets exactly one attempt.
    """

    def __init__(
        self,
        api_url: str,
        *,
        group_id: int = 0,
        user_id: int = 0,
        access_token: str | None = None,
        timeout: float = 10.0,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            api_url: OneBot HTTP API endpoint.
            group_id: QQ group id, 0 to disable.
            user_id: QQ user id for private delivery, 0 to disable.
            access_token: Optional bearer token.
            timeout: HTTP request timeout in seconds.
            clock: Time source for the digest header.
        """
        self.api_url = api_url
        self.group_id = group_id
        self.user_id = user_id
        self._client = OneBotClient(api_url, access_token=access_token, timeout=timeout)
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: OneBotSettings, **kwargs: Any) -> NotificationDispatcher:
        return cls(
            settings.api_url,
            group_id=settings.group_id,
            user_id=settings.user_id,
            access_token=(
                settings.access_token.get_secret_value() if settings.access_token else None
            ),
            timeout=settings.timeout,
            **kwargs,
        )

    @property
    def destinations(self) -> list[Destination]:
        """Configured destinations in delivery order."""
        destinations = []
        if self.group_id > 0:
            destinations.append(Destination(DestinationKind.GROUP, self.group_id))
        if self.user_id > 0:
            destinations.append(Destination(DestinationKind.PRIVATE_USER, self.user_id))
        return destinations

    def check_config(self) -> list[Destination]:
        """Return the destinations, or raise if delivery cannot be attempted."""
        if not self.api_url:
            raise BotConfigurationError("OneBot API URL is not configured")
        destinations = self.destinations
        if not destinations:
            raise BotConfigurationError("configure at least one of group_id or user_id")
        return destinations

    def render(self, items: Sequence[IntelligenceItem], label: str) -> str:
        return render_digest(items, label, now=self._clock())

    def _deliver_one(self, destination: Destination, message: str) -> DeliveryResult:
        envelope = DispatchEnvelope.for_destination(destination, message)
        try:
            self._client.post(envelope)
        except DeliveryError as e:
            e.destination = destination
            logger.error("Delivery to %s failed: %s", destination, e)
            return DeliveryResult(destination=destination, error=e)

        logger.info("Digest delivered to %s", destination)
        return DeliveryResult(destination=destination)

    def deliver(self, items: Sequence[IntelligenceItem], label: str) -> DispatchReport:
        """Deliver the digest and report per-destination results.

        Raises:
            BotConfigurationError: If the endpoint or all destinations are missing.
        """
        destinations = self.check_config()
        report = DispatchReport(message=self.render(items, label))
        for destination in destinations:
            report.results.append(self._deliver_one(destination, report.message))

        logger.info(
            "Dispatch complete: %d/%d succeeded", len(report.succeeded), len(report.results)
        )
        return report

    def send(self, items: Sequence[IntelligenceItem], label: str) -> DispatchReport:
        """Deliver the digest, raising if any destination failed.

        Returns:
            DispatchReport when every destination accepted the digest.

        Raises:
            BotConfigurationError: If the endpoint or all destinations are missing.
            DeliveryError: The last destination failure; its ``report``
                attribute holds the full per-destination results.
        """
        report = self.deliver(items, label)
        error = report.last_error
        if error is not None:
            error.report = report
            raise error
        return report
