"""Notification layer - digest rendering and OneBot delivery."""

from x_intel_digest.notifier.dispatcher import NotificationDispatcher
from x_intel_digest.notifier.formatter import render_digest
from x_intel_digest.notifier.models import (
    BotConfigurationError,
    DeliveryError,
    DeliveryResult,
    Destination,
    DestinationKind,
    DispatchEnvelope,
    DispatchOutcome,
    DispatchReport,
)
from x_intel_digest.notifier.onebot import OneBotClient, build_request, interpret_response

__all__ = [
    "BotConfigurationError",
    "DeliveryError",
    "DeliveryResult",
    "Destination",
    "DestinationKind",
    "DispatchEnvelope",
    "DispatchOutcome",
    "DispatchReport",
    "NotificationDispatcher",
    "OneBotClient",
    "build_request",
    "interpret_response",
    "render_digest",
]
