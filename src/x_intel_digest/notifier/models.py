"""Data models for the notifier module."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DestinationKind(Enum):
    """OneBot delivery targets with their action and id parameter."""

    GROUP = ("send_group_msg", "group_id")
    PRIVATE_USER = ("send_private_msg", "user_id")

    def __init__(self, action: str, id_param: str) -> None:
        self.action = action
        self.id_param = id_param


@dataclass(frozen=True)
class Destination:
    """A group or private user receiving the digest."""

    kind: DestinationKind
    target_id: int

    def __str__(self) -> str:
        return f"{self.kind.name.lower()}:{self.target_id}"


@dataclass(frozen=True)
class DispatchEnvelope:
    """Outbound OneBot request: an action name plus its parameters."""

    action: str
    params: dict[str, Any]

    @classmethod
    def for_destination(cls, destination: Destination, message: str) -> DispatchEnvelope:
        return cls(
            action=destination.kind.action,
            params={destination.kind.id_param: destination.target_id, "message": message},
        )

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action, "params": self.params}


@dataclass(frozen=True)
class DispatchOutcome:
    """Parsed OneBot response ``{status, retcode, data, message}``.

    Missing fields take their zero values, so a bare ``{}`` counts as
    ``retcode == 0``.
    """

    status: str = ""
    retcode: int = 0
    message: str = ""
    data: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DispatchOutcome:
        """Create a DispatchOutcome from a decoded response body."""
        retcode = data.get("retcode", 0)
        try:
            retcode = int(retcode)
        except (TypeError, ValueError):
            retcode = -1
        return cls(
            status=str(data.get("status") or ""),
            retcode=retcode,
            message=str(data.get("message") or data.get("wording") or ""),
            data=data.get("data"),
        )

    @property
    def succeeded(self) -> bool:
        return self.status == "ok" or self.retcode == 0


class BotConfigurationError(Exception):
    """Raised before any I/O when the bot endpoint or destinations are missing."""


class DeliveryError(Exception):
    """Raised when a digest could not be delivered to a destination."""

    def __init__(
        self,
        message: str,
        *,
        retcode: int | None = None,
        status_code: int | None = None,
        destination: Destination | None = None,
    ) -> None:
        super().__init__(message)
        self.retcode = retcode
        self.status_code = status_code
        self.destination = destination
        self.report: DispatchReport | None = None


@dataclass(frozen=True)
class DeliveryResult:
    """Result of delivering the digest to one destination."""

    destination: Destination
    error: DeliveryError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class DispatchReport:
    """Result of delivering one digest to every configured destination."""

    message: str
    results: list[DeliveryResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[Destination]:
        return [r.destination for r in self.results if r.succeeded]

    @property
    def failed(self) -> list[Destination]:
        return [r.destination for r in self.results if not r.succeeded]

    @property
    def last_error(self) -> DeliveryError | None:
        """The error of the last failed destination, if any."""
        for result in reversed(self.results):
            if result.error is not None:
                return result.error
        return None

    @property
    def all_succeeded(self) -> bool:
        return bool(self.results) and not self.failed
