"""OneBot v11 HTTP API client.

OneBot implementations accept the same action in two shapes:

- a unified endpoint (URL ending in ``/``) taking ``{"action", "params"}``
- per-action endpoints (``<base>/<action>``) taking the bare params

The configured URL decides which one is used.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from x_intel_digest.notifier.models import DeliveryError, DispatchEnvelope, DispatchOutcome

logger = logging.getLogger(__name__)


def serialize_unified(endpoint: str, envelope: DispatchEnvelope) -> tuple[str, dict[str, Any]]:
    """Full envelope posted to the endpoint as-is."""
    return endpoint, envelope.to_dict()


def serialize_per_action(endpoint: str, envelope: DispatchEnvelope) -> tuple[str, dict[str, Any]]:
    """Bare params posted to ``<endpoint>/<action>``."""
    return f"{endpoint}/{envelope.action}", dict(envelope.params)


def is_unified_endpoint(endpoint: str) -> bool:
    return endpoint.endswith("/")


def build_request(endpoint: str, envelope: DispatchEnvelope) -> tuple[str, dict[str, Any]]:
    """Pick the wire dialect for ``endpoint`` and return ``(url, body)``."""
    if is_unified_endpoint(endpoint):
        return serialize_unified(endpoint, envelope)
    return serialize_per_action(endpoint, envelope)


def interpret_response(status_code: int, body: bytes | str) -> DispatchOutcome | None:
    """Decide whether a OneBot response means success.

    A body that is not a JSON object is judged by the HTTP status alone
    (200 is success). A parsed outcome succeeds when ``status == "ok"``
    or ``retcode == 0``.

    Returns:
        The parsed outcome, or None for a bare-OK response.

    Raises:
        DeliveryError: If the response signals failure.
    """
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    try:
        data = json.loads(text)
    except ValueError:
        data = None

    if not isinstance(data, dict):
        if status_code != 200:
            raise DeliveryError(
                f"HTTP error: {status_code}, response: {text}", status_code=status_code
            )
        return None

    outcome = DispatchOutcome.from_dict(data)
    if not outcome.succeeded:
        raise DeliveryError(
            f"OneBot error: {outcome.message} (retcode: {outcome.retcode})",
            retcode=outcome.retcode,
            status_code=status_code,
        )
    return outcome


class OneBotClient:
    """Posts envelopes to a OneBot HTTP API.

    A new :class:`httpx.Client` is opened per request with the
    configured timeout.
    """

    def __init__(
        self,
        api_url: str,
        *,
        access_token: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the client.

        Args:
            api_url: OneBot endpoint; a trailing ``/`` selects the unified dialect.
            access_token: Optional bearer token.
            timeout: HTTP request timeout in seconds.
        """
        self.api_url = api_url
        self.access_token = access_token
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def post(self, envelope: DispatchEnvelope) -> DispatchOutcome | None:
        """Send one envelope.

        Raises:
            DeliveryError: On transport failure or a failed outcome.
        """
        url, body = build_request(self.api_url, envelope)
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    url,
                    content=json.dumps(body, ensure_ascii=False).encode("utf-8"),
                    headers=self._headers(),
                )
        except httpx.HTTPError as e:
            raise DeliveryError(f"request to {url} failed: {e}") from e

        outcome = interpret_response(response.status_code, response.content)
        logger.debug("OneBot %s accepted by %s", envelope.action, url)
        return outcome
