"""
Webhook notification sink.

Posts JSON payloads (Google Chat / Slack style ``{"text": ...}``) to a
configured incoming-webhook URL. Delivery failures are logged and
reported as ``False``; they never raise.
"""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class WebhookNotifier:
    """Delivers notifications to an incoming webhook."""

    def __init__(
        self,
        url: str | None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def send(self, payload: dict[str, Any]) -> bool:
        """
        Post a payload to the webhook.

        Returns:
            True when the webhook accepted the payload (2xx).
        """
        if not self.url:
            logger.error("Notification webhook URL is not configured")
            return False

        try:
            if self._client is not None:
                response = self._client.post(self.url, json=payload, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.url, json=payload)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Notification delivery failed: {e}")
            return False

        logger.debug(f"Notification delivered ({response.status_code})")
        return True
