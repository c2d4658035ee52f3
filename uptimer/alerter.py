"""Alert side effects triggered by failing checks and expiring certificates.

Checkers only see a callable taking an :class:`AlertEvent`; everything
platform- or network-specific lives behind the implementations here.
"""

import logging
import sys
import threading
import time
from typing import TextIO

import requests

from .config import AlertsConfig, WebhookConfig
from .models import AlertEvent

logger = logging.getLogger(__name__)

# Frequency (Hz) and duration (ms) of the audible alert on Windows.
BEEP_FREQUENCY = 750
BEEP_DURATION_MS = 300


class Alerter:
    """Base alert sink. Subclasses override :meth:`send`."""

    def send(self, event: AlertEvent) -> None:
        raise NotImplementedError

    def __call__(self, event: AlertEvent) -> None:
        """Deliver an event, never letting delivery errors escape."""
        try:
            self.send(event)
        except Exception as e:
            logger.error("Alert delivery failed for %s: %s", event.url, e)


class NullAlerter(Alerter):
    """Alerter that does nothing."""

    def send(self, event: AlertEvent) -> None:
        pass


class BeepAlerter(Alerter):
    """Audible alert: a system beep on Windows, a terminal bell elsewhere."""

    def __init__(self, stream: TextIO | None = None, platform: str | None = None) -> None:
        self._stream = stream
        self._platform = platform or sys.platform
        self._lock = threading.Lock()

    def send(self, event: AlertEvent) -> None:
        if self._platform == "win32":
            import winsound

            winsound.Beep(BEEP_FREQUENCY, BEEP_DURATION_MS)
            return

        stream = self._stream or sys.stdout
        with self._lock:
            stream.write("\a")
            stream.flush()


class WebhookAlerter(Alerter):
    """Posts alert events to HTTP webhooks (with retries and cooldown)."""

    def __init__(self, webhooks: list[WebhookConfig], max_retries: int = 2, retry_delay: int = 1):
        """Initialize alerter with webhook targets.

        Args:
            webhooks: Webhook configurations
            max_retries: Maximum number of retry attempts for failed webhooks
            retry_delay: Base delay in seconds between retries (increases exponentially)
        """
        self._webhooks = webhooks
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._last_alert_time: dict[tuple[str, str, str], float] = {}  # {(webhook_url, endpoint_url, event_kind): timestamp}
        self._lock = threading.Lock()

    def send(self, event: AlertEvent) -> None:
        for webhook in self._webhooks:
            if not webhook.enabled:
                continue

            key = (webhook.url, event.url, event.kind)
            with self._lock:
                last_alert = self._last_alert_time.get(key)
                if last_alert is not None and time.time() - last_alert < webhook.cooldown_seconds:
                    logger.debug("Webhook cooldown active for %s (%s), skipping", event.url, event.kind)
                    continue
                # Claim the slot before sending so concurrent checkers don't double-post
                self._last_alert_time[key] = time.time()

            if not self._send_webhook(webhook, event):
                with self._lock:
                    self._last_alert_time.pop(key, None)

    def _send_webhook(self, webhook: WebhookConfig, event: AlertEvent) -> bool:
        """Send a webhook alert (with retries).

        Args:
            webhook: The webhook configuration
            event: The event that triggered the alert

        Returns:
            True if the webhook accepted the payload.
        """
        payload = self._build_payload(event)
        retry_count = 0

        while retry_count <= self._max_retries:
            try:
                response = requests.post(
                    webhook.url,
                    json=payload,
                    timeout=10,
                )
                response.raise_for_status()

                logger.info(
                    "Webhook sent successfully for %s to %s",
                    event.url,
                    webhook.url,
                )
                return True

            except requests.RequestException as e:
                retry_count += 1
                if retry_count <= self._max_retries:
                    delay = self._retry_delay * (2 ** (retry_count - 1))
                    logger.warning(
                        "Webhook failed for %s (attempt %d/%d, retrying in %ds): %s",
                        event.url,
                        retry_count,
                        self._max_retries + 1,
                        delay,
                        e,
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        "Webhook failed for %s after %d attempts: %s",
                        event.url,
                        retry_count,
                        e,
                    )
        return False

    def _build_payload(self, event: AlertEvent) -> dict:
        return {
            "event": event.kind,
            "url": event.url,
            "status": event.status,
            "message": event.message,
            "timestamp": event.timestamp.isoformat(),
        }


class CompositeAlerter(Alerter):
    """Fans an event out to several alerters."""

    def __init__(self, alerters: list[Alerter]) -> None:
        self._alerters = alerters

    def send(self, event: AlertEvent) -> None:
        for alerter in self._alerters:
            alerter(event)


def build_alerter(config: AlertsConfig) -> Alerter:
    """Build the alerter chain described by the alerts configuration."""
    alerters: list[Alerter] = []
    if config.sound:
        alerters.append(BeepAlerter())
    if any(webhook.enabled for webhook in config.webhooks):
        alerters.append(WebhookAlerter(config.webhooks))

    if not alerters:
        return NullAlerter()
    if len(alerters) == 1:
        return alerters[0]
    return CompositeAlerter(alerters)
