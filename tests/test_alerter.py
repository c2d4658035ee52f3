"""Tests for the alerter module."""

import io
from unittest.mock import MagicMock, Mock, patch

import pytest
import requests

from uptimer.alerter import (
    Alerter,
    BeepAlerter,
    CompositeAlerter,
    NullAlerter,
    WebhookAlerter,
    build_alerter,
)
from uptimer.config import AlertsConfig, WebhookConfig
from uptimer.models import EVENT_CERT_EXPIRING, EVENT_ENDPOINT_DOWN, AlertEvent


@pytest.fixture
def down_event() -> AlertEvent:
    """Create an endpoint-down event."""
    return AlertEvent(
        kind=EVENT_ENDPOINT_DOWN,
        url="https://example.com",
        message="HAS RETURNED 503 INSTEAD OF 200 - POSSIBLE DOWN!!",
        status="503",
    )


class TestAlerterBase:
    """Tests for the Alerter base class."""

    def test_call_swallows_delivery_errors(self, down_event: AlertEvent, caplog: pytest.LogCaptureFixture) -> None:
        """A failing sink is logged and never breaks the checker."""

        class Broken(Alerter):
            def send(self, event: AlertEvent) -> None:
                raise RuntimeError("boom")

        Broken()(down_event)

        assert "Alert delivery failed for https://example.com: boom" in caplog.text

    def test_null_alerter(self, down_event: AlertEvent) -> None:
        NullAlerter()(down_event)


class TestBeepAlerter:
    """Tests for BeepAlerter."""

    def test_terminal_bell(self, down_event: AlertEvent) -> None:
        stream = io.StringIO()

        BeepAlerter(stream=stream, platform="linux")(down_event)

        assert stream.getvalue() == "\a"

    def test_bell_per_event(self, down_event: AlertEvent) -> None:
        stream = io.StringIO()
        alerter = BeepAlerter(stream=stream, platform="darwin")

        alerter(down_event)
        alerter(down_event)

        assert stream.getvalue() == "\a\a"


class TestWebhookAlerter:
    """Tests for WebhookAlerter."""

    @pytest.fixture
    def webhook(self) -> WebhookConfig:
        return WebhookConfig(url="https://hooks.example.com/uptimer", cooldown_seconds=300)

    @pytest.fixture
    def alerter(self, webhook: WebhookConfig) -> WebhookAlerter:
        return WebhookAlerter([webhook], max_retries=2, retry_delay=1)

    def test_posts_payload(self, alerter: WebhookAlerter, down_event: AlertEvent) -> None:
        with patch("uptimer.alerter.requests.post") as mock_post:
            mock_post.return_value = Mock(status_code=200)

            alerter(down_event)

        mock_post.assert_called_once()
        assert mock_post.call_args.args[0] == "https://hooks.example.com/uptimer"
        payload = mock_post.call_args.kwargs["json"]
        assert payload["event"] == EVENT_ENDPOINT_DOWN
        assert payload["url"] == "https://example.com"
        assert payload["status"] == "503"
        assert payload["message"] == down_event.message
        assert payload["timestamp"] == down_event.timestamp.isoformat()
        assert mock_post.call_args.kwargs["timeout"] == 10

    def test_cooldown_per_endpoint(self, alerter: WebhookAlerter, down_event: AlertEvent) -> None:
        """Repeated failures of one endpoint are only posted once within the cooldown."""
        other = AlertEvent(kind=EVENT_ENDPOINT_DOWN, url="https://other.example.com", message="down", status="ERROR")

        with patch("uptimer.alerter.requests.post") as mock_post:
            mock_post.return_value = Mock(status_code=200)

            alerter(down_event)
            alerter(down_event)
            alerter(other)

        assert mock_post.call_count == 2

    def test_cooldown_per_event_kind(self, alerter: WebhookAlerter, down_event: AlertEvent) -> None:
        """A certificate warning does not hold back the endpoint's first down alert."""
        cert_event = AlertEvent(kind=EVENT_CERT_EXPIRING, url=down_event.url, message="SSL cert expires in 5 days")

        with patch("uptimer.alerter.requests.post") as mock_post:
            mock_post.return_value = Mock(status_code=200)

            alerter(cert_event)
            alerter(down_event)
            alerter(down_event)

        posted = [c.kwargs["json"]["event"] for c in mock_post.call_args_list]
        assert posted == [EVENT_CERT_EXPIRING, EVENT_ENDPOINT_DOWN]

    def test_zero_cooldown_posts_every_event(self, down_event: AlertEvent) -> None:
        alerter = WebhookAlerter([WebhookConfig(url="https://hooks.example.com", cooldown_seconds=0)])

        with patch("uptimer.alerter.requests.post") as mock_post:
            mock_post.return_value = Mock(status_code=200)

            alerter(down_event)
            alerter(down_event)

        assert mock_post.call_count == 2

    def test_disabled_webhook_skipped(self, down_event: AlertEvent) -> None:
        alerter = WebhookAlerter([WebhookConfig(url="https://hooks.example.com", enabled=False)])

        with patch("uptimer.alerter.requests.post") as mock_post:
            alerter(down_event)

        mock_post.assert_not_called()

    def test_retries_with_exponential_delay(self, alerter: WebhookAlerter, down_event: AlertEvent) -> None:
        ok = MagicMock()
        with (
            patch("uptimer.alerter.requests.post") as mock_post,
            patch("uptimer.alerter.time.sleep") as mock_sleep,
        ):
            mock_post.side_effect = [
                requests.ConnectionError("refused"),
                requests.Timeout("slow"),
                ok,
            ]

            alerter(down_event)

        assert mock_post.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2]

    def test_gives_up_after_max_retries(self, alerter: WebhookAlerter, down_event: AlertEvent) -> None:
        """After exhausting retries the cooldown slot is released."""
        with (
            patch("uptimer.alerter.requests.post") as mock_post,
            patch("uptimer.alerter.time.sleep"),
        ):
            mock_post.side_effect = requests.ConnectionError("refused")

            alerter(down_event)
            assert mock_post.call_count == 3

            alerter(down_event)
            assert mock_post.call_count == 6

    def test_http_error_status_is_retried(self, alerter: WebhookAlerter, down_event: AlertEvent) -> None:
        failing = MagicMock()
        failing.raise_for_status.side_effect = requests.HTTPError("500 Server Error")

        with (
            patch("uptimer.alerter.requests.post") as mock_post,
            patch("uptimer.alerter.time.sleep"),
        ):
            mock_post.side_effect = [failing, MagicMock()]

            alerter(down_event)

        assert mock_post.call_count == 2

    def test_cert_event_payload(self, alerter: WebhookAlerter) -> None:
        event = AlertEvent(kind=EVENT_CERT_EXPIRING, url="https://example.com", message="SSL cert expires in 5 days")

        with patch("uptimer.alerter.requests.post") as mock_post:
            alerter(event)

        payload = mock_post.call_args.kwargs["json"]
        assert payload["event"] == EVENT_CERT_EXPIRING
        assert payload["status"] is None


class TestCompositeAlerter:
    """Tests for CompositeAlerter."""

    def test_fans_out(self, down_event: AlertEvent) -> None:
        first = MagicMock(spec=Alerter)
        second = MagicMock(spec=Alerter)

        CompositeAlerter([first, second])(down_event)

        first.assert_called_once_with(down_event)
        second.assert_called_once_with(down_event)


class TestBuildAlerter:
    """Tests for build_alerter."""

    def test_nothing_configured(self) -> None:
        assert isinstance(build_alerter(AlertsConfig()), NullAlerter)

    def test_sound_only(self) -> None:
        assert isinstance(build_alerter(AlertsConfig(sound=True)), BeepAlerter)

    def test_webhooks_only(self) -> None:
        config = AlertsConfig(webhooks=[WebhookConfig(url="https://hooks.example.com")])
        assert isinstance(build_alerter(config), WebhookAlerter)

    def test_only_disabled_webhooks(self) -> None:
        config = AlertsConfig(webhooks=[WebhookConfig(url="https://hooks.example.com", enabled=False)])
        assert isinstance(build_alerter(config), NullAlerter)

    def test_sound_and_webhooks(self) -> None:
        config = AlertsConfig(sound=True, webhooks=[WebhookConfig(url="https://hooks.example.com")])
        assert isinstance(build_alerter(config), CompositeAlerter)
