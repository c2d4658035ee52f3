"""Data models for endpoint health records."""

import threading
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime

# Status text recorded when a check fails before any HTTP response arrives.
STATUS_ERROR = "ERROR"

EVENT_ENDPOINT_DOWN = "endpoint_down"
EVENT_CERT_EXPIRING = "cert_expiring"


@dataclass(frozen=True)
class AlertEvent:
    """Something an operator should be told about right away.

    Attributes:
        kind: Event type, "endpoint_down" or "cert_expiring".
        url: Endpoint the event concerns.
        message: Human-readable description.
        status: Observed status ("ERROR" or an HTTP code), if applicable.
        timestamp: When the event was raised.
    """

    kind: str
    url: str
    message: str
    status: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class EndpointSnapshot:
    """Consistent, read-only copy of one endpoint's health record.

    Attributes:
        url: Monitored URL (record identity).
        expected_code: Expected HTTP status code, e.g. "200".
        total_checks: Number of checks performed.
        successful_checks: Number of checks that matched the expected code.
        consecutive_failures: Failed checks since the last success.
        last_check: Timestamp of the most recent check, or None if never checked.
        last_status: Last observed status code, "ERROR", or "" before the first check.
        last_response_time_ms: Latency of the most recent check in milliseconds.
        cert_expiry: TLS certificate expiration (UTC), or None if unknown.
        is_up: True iff the most recent check matched the expected code.
    """

    url: str
    expected_code: str
    total_checks: int
    successful_checks: int
    consecutive_failures: int
    last_check: datetime | None
    last_status: str
    last_response_time_ms: int
    cert_expiry: datetime | None
    is_up: bool


@dataclass(eq=False)
class EndpointRecord:
    """Mutable health record for a single monitored endpoint.

    Written by exactly one checker and read by any number of reporters.
    Every access to the mutable fields must hold ``lock``; use
    :meth:`snapshot` to read a consistent view.
    """

    url: str
    expected_code: str
    total_checks: int = 0
    successful_checks: int = 0
    consecutive_failures: int = 0
    last_check: datetime | None = None
    last_status: str = ""
    last_response_time_ms: int = 0
    cert_expiry: datetime | None = None
    is_up: bool = True
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_attempt(self, checked_at: datetime, response_time_ms: int) -> None:
        """Account for one check attempt. Caller holds ``lock``."""
        self.total_checks += 1
        self.last_check = checked_at
        self.last_response_time_ms = response_time_ms

    def record_failure(self, status: str) -> int:
        """Mark the endpoint down. Caller holds ``lock``.

        Returns:
            The updated consecutive failure count.
        """
        self.consecutive_failures += 1
        self.is_up = False
        self.last_status = status
        return self.consecutive_failures

    def record_success(self, status: str) -> None:
        """Mark the endpoint up. Caller holds ``lock``."""
        self.successful_checks += 1
        self.consecutive_failures = 0
        self.is_up = True
        self.last_status = status

    def set_cert_expiry(self, expiry: datetime) -> None:
        with self.lock:
            self.cert_expiry = expiry

    def snapshot(self) -> EndpointSnapshot:
        """Take a consistent multi-field copy of this record."""
        with self.lock:
            return EndpointSnapshot(
                url=self.url,
                expected_code=self.expected_code,
                total_checks=self.total_checks,
                successful_checks=self.successful_checks,
                consecutive_failures=self.consecutive_failures,
                last_check=self.last_check,
                last_status=self.last_status,
                last_response_time_ms=self.last_response_time_ms,
                cert_expiry=self.cert_expiry,
                is_up=self.is_up,
            )


class ProcessClock:
    """Process start time, fixed at construction."""

    def __init__(self, started_at: datetime | None = None) -> None:
        self._started_at = started_at or datetime.now(UTC)
        self._started_monotonic = time.monotonic()

    @property
    def started_at(self) -> datetime:
        return self._started_at

    def uptime_seconds(self) -> int:
        """Elapsed whole seconds since start (rounded to nearest)."""
        return int(round(time.monotonic() - self._started_monotonic))
