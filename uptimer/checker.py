"""Per-endpoint check loops with adaptive backoff."""

import logging
import threading
import time
import urllib.error
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from threading import Event, Thread

from .alerter import NullAlerter
from .backoff import Backoff
from .certs import inspect_certificate
from .config import MonitorConfig
from .models import EVENT_ENDPOINT_DOWN, STATUS_ERROR, AlertEvent, EndpointRecord
from .report import format_duration
from .store import StatsStore

logger = logging.getLogger(__name__)

USER_AGENT = "Uptimer/0.1"

# Shared by every checker; holds no per-request state.
_opener = urllib.request.build_opener()


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single GET request.

    Attributes:
        status_code: HTTP status code, or None if no response was received.
        response_time_ms: Wall-clock latency of the attempt in milliseconds.
        checked_at: Timestamp when the check completed.
        error: Transport error description, None if a response was received.
    """

    status_code: int | None
    response_time_ms: int
    checked_at: datetime
    error: str | None = None


def probe(url: str, timeout: float) -> ProbeResult:
    """Issue one GET request and report the status code and latency.

    Any HTTP response, including 4xx/5xx, counts as a transport success.

    Args:
        url: URL to request.
        timeout: Request timeout in seconds.

    Returns:
        ProbeResult with either a status code or an error description.
    """
    start = time.monotonic()
    request = urllib.request.Request(url, method="GET", headers={"User-Agent": USER_AGENT})

    try:
        with _opener.open(request, timeout=timeout) as response:
            status_code = response.status
        error = None
    except urllib.error.HTTPError as e:
        status_code = e.code
        error = None
        if e.fp is not None:
            e.close()
    except urllib.error.URLError as e:
        status_code = None
        error = str(e.reason) if e.reason else "Connection failed"
    except TimeoutError:
        status_code = None
        error = f"timeout after {timeout:g}s"
    except Exception as e:
        status_code = None
        error = str(e) or type(e).__name__

    elapsed_ms = int((time.monotonic() - start) * 1000)
    return ProbeResult(
        status_code=status_code,
        response_time_ms=elapsed_ms,
        checked_at=datetime.now(UTC),
        error=error,
    )


class Checker:
    """Endless probe/record/sleep loop for a single endpoint.

    Each checker owns one thread and one stop event. Iterations are
    strictly sequential; the record lock is only held while fields are
    updated, never while logging, alerting or sleeping.

    Example:
        checker = Checker(record, normal_interval=10, config=MonitorConfig())
        checker.start()
        # ... later ...
        checker.stop()
    """

    def __init__(
        self,
        record: EndpointRecord,
        normal_interval: float,
        config: MonitorConfig,
        alert: Callable[[AlertEvent], None] | None = None,
    ) -> None:
        """Initialize the checker.

        Args:
            record: Health record this checker owns.
            normal_interval: Seconds between checks while the endpoint is healthy.
            config: Monitor settings (timeouts, backoff, verbosity).
            alert: Callback invoked on failures and expiring certificates.
        """
        self._record = record
        self._config = config
        self._alert = alert if alert is not None else NullAlerter()
        self._backoff = Backoff(normal_interval, config.backoff_factor, config.max_backoff)
        self._stop_event = Event()
        self._thread: Thread | None = None

    @property
    def url(self) -> str:
        return self._record.url

    @property
    def backoff(self) -> Backoff:
        return self._backoff

    def start(self) -> None:
        """Start the check loop in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Checker for %s already running", self.url)
            return

        self._stop_event.clear()
        self._thread = Thread(target=self._run, daemon=True, name=f"checker-{self.url}")
        self._thread.start()

    def signal_stop(self) -> None:
        """Ask the loop to exit at its next wait, without blocking."""
        self._stop_event.set()

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the check loop and wait for the thread to finish.

        An in-flight request is not interrupted; the loop exits once it returns.
        """
        self.signal_stop()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Checker for %s did not stop within timeout", self.url)

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def inspect_certificate(self) -> None:
        """Sample the TLS certificate expiry of HTTPS endpoints."""
        if not self.url.startswith("https"):
            return
        inspect_certificate(
            self._record,
            self._alert,
            warning_days=self._config.cert_warning_days,
            show_ok=self._config.show_ok,
            timeout=self._config.cert_timeout,
        )

    def run_once(self) -> float:
        """Probe the endpoint once and record the outcome.

        Returns:
            Seconds to wait before the next check.
        """
        url = self.url
        record = self._record
        result = probe(url, self._config.request_timeout)
        rt_suffix = f" [{result.response_time_ms}ms]" if self._config.show_response_time else ""

        with record.lock:
            record.record_attempt(result.checked_at, result.response_time_ms)
            expected = record.expected_code
            if result.status_code is None:
                status = STATUS_ERROR
                failures = record.record_failure(status)
            else:
                status = str(result.status_code)
                if status != expected:
                    failures = record.record_failure(status)
                else:
                    record.record_success(status)
                    failures = 0

        if result.status_code is None:
            delay = self._backoff.on_failure()
            message = f"ERROR: {result.error}"
            logger.error(
                "%s - %s (failures: %d, retry in %s)",
                url,
                message,
                failures,
                format_duration(delay),
            )
            self._alert(AlertEvent(kind=EVENT_ENDPOINT_DOWN, url=url, message=message, status=status))
        elif failures:
            delay = self._backoff.on_failure()
            message = f"HAS RETURNED {status} INSTEAD OF {expected} - POSSIBLE DOWN!!"
            logger.error(
                "%s %s%s (failures: %d, retry in %s)",
                url,
                message,
                rt_suffix,
                failures,
                format_duration(delay),
            )
            self._alert(AlertEvent(kind=EVENT_ENDPOINT_DOWN, url=url, message=message, status=status))
        else:
            delay = self._backoff.on_success()
            if self._config.show_ok:
                logger.info("%s - %s AS EXPECTED%s", url, status, rt_suffix)

        return delay

    def _run(self) -> None:
        """Main check loop - runs in background thread."""
        logger.debug("Checker for %s started", self.url)
        self.inspect_certificate()

        while not self._stop_event.is_set():
            delay = self.run_once()
            # wait() so a stop request cuts the sleep short
            self._stop_event.wait(timeout=delay)

        logger.debug("Checker for %s exited", self.url)


class Monitor:
    """Owns one :class:`Checker` per endpoint in a :class:`StatsStore`.

    Endpoints may be added while running, and individual endpoints can be
    stopped without affecting the others.
    """

    def __init__(
        self,
        store: StatsStore,
        interval: float,
        config: MonitorConfig,
        alert: Callable[[AlertEvent], None] | None = None,
    ) -> None:
        self._store = store
        self._interval = interval
        self._config = config
        self._alert = alert
        self._checkers: dict[str, Checker] = {}
        self._lock = threading.Lock()
        self._running = False

    @property
    def checkers(self) -> list[Checker]:
        with self._lock:
            return list(self._checkers.values())

    def start(self) -> None:
        """Spawn a checker for every registered endpoint."""
        with self._lock:
            if self._running:
                logger.warning("Monitor already running")
                return
            self._running = True

        for record in self._store.records():
            self._spawn(record)

        logger.info("Monitor started with %d endpoints at %ss interval", len(self.checkers), f"{self._interval:g}")

    def add_endpoint(self, url: str, expected_code: str) -> Checker | None:
        """Register a new endpoint and start checking it if the monitor runs.

        Returns:
            The started checker, or None if the monitor is not running yet
            (``start`` picks the endpoint up from the store).

        Raises:
            DuplicateEndpointError: If the URL is already registered.
        """
        record = self._store.register(url, expected_code)
        return self._spawn(record)

    def stop_endpoint(self, url: str, timeout: float | None = 5.0) -> bool:
        """Stop checking one endpoint; its record stays in the store.

        Returns:
            True if a running checker was stopped.
        """
        with self._lock:
            checker = self._checkers.pop(url, None)
        if checker is None:
            return False
        checker.stop(timeout=timeout)
        logger.info("Stopped checking %s", url)
        return True

    def stop(self, timeout: float = 5.0) -> None:
        """Signal every checker to stop, then wait up to ``timeout`` overall."""
        with self._lock:
            checkers = list(self._checkers.values())
            self._checkers.clear()
            self._running = False

        for checker in checkers:
            checker.signal_stop()

        deadline = time.monotonic() + timeout
        for checker in checkers:
            checker.stop(timeout=max(0.0, deadline - time.monotonic()))

    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def _spawn(self, record: EndpointRecord) -> Checker | None:
        """Start a checker for the record unless the monitor has been stopped."""
        checker = Checker(record, self._interval, self._config, alert=self._alert)
        with self._lock:
            if not self._running:
                return None
            self._checkers[record.url] = checker
            checker.start()
        return checker
