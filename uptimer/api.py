"""HTTP server for the dashboard page and the JSON status API."""

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from .certs import CERT_WARNING_DAYS
from .config import DashboardConfig
from .dashboard import render_dashboard
from .models import ProcessClock
from .report import build_status_payload, build_views
from .store import StatsStore

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Raised when the dashboard server cannot be started."""

    pass


class StatusHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the dashboard and status API."""

    # Class-level references set by factory
    store: StatsStore | None = None
    clock: ProcessClock | None = None
    cert_warning_days: int = CERT_WARNING_DAYS

    def log_message(self, format: str, *args: Any) -> None:
        """Override to use Python logging instead of stderr."""
        logger.debug("HTTP %s - %s", self.address_string(), format % args)

    def _send_json(self, code: int, data: dict[str, Any]) -> None:
        """Send a JSON response with the given status code."""
        body = json.dumps(data, indent=2).encode("utf-8")
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(body)

    def _send_error_json(self, code: int, message: str) -> None:
        self._send_json(code, {"error": message})

    def _send_html(self, code: int, html: str) -> None:
        """Send an HTML response with the given status code."""
        body = html.encode("utf-8")
        self.send_response(code)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-store")
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self) -> None:
        """Handle GET requests."""
        path = self.path.split("?", 1)[0]
        try:
            if path == "/":
                self._handle_dashboard()
            elif path == "/api/status":
                self._handle_status()
            else:
                self._send_error_json(404, "Not found")
        except Exception as e:
            logger.exception("Error handling request: %s", e)
            self._send_error_json(500, "Internal server error")

    def _handle_dashboard(self) -> None:
        """Handle GET / - render the dashboard from a fresh snapshot."""
        if self.store is None or self.clock is None:
            self._send_error_json(503, "Store not available")
            return

        views = build_views(self.store.snapshot(), cert_warning_days=self.cert_warning_days)
        self._send_html(200, render_dashboard(views, self.clock))

    def _handle_status(self) -> None:
        """Handle GET /api/status."""
        if self.store is None or self.clock is None:
            self._send_error_json(503, "Store not available")
            return

        self._send_json(200, build_status_payload(self.store.snapshot(), self.clock))


def _create_handler_class(
    store: StatsStore,
    clock: ProcessClock,
    cert_warning_days: int = CERT_WARNING_DAYS,
) -> type:
    """Create a handler class with the store and clock bound."""

    class BoundStatusHandler(StatusHandler):
        pass

    BoundStatusHandler.store = store
    BoundStatusHandler.clock = clock
    BoundStatusHandler.cert_warning_days = cert_warning_days
    return BoundStatusHandler


class ApiServer:
    """Threaded HTTP server (one thread per request) for the dashboard and API."""

    def __init__(
        self,
        config: DashboardConfig,
        store: StatsStore,
        clock: ProcessClock,
        cert_warning_days: int = CERT_WARNING_DAYS,
    ) -> None:
        """Initialize the server.

        Args:
            config: Dashboard configuration (host and port).
            store: Stats store to read snapshots from.
            clock: Process clock for start time and uptime.
            cert_warning_days: Threshold for highlighting expiring certificates.
        """
        self.config = config
        self.store = store
        self.clock = clock
        self._cert_warning_days = cert_warning_days
        self._server: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int:
        """Port actually bound (useful when configured with an ephemeral port)."""
        if self._server is not None:
            return self._server.server_address[1]
        return self.config.port

    def start(self) -> None:
        """Start the server in a background thread.

        Raises:
            ApiError: If the server fails to start.
        """
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Dashboard server is already running")
            return

        try:
            handler_class = _create_handler_class(self.store, self.clock, self._cert_warning_days)
            self._server = ThreadingHTTPServer((self.config.host, self.config.port), handler_class)
            self._server.daemon_threads = True
        except OSError as e:
            # Provide specific guidance based on error type
            if e.errno == 98 or e.errno == 48:  # EADDRINUSE (Linux=98, macOS=48)
                raise ApiError(
                    f"Port {self.config.port} is already in use. "
                    f"Another process may be using this port, or uptimer is already running."
                )
            elif e.errno == 13:  # EACCES - Permission denied
                raise ApiError(
                    f"Permission denied for port {self.config.port}. "
                    f"Ports below 1024 require root privileges. "
                    f"Use a port >= 1024 or run with elevated permissions."
                )
            else:
                raise ApiError(f"Failed to start dashboard server on port {self.config.port}: {e}")

        self._thread = threading.Thread(
            target=self._server.serve_forever,
            kwargs={"poll_interval": 0.5},
            name="dashboard-server",
            daemon=True,
        )
        self._thread.start()

        logger.info("Dashboard server started on port %d", self.port)

    def stop(self) -> None:
        """Stop the server gracefully."""
        if self._thread is None or self._server is None:
            return

        logger.info("Stopping dashboard server...")
        self._server.shutdown()
        self._server.server_close()

        if self._thread.is_alive():
            self._thread.join(timeout=5.0)

        self._server = None
        self._thread = None
        logger.info("Dashboard server stopped")

    @property
    def is_running(self) -> bool:
        """Check if the server is running."""
        return self._thread is not None and self._thread.is_alive()
