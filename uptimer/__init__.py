"""Uptimer - HTTP(S) endpoint uptime monitor with a live dashboard."""

import argparse
import logging
import signal
import sys
from threading import Event
from typing import Optional

__version__ = "0.1.0"

# Global shutdown event for signal handlers
_shutdown_event: Optional[Event] = None

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False, use_color: bool = True) -> None:
    """Configure colored, timestamped logging on stdout."""
    from .console import ColorFormatter

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ColorFormatter(
            fmt="[%(asctime)s] %(message)s" if not verbose else "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            use_color=use_color,
        )
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=[handler],
        force=True,
    )


def _handle_shutdown(signum: int, frame: object) -> None:
    """Signal handler for graceful shutdown."""
    sig_name = signal.Signals(signum).name
    logger.debug("Received %s, initiating shutdown...", sig_name)
    if _shutdown_event is not None:
        _shutdown_event.set()


def _cmd_run(args: argparse.Namespace) -> None:
    """Start monitoring and block until SIGINT/SIGTERM."""
    global _shutdown_event

    from .console import hide_console_window, supports_color

    use_color = not args.no_color and supports_color(sys.stdout)
    _setup_logging(args.verbose, use_color)

    # Import here to allow logging setup first
    from .alerter import build_alerter
    from .api import ApiError, ApiServer
    from .checker import Monitor
    from .config import ConfigError, apply_cli_overrides, load_config
    from .endpoints import EndpointFileCreated, EndpointFileError, load_endpoints
    from .models import ProcessClock
    from .report import render_shutdown_summary
    from .store import StatsStore

    # 1. Load configuration
    try:
        config = apply_cli_overrides(
            load_config(args.config),
            endpoints_file=args.file,
            show_ok=args.show_ok,
            show_response_time=args.show_rt,
            sound_alert=args.sound_alert,
            dashboard_port=args.dashboard_port,
            no_window=args.no_window,
        )
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)

    if config.no_window:
        hide_console_window()

    # 2. Load endpoints
    try:
        endpoint_list = load_endpoints(config.endpoints_file)
    except EndpointFileCreated as e:
        logger.info("%s", e)
        sys.exit(1)
    except EndpointFileError as e:
        logger.error("%s", e)
        sys.exit(1)

    clock = ProcessClock()
    store = StatsStore()
    for spec in endpoint_list.endpoints:
        store.register(spec.url, spec.expected_code)

    if not len(store):
        logger.warning("No valid endpoints found in %s", config.endpoints_file)

    # 3. Setup shutdown handler
    _shutdown_event = Event()
    signal.signal(signal.SIGTERM, _handle_shutdown)
    signal.signal(signal.SIGINT, _handle_shutdown)

    # 4. Start components
    monitor = Monitor(store, endpoint_list.interval, config.monitor, alert=build_alerter(config.alerts))
    api_server: Optional[ApiServer] = None

    try:
        monitor.start()

        if config.dashboard.enabled:
            try:
                api_server = ApiServer(
                    config.dashboard,
                    store,
                    clock,
                    cert_warning_days=config.monitor.cert_warning_days,
                )
                api_server.start()
                logger.info("Dashboard running at http://localhost:%d", api_server.port)
            except ApiError as e:
                logger.error("Failed to start dashboard: %s", e)
                logger.warning("Continuing without dashboard")
                api_server = None

        logger.info("Listening...")

        # 5. Wait for shutdown signal
        _shutdown_event.wait()

    except KeyboardInterrupt:
        # Backup handler if signal doesn't work
        logger.debug("Keyboard interrupt received")
    finally:
        # 6. Summary first, from a single snapshot, then stop components
        print(render_shutdown_summary(store.snapshot(), clock, use_color=use_color), flush=True)

        monitor.stop(timeout=1.0)

        if api_server is not None:
            api_server.stop()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="uptimer",
        description="Uptimer - HTTP(S) endpoint uptime monitor",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"uptimer {__version__}",
    )
    parser.add_argument(
        "-f", "--file",
        default=None,
        help="Endpoint list file (default: endpoints.txt)",
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Optional YAML settings file",
    )
    parser.add_argument(
        "-so", "--show-ok",
        action="store_true",
        help="Show successful checks",
    )
    parser.add_argument(
        "-rt", "--show-rt",
        action="store_true",
        help="Show response time",
    )
    parser.add_argument(
        "-sa", "--sound-alert",
        action="store_true",
        help="Sound alert on failure",
    )
    parser.add_argument(
        "-dp", "--dashboard-port",
        type=int,
        default=None,
        help="Serve the dashboard and API on this port (e.g. 8080)",
    )
    parser.add_argument(
        "-nw", "--no-window",
        action="store_true",
        help="Hide the console window (Windows only, requires -dp)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the uptimer package."""
    args = _build_parser().parse_args(argv)
    _cmd_run(args)
    sys.exit(0)
