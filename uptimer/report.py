"""Read-side view of the stats store shared by the dashboard, API and shutdown summary."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from .certs import CERT_WARNING_DAYS, days_until
from .console import GREEN, RED, YELLOW, colorize
from .models import EndpointSnapshot, ProcessClock

# Uptime percentage thresholds for dashboard severity coloring.
UPTIME_GOOD_PERCENT = 99.0
UPTIME_WARN_PERCENT = 95.0

# Serialized in place of a timestamp that was never set.
ZERO_TIME = "0001-01-01T00:00:00Z"


def format_duration(seconds: float) -> str:
    """Format a duration as e.g. "45s", "5m0s" or "1h2m3s".

    Sub-second durations are shown in milliseconds; everything else is
    rounded to whole seconds.
    """
    if 0 < seconds < 1:
        return f"{int(round(seconds * 1000))}ms"

    total = int(round(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def rfc3339(value: datetime | None) -> str:
    """Format a timestamp as RFC 3339 in UTC, or the zero time for None."""
    if value is None:
        return ZERO_TIME
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def uptime_percent(successful_checks: int, total_checks: int) -> float:
    if total_checks <= 0:
        return 0.0
    return successful_checks / total_checks * 100


def uptime_class(percent: float) -> str:
    """Severity bucket for an uptime percentage: "good", "warn" or "bad"."""
    if percent >= UPTIME_GOOD_PERCENT:
        return "good"
    if percent >= UPTIME_WARN_PERCENT:
        return "warn"
    return "bad"


@dataclass(frozen=True)
class EndpointView:
    """Per-endpoint view model consumed by the reporting surfaces."""

    url: str
    expected_code: str
    is_up: bool
    last_status: str
    last_response_time_ms: int
    uptime_percent: float
    uptime_class: str
    total_checks: int
    successful_checks: int
    consecutive_failures: int
    last_check: datetime | None
    cert_expiry: datetime | None
    cert_days_left: int | None
    cert_warning: bool

    @property
    def status_text(self) -> str:
        return "UP" if self.is_up else "DOWN"


def build_view(
    snapshot: EndpointSnapshot,
    now: datetime | None = None,
    cert_warning_days: int = CERT_WARNING_DAYS,
) -> EndpointView:
    """Derive the view model for one snapshot."""
    percent = uptime_percent(snapshot.successful_checks, snapshot.total_checks)

    days_left: int | None = None
    if snapshot.cert_expiry is not None:
        days_left = days_until(snapshot.cert_expiry, now)

    return EndpointView(
        url=snapshot.url,
        expected_code=snapshot.expected_code,
        is_up=snapshot.is_up,
        last_status=snapshot.last_status,
        last_response_time_ms=snapshot.last_response_time_ms,
        uptime_percent=percent,
        uptime_class=uptime_class(percent),
        total_checks=snapshot.total_checks,
        successful_checks=snapshot.successful_checks,
        consecutive_failures=snapshot.consecutive_failures,
        last_check=snapshot.last_check,
        cert_expiry=snapshot.cert_expiry,
        cert_days_left=days_left,
        cert_warning=days_left is not None and days_left <= cert_warning_days,
    )


def build_views(
    snapshots: list[EndpointSnapshot],
    now: datetime | None = None,
    cert_warning_days: int = CERT_WARNING_DAYS,
) -> list[EndpointView]:
    now = now or datetime.now(UTC)
    return [build_view(s, now, cert_warning_days) for s in snapshots]


def _snapshot_to_dict(snapshot: EndpointSnapshot) -> dict[str, Any]:
    """Convert a snapshot to the JSON API endpoint object."""
    data: dict[str, Any] = {
        "url": snapshot.url,
        "expected_code": snapshot.expected_code,
        "total_checks": snapshot.total_checks,
        "successful_checks": snapshot.successful_checks,
        "consecutive_failures": snapshot.consecutive_failures,
        "last_check": rfc3339(snapshot.last_check),
        "last_status": snapshot.last_status,
        "last_response_time_ms": snapshot.last_response_time_ms,
    }
    if snapshot.cert_expiry is not None:
        data["cert_expiry"] = rfc3339(snapshot.cert_expiry)
    data["is_up"] = snapshot.is_up
    return data


def build_status_payload(snapshots: list[EndpointSnapshot], clock: ProcessClock) -> dict[str, Any]:
    """Build the ``/api/status`` response body."""
    return {
        "start_time": rfc3339(clock.started_at),
        "uptime": format_duration(clock.uptime_seconds()),
        "endpoints": [_snapshot_to_dict(s) for s in snapshots],
    }


def render_shutdown_summary(
    snapshots: list[EndpointSnapshot],
    clock: ProcessClock,
    use_color: bool = True,
) -> str:
    """Render the end-of-run summary printed when the process is terminated."""
    lines = [
        "",
        colorize("========== SHUTDOWN SUMMARY ==========", YELLOW, use_color),
        f"Total uptime: {format_duration(clock.uptime_seconds())}",
        "",
    ]

    for snap in snapshots:
        percent = uptime_percent(snap.successful_checks, snap.total_checks)
        status = colorize("UP", GREEN, use_color) if snap.is_up else colorize("DOWN", RED, use_color)
        lines.append(snap.url)
        lines.append(
            f"  Status: {status} | Uptime: {percent:.2f}% | "
            f"Checks: {snap.successful_checks}/{snap.total_checks} | "
            f"Consec Failures: {snap.consecutive_failures}"
        )
        if snap.cert_expiry is not None:
            lines.append(f"  SSL Cert Expires: {snap.cert_expiry:%Y-%m-%d}")

    lines.append(colorize("======================================", YELLOW, use_color))
    return "\n".join(lines)
