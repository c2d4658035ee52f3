"""HTML dashboard rendering.

Markup is a pure function of the endpoint view models; the server only
collects a fresh snapshot per request and passes it here.
"""

from datetime import datetime
from html import escape
from string import Template

from .models import ProcessClock
from .report import EndpointView, format_duration

# Seconds between automatic page reloads.
REFRESH_SECONDS = 5

_PAGE = Template("""<!DOCTYPE html>
<html>
<head>
	<title>Uptimer Dashboard</title>
	<meta http-equiv="refresh" content="$refresh">
	<style>
		body { font-family: Arial, sans-serif; margin: 20px; background: #1a1a2e; color: #eee; }
		h1 { color: #00d4ff; }
		table { border-collapse: collapse; width: 100%; margin-top: 20px; }
		th, td { border: 1px solid #444; padding: 12px; text-align: left; }
		th { background: #16213e; }
		tr:nth-child(even) { background: #1a1a2e; }
		tr:nth-child(odd) { background: #16213e; }
		.up { color: #00ff88; font-weight: bold; }
		.down { color: #ff4444; font-weight: bold; }
		.warn { color: #ffaa00; }
		.uptime-good { color: #00ff88; }
		.uptime-warn { color: #ffaa00; }
		.uptime-bad { color: #ff4444; }
	</style>
</head>
<body>
	<h1>Uptimer Dashboard</h1>
	<p>Monitoring since: $started_at | Uptime: $uptime</p>
	<table>
		<tr>
			<th>Endpoint</th>
			<th>Status</th>
			<th>Last Code</th>
			<th>Response Time</th>
			<th>Uptime</th>
			<th>Checks</th>
			<th>Failures</th>
			<th>SSL Expiry</th>
			<th>Last Check</th>
		</tr>
$rows
	</table>
	<p><small>Auto-refreshes every $refresh seconds. API available at <a href="/api/status">/api/status</a></small></p>
</body>
</html>
""")

_ROW = Template("""		<tr>
			<td>$url</td>
			<td class="$status_class">$status_text</td>
			<td>$last_status (expect $expected_code)</td>
			<td>${response_time_ms}ms</td>
			<td class="uptime-$uptime_class">$uptime_percent%</td>
			<td>$total_checks</td>
			<td>$consecutive_failures</td>
			<td>$cert_expiry</td>
			<td>$last_check</td>
		</tr>""")


def _format_cert(view: EndpointView) -> str:
    if view.cert_expiry is None:
        return "-"
    css = ' class="warn"' if view.cert_warning else ""
    return f"<span{css}>{view.cert_expiry:%Y-%m-%d} ({view.cert_days_left}d)</span>"


def _format_last_check(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.astimezone().strftime("%H:%M:%S")


def render_row(view: EndpointView) -> str:
    return _ROW.substitute(
        url=escape(view.url),
        status_class="up" if view.is_up else "down",
        status_text=view.status_text,
        last_status=escape(view.last_status),
        expected_code=escape(view.expected_code),
        response_time_ms=view.last_response_time_ms,
        uptime_class=view.uptime_class,
        uptime_percent=f"{view.uptime_percent:.2f}",
        total_checks=view.total_checks,
        consecutive_failures=view.consecutive_failures,
        cert_expiry=_format_cert(view),
        last_check=_format_last_check(view.last_check),
    )


def render_dashboard(views: list[EndpointView], clock: ProcessClock) -> str:
    """Render the full dashboard page.

    Args:
        views: Per-endpoint view models from a fresh store snapshot.
        clock: Process clock for the "monitoring since" header.

    Returns:
        Complete HTML document.
    """
    return _PAGE.substitute(
        refresh=REFRESH_SECONDS,
        started_at=clock.started_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
        uptime=format_duration(clock.uptime_seconds()),
        rows="\n".join(render_row(v) for v in views),
    )
