"""Configuration loader with type-safe dataclasses."""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

from .backoff import BACKOFF_FACTOR, MAX_BACKOFF_SECONDS
from .certs import CERT_WARNING_DAYS


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


DEFAULT_ENDPOINTS_FILE = "endpoints.txt"

# Client-wide timeout for a single health check request, in seconds.
DEFAULT_REQUEST_TIMEOUT = 30

DEFAULT_DASHBOARD_PORT = 8080


@dataclass(frozen=True)
class MonitorConfig:
    """Configuration shared by all endpoint checkers."""

    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_backoff: float = MAX_BACKOFF_SECONDS
    backoff_factor: float = BACKOFF_FACTOR
    cert_warning_days: int = CERT_WARNING_DAYS
    cert_timeout: float | None = None  # None: wait for the TLS handshake indefinitely
    show_ok: bool = False  # log successful checks and healthy certificates
    show_response_time: bool = False  # append latency to check log lines

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise ConfigError(f"Request timeout must be positive (got {self.request_timeout})")
        if self.max_backoff <= 0:
            raise ConfigError(f"Max backoff must be positive (got {self.max_backoff})")
        if self.backoff_factor < 1:
            raise ConfigError(f"Backoff factor must be at least 1 (got {self.backoff_factor})")
        if self.cert_warning_days < 0:
            raise ConfigError(f"Certificate warning days must be non-negative (got {self.cert_warning_days})")
        if self.cert_timeout is not None and self.cert_timeout <= 0:
            raise ConfigError(f"Certificate timeout must be positive (got {self.cert_timeout})")


@dataclass(frozen=True)
class DashboardConfig:
    """Configuration for the HTML dashboard and JSON API server."""

    enabled: bool = False
    port: int = DEFAULT_DASHBOARD_PORT
    host: str = ""

    def __post_init__(self) -> None:
        if self.port < 1 or self.port > 65535:
            raise ConfigError(f"Dashboard port must be between 1 and 65535, got {self.port}")


@dataclass(frozen=True)
class WebhookConfig:
    """Configuration for a single webhook alert."""

    url: str
    enabled: bool = True
    cooldown_seconds: int = 300  # Minimum time between alerts for same endpoint

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigError("Webhook URL cannot be empty")
        if not self.url.startswith(("http://", "https://")):
            raise ConfigError(f"Webhook URL must start with http:// or https://, got '{self.url}'")
        if self.cooldown_seconds < 0:
            raise ConfigError(f"Webhook cooldown_seconds must be non-negative, got {self.cooldown_seconds}")


@dataclass(frozen=True)
class AlertsConfig:
    """Configuration for alert side effects."""

    sound: bool = False
    webhooks: list[WebhookConfig] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not isinstance(self.webhooks, list):
            raise ConfigError("Webhooks must be a list")


@dataclass(frozen=True)
class Config:
    """Main configuration container."""

    endpoints_file: str = DEFAULT_ENDPOINTS_FILE
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    alerts: AlertsConfig = field(default_factory=AlertsConfig)
    no_window: bool = False

    def __post_init__(self) -> None:
        if not self.endpoints_file:
            raise ConfigError("Endpoints file path cannot be empty")
        if self.no_window and not self.dashboard.enabled:
            raise ConfigError("Error: -nw flag requires -dp flag to be set")


def _parse_monitor_config(data: dict | None) -> MonitorConfig:
    """Parse monitor configuration section."""
    if data is None:
        return MonitorConfig()
    if not isinstance(data, dict):
        raise ConfigError("'monitor' section must be a dictionary")

    cert_timeout = data.get("cert_timeout")

    return MonitorConfig(
        request_timeout=float(data.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)),
        max_backoff=float(data.get("max_backoff", MAX_BACKOFF_SECONDS)),
        backoff_factor=float(data.get("backoff_factor", BACKOFF_FACTOR)),
        cert_warning_days=int(data.get("cert_warning_days", CERT_WARNING_DAYS)),
        cert_timeout=float(cert_timeout) if cert_timeout is not None else None,
        show_ok=bool(data.get("show_ok", False)),
        show_response_time=bool(data.get("show_response_time", False)),
    )


def _parse_dashboard_config(data: dict | None) -> DashboardConfig:
    """Parse dashboard configuration section."""
    if data is None:
        return DashboardConfig()
    if not isinstance(data, dict):
        raise ConfigError("'dashboard' section must be a dictionary")

    return DashboardConfig(
        enabled=bool(data.get("enabled", False)),
        port=int(data.get("port", DEFAULT_DASHBOARD_PORT)),
        host=str(data.get("host", "")),
    )


def _parse_webhook_config(data: dict, index: int) -> WebhookConfig:
    """Parse a single webhook configuration entry."""
    if not isinstance(data, dict):
        raise ConfigError(f"Webhook entry {index} must be a dictionary")

    url = data.get("url")
    if url is None:
        raise ConfigError(f"Webhook entry {index} is missing 'url' field")

    return WebhookConfig(
        url=str(url),
        enabled=bool(data.get("enabled", True)),
        cooldown_seconds=int(data.get("cooldown_seconds", 300)),
    )


def _parse_alerts_config(data: dict | None) -> AlertsConfig:
    """Parse alerts configuration section."""
    if data is None:
        return AlertsConfig()
    if not isinstance(data, dict):
        raise ConfigError("'alerts' section must be a dictionary")

    webhooks_data = data.get("webhooks", [])
    if not isinstance(webhooks_data, list):
        raise ConfigError("'alerts.webhooks' must be a list")

    webhooks = [_parse_webhook_config(webhook_data, i) for i, webhook_data in enumerate(webhooks_data)]

    return AlertsConfig(sound=bool(data.get("sound", False)), webhooks=webhooks)


def _apply_env_overrides(config_data: dict) -> dict:
    """Apply environment variable overrides to configuration.

    Supported overrides:
    - UPTIMER_ENDPOINTS_FILE: Override endpoints_file
    - UPTIMER_REQUEST_TIMEOUT: Override monitor.request_timeout
    - UPTIMER_DASHBOARD_PORT: Override dashboard.port (and enables the dashboard)
    - UPTIMER_DASHBOARD_ENABLED: Override dashboard.enabled (true/false)
    """
    for section in ("monitor", "dashboard"):
        if config_data.get(section) is None:
            config_data[section] = {}

    endpoints_file = os.environ.get("UPTIMER_ENDPOINTS_FILE")
    if endpoints_file is not None:
        config_data["endpoints_file"] = endpoints_file

    try:
        request_timeout = os.environ.get("UPTIMER_REQUEST_TIMEOUT")
        if request_timeout is not None:
            config_data["monitor"]["request_timeout"] = float(request_timeout)

        dashboard_port = os.environ.get("UPTIMER_DASHBOARD_PORT")
        if dashboard_port is not None:
            config_data["dashboard"]["port"] = int(dashboard_port)
            config_data["dashboard"]["enabled"] = True
    except ValueError as e:
        raise ConfigError(f"Invalid environment override: {e}")

    dashboard_enabled = os.environ.get("UPTIMER_DASHBOARD_ENABLED")
    if dashboard_enabled is not None:
        config_data["dashboard"]["enabled"] = dashboard_enabled.lower() in ("true", "1", "yes")

    return config_data


def load_config(config_path: str | None = None) -> Config:
    """Load and validate configuration from an optional YAML file.

    Without a path, defaults are used (environment overrides still apply).

    Args:
        config_path: Path to the YAML configuration file, or None.

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If the file cannot be read or configuration is invalid.
    """
    data: dict = {}

    if config_path is not None:
        path = Path(config_path)

        if not path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with open(path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML configuration: {e}")
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file: {e}")

        if loaded is not None:
            if not isinstance(loaded, dict):
                raise ConfigError("Configuration must be a YAML dictionary")
            data = loaded

    data = _apply_env_overrides(data)

    try:
        return Config(
            endpoints_file=str(data.get("endpoints_file", DEFAULT_ENDPOINTS_FILE)),
            monitor=_parse_monitor_config(data.get("monitor")),
            dashboard=_parse_dashboard_config(data.get("dashboard")),
            alerts=_parse_alerts_config(data.get("alerts")),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}")


def apply_cli_overrides(
    config: Config,
    endpoints_file: str | None = None,
    show_ok: bool = False,
    show_response_time: bool = False,
    sound_alert: bool = False,
    dashboard_port: int | None = None,
    no_window: bool = False,
) -> Config:
    """Layer command-line flags on top of a loaded configuration.

    Flags only ever switch features on; an unset flag keeps the file value.

    Raises:
        ConfigError: If the combined configuration is invalid.
    """
    monitor = replace(
        config.monitor,
        show_ok=config.monitor.show_ok or show_ok,
        show_response_time=config.monitor.show_response_time or show_response_time,
    )
    dashboard = config.dashboard
    if dashboard_port is not None:
        dashboard = replace(dashboard, enabled=True, port=dashboard_port)
    alerts = replace(config.alerts, sound=config.alerts.sound or sound_alert)

    return Config(
        endpoints_file=endpoints_file or config.endpoints_file,
        monitor=monitor,
        dashboard=dashboard,
        alerts=alerts,
        no_window=config.no_window or no_window,
    )
