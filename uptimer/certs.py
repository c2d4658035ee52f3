"""One-shot TLS certificate expiry inspection."""

import logging
import socket
import ssl
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from .models import EVENT_CERT_EXPIRING, AlertEvent, EndpointRecord

logger = logging.getLogger(__name__)

# Certificates expiring within this many days trigger a warning.
CERT_WARNING_DAYS = 30

# The inspected port is fixed; explicit ports in the URL are ignored.
TLS_PORT = 443

SECONDS_PER_DAY = 86400


class CertCheckError(Exception):
    """Raised when the TLS handshake or certificate parsing fails."""

    pass


@dataclass(frozen=True)
class CertInfo:
    """Leaf certificate details.

    Attributes:
        host: Host the handshake was made against.
        expires_at: Certificate ``notAfter`` timestamp (UTC).
    """

    host: str
    expires_at: datetime


def cert_host(url: str) -> str:
    """Extract the host to inspect from an HTTPS URL.

    Takes everything after ``https://`` up to the first ``/`` or ``:``.
    IPv6 literals are not handled.
    """
    host = url[len("https://"):]
    for i, char in enumerate(host):
        if char in "/:":
            return host[:i]
    return host


def days_until(expiry: datetime, now: datetime | None = None) -> int:
    """Whole days until ``expiry``, truncated toward zero."""
    now = now or datetime.now(UTC)
    return int((expiry - now).total_seconds() / SECONDS_PER_DAY)


def fetch_cert_info(url: str, timeout: float | None = None) -> CertInfo:
    """Open a TLS connection to the URL's host on port 443 and read its certificate.

    Args:
        url: HTTPS URL of the endpoint.
        timeout: Socket timeout in seconds, or None to wait indefinitely.

    Returns:
        CertInfo for the leaf certificate.

    Raises:
        CertCheckError: If the connection, handshake or parsing fails.
    """
    host = cert_host(url)
    if not host:
        raise CertCheckError("Invalid URL: no hostname")

    context = ssl.create_default_context()
    try:
        with socket.create_connection((host, TLS_PORT), timeout=timeout) as sock:
            with context.wrap_socket(sock, server_hostname=host) as ssl_sock:
                cert = ssl_sock.getpeercert()
    except ssl.SSLCertVerificationError as e:
        raise CertCheckError(f"certificate verification failed: {e}") from e
    except ssl.SSLError as e:
        raise CertCheckError(f"SSL error: {e}") from e
    except TimeoutError as e:
        raise CertCheckError("SSL connection timeout") from e
    except socket.gaierror as e:
        raise CertCheckError(f"DNS resolution failed: {e}") from e
    except OSError as e:
        raise CertCheckError(f"connection failed: {e}") from e

    if not cert:
        raise CertCheckError("no certificate returned by server")

    # notAfter looks like 'Mon DD HH:MM:SS YYYY GMT'
    not_after_raw = cert.get("notAfter")
    if not not_after_raw or not isinstance(not_after_raw, str):
        raise CertCheckError("certificate missing expiration date")

    try:
        expires_at = datetime.strptime(not_after_raw, "%b %d %H:%M:%S %Y %Z").replace(tzinfo=UTC)
    except ValueError as e:
        raise CertCheckError(f"unparsable expiration date {not_after_raw!r}") from e

    return CertInfo(host=host, expires_at=expires_at)


def inspect_certificate(
    record: EndpointRecord,
    alert: Callable[[AlertEvent], None],
    warning_days: int = CERT_WARNING_DAYS,
    show_ok: bool = False,
    timeout: float | None = None,
) -> CertInfo | None:
    """Sample the endpoint's certificate expiry into its record.

    Failures are logged as warnings and leave ``cert_expiry`` unset.

    Args:
        record: Record of the HTTPS endpoint to inspect.
        alert: Alert callback, invoked when the certificate is close to expiry.
        warning_days: Threshold in days for the expiry warning.
        show_ok: Log an informational line when the certificate is healthy.
        timeout: Handshake timeout in seconds, or None for no timeout.

    Returns:
        The certificate info, or None if inspection failed.
    """
    url = record.url
    try:
        info = fetch_cert_info(url, timeout=timeout)
    except CertCheckError as e:
        logger.warning("%s - SSL cert check failed: %s", url, e)
        return None

    record.set_cert_expiry(info.expires_at)

    days_left = days_until(info.expires_at)
    if days_left <= warning_days:
        message = f"SSL cert expires in {days_left} days ({info.expires_at:%Y-%m-%d})"
        logger.warning("%s - %s", url, message)
        alert(AlertEvent(kind=EVENT_CERT_EXPIRING, url=url, message=message))
    elif show_ok:
        logger.info("%s - SSL cert valid for %d days", url, days_left)

    return info
