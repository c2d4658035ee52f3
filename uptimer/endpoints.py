"""Endpoint list file parsing.

File format::

    30                              <- optional first line: check interval in seconds
    https://example.com             <- expects 200
    http://example.org/health 204   <- explicit expected status code
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 10
DEFAULT_EXPECTED_CODE = "200"

_ENDPOINT_LINE = re.compile(r"^(https?://[a-zA-Z0-9._-]+(:\d+)?(?:/[^\s]*)?)\s*(\d{3})?$", re.ASCII)
_INTEGER = re.compile(r"^[+-]?\d+$", re.ASCII)


class EndpointFileError(Exception):
    """Raised when the endpoint file cannot be opened or created."""

    pass


class EndpointFileCreated(EndpointFileError):
    """Raised after creating a missing endpoint file that the user must fill in."""

    pass


@dataclass(frozen=True)
class EndpointSpec:
    """A configured endpoint: URL plus its expected status code."""

    url: str
    expected_code: str = DEFAULT_EXPECTED_CODE


@dataclass(frozen=True)
class EndpointList:
    """Parsed endpoint file: shared interval and the valid endpoints, in file order."""

    interval: int = DEFAULT_INTERVAL
    endpoints: list[EndpointSpec] = field(default_factory=list)


def parse_endpoint_line(line: str) -> EndpointSpec | None:
    """Parse one endpoint line.

    Returns:
        The endpoint, or None if the line does not match the expected format.
    """
    match = _ENDPOINT_LINE.match(line)
    if match is None:
        return None
    return EndpointSpec(url=match.group(1), expected_code=match.group(3) or DEFAULT_EXPECTED_CODE)


def _parse_interval(line: str) -> int | None:
    if not _INTEGER.match(line):
        return None
    return int(line)


def parse_endpoints(lines: Iterable[str]) -> EndpointList:
    """Parse the lines of an endpoint file.

    The first line is the interval in seconds. A zero or negative number
    falls back to the default; a line that is not an integer at all also
    falls back to the default and is parsed as an endpoint.
    Blank lines are ignored; malformed lines and repeated URLs are
    skipped with a warning.
    """
    interval = DEFAULT_INTERVAL
    endpoints: list[EndpointSpec] = []
    seen: set[str] = set()

    for index, raw in enumerate(lines):
        line = raw.rstrip("\r\n")

        if index == 0:
            parsed_interval = _parse_interval(line)
            if parsed_interval is not None:
                if parsed_interval > 0:
                    interval = parsed_interval
                    logger.info("Wait time is %d seconds", interval)
                else:
                    logger.warning(
                        "Wait time must be positive (got %d). Set to default %d seconds",
                        parsed_interval,
                        DEFAULT_INTERVAL,
                    )
                continue
            logger.warning("Wait time not found. Set to default %d seconds", DEFAULT_INTERVAL)

        if not line:
            continue

        spec = parse_endpoint_line(line)
        if spec is None:
            logger.warning("%s line is incorrect!", line)
            continue
        if spec.url in seen:
            logger.warning("%s is listed more than once, keeping the first entry", spec.url)
            continue

        seen.add(spec.url)
        endpoints.append(spec)

    return EndpointList(interval=interval, endpoints=endpoints)


def load_endpoints(path: str) -> EndpointList:
    """Load the endpoint file, creating an empty one if it does not exist.

    Args:
        path: Path to the endpoint file.

    Returns:
        Parsed endpoint list.

    Raises:
        EndpointFileCreated: If the file was missing and has been created.
        EndpointFileError: If the file cannot be read or created.
    """
    file_path = Path(path)

    if not file_path.exists():
        try:
            file_path.touch()
        except OSError as e:
            raise EndpointFileError(f"Cannot create {path}: {e}")
        raise EndpointFileCreated(f"{path} file was created!\nFill out the file to use the program")

    try:
        with open(file_path, encoding="utf-8") as f:
            return parse_endpoints(f)
    except (OSError, UnicodeDecodeError) as e:
        raise EndpointFileError(f"Cannot read {path}: {e}")
