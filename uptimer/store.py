"""Thread-safe store of endpoint health records."""

import logging
import threading
from collections.abc import Callable

from .models import EndpointRecord, EndpointSnapshot

logger = logging.getLogger(__name__)


class DuplicateEndpointError(Exception):
    """Raised when a URL is registered twice."""

    pass


class StatsStore:
    """Mapping from URL to its :class:`EndpointRecord`.

    Locking is two-level: ``_lock`` guards the shape of the mapping
    (insert and iterate), while each record's own lock guards its fields.
    The mapping lock is only held long enough to copy the record list, so
    reporters never block registration while they read individual records,
    and no lock is ever held across network I/O.

    Example:
        store = StatsStore()
        record = store.register("https://example.com", "200")
        for snap in store.snapshot():
            print(snap.url, snap.is_up)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, EndpointRecord] = {}

    def register(self, url: str, expected_code: str) -> EndpointRecord:
        """Create and insert a record for a URL.

        The URL string is the identity; no normalization is applied, so
        "http://a/" and "http://a" are distinct endpoints.

        Args:
            url: URL to monitor.
            expected_code: Expected HTTP status code as text.

        Returns:
            The newly created record.

        Raises:
            DuplicateEndpointError: If the URL is already registered.
        """
        with self._lock:
            if url in self._records:
                raise DuplicateEndpointError(f"Endpoint already registered: {url}")
            record = EndpointRecord(url=url, expected_code=expected_code)
            self._records[url] = record
        logger.debug("Registered %s (expect %s)", url, expected_code)
        return record

    def get(self, url: str) -> EndpointRecord | None:
        with self._lock:
            return self._records.get(url)

    def urls(self) -> list[str]:
        with self._lock:
            return list(self._records)

    def records(self) -> list[EndpointRecord]:
        """Return a point-in-time list of the registered records."""
        with self._lock:
            return list(self._records.values())

    def for_each(self, visitor: Callable[[EndpointSnapshot], None]) -> None:
        """Call ``visitor`` with a consistent snapshot of every record.

        Each record is locked individually; the set as a whole is not read
        atomically, so snapshots of different endpoints may reflect
        slightly different instants.
        """
        for record in self.records():
            visitor(record.snapshot())

    def snapshot(self) -> list[EndpointSnapshot]:
        """Return per-record snapshots of all endpoints."""
        snapshots: list[EndpointSnapshot] = []
        self.for_each(snapshots.append)
        return snapshots

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._records
