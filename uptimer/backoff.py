"""Retry interval policy for failing endpoints."""

# Failures never wait longer than this, however many occurred in a row.
MAX_BACKOFF_SECONDS = 300.0

BACKOFF_FACTOR = 2


def increase_backoff(
    current: float,
    factor: float = BACKOFF_FACTOR,
    max_backoff: float = MAX_BACKOFF_SECONDS,
) -> float:
    """Return the next retry interval after a failure.

    Args:
        current: Current retry interval in seconds.
        factor: Multiplier applied on each failure.
        max_backoff: Upper bound in seconds.

    Returns:
        ``min(current * factor, max_backoff)``.
    """
    return min(current * factor, max_backoff)


class Backoff:
    """Per-endpoint retry interval state.

    A failure sleeps for the current interval and then grows it
    multiplicatively up to the cap. A single success resets it to the
    normal interval. Starting from interval ``I``, consecutive failures
    therefore wait ``I, min(2I, cap), min(4I, cap), ...``.
    """

    def __init__(
        self,
        normal_interval: float,
        factor: float = BACKOFF_FACTOR,
        max_backoff: float = MAX_BACKOFF_SECONDS,
    ) -> None:
        if normal_interval <= 0:
            raise ValueError(f"Normal interval must be positive (got {normal_interval})")
        self.normal_interval = normal_interval
        self.factor = factor
        self.max_backoff = max_backoff
        self.current = normal_interval

    def on_failure(self) -> float:
        """Return the delay to wait after a failure and advance the interval."""
        delay = self.current
        self.current = increase_backoff(self.current, self.factor, self.max_backoff)
        return delay

    def on_success(self) -> float:
        """Reset to the normal interval and return it."""
        self.current = self.normal_interval
        return self.normal_interval
