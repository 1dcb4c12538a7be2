"""Retry helper for commands that lose an optimistic-concurrency race.

Every aggregate write is conditional on the version that was read. When a
concurrent command committed first, Protean raises ExpectedVersionError and
the whole unit of work is discarded, so re-running the command re-reads
fresh state and re-checks its preconditions.
"""

import time

import structlog
from protean.exceptions import ExpectedVersionError

logger = structlog.get_logger(__name__)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05):
    """Run ``func`` and retry on ExpectedVersionError with exponential backoff.

    The last ExpectedVersionError propagates once attempts are exhausted.
    """
    for attempt in range(attempts):
        try:
            return func()
        except ExpectedVersionError:
            if attempt >= attempts - 1:
                raise
            logger.info("Stale write, retrying", attempt=attempt + 1)
            time.sleep(backoff_base * (2**attempt))
