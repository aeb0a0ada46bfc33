from __future__ import annotations

import logging
import time
from typing import Callable

from ..lib.command import CommandError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BACKOFF_SECONDS = 10.0


def with_retries(
    operation: Callable[[], int],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff: float = DEFAULT_BACKOFF_SECONDS,
    label: str = "operation",
) -> bool:
    """Run a flaky, idempotent operation up to `max_attempts` times.

    `operation` returns an exit code (0 = success); a raised CommandError
    counts as a failed attempt. Every failure is treated as transient, so a
    permanent one costs the whole `max_attempts * backoff` budget. Returns
    False once attempts are exhausted; the caller decides if that is fatal.
    """

    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    for attempt in range(1, max_attempts + 1):
        try:
            code = operation()
        except CommandError as e:
            logger.info("%s attempt %d failed: %s", label, attempt, e)
            code = e.returncode or 1

        if code == 0:
            return True

        if attempt < max_attempts:
            logger.warning("%d. Retry %s...", attempt + 1, label)
            time.sleep(backoff)

    logger.error("%s failed after %d attempts", label, max_attempts)
    return False
