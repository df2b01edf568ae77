from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar


logger = logging.getLogger("retry")

T = TypeVar("T")


def retry_with_backoff(fn: Callable[[], T], max_retries: int = 3, initial_delay: float = 1.0) -> T:
    """Call ``fn`` up to ``max_retries`` times, doubling the delay after each failure.

    The last exception is re-raised once every attempt has failed. No sleep
    happens after the final attempt.
    """
    attempts = max(1, int(max_retries))
    for attempt in range(attempts):
        try:
            return fn()
        except Exception as exc:
            if attempt >= attempts - 1:
                raise
            delay = initial_delay * (2 ** attempt)
            logger.debug("retry attempt=%s delay=%.2fs error=%s", attempt + 1, delay, exc)
            time.sleep(delay)
    raise RuntimeError("unreachable")
