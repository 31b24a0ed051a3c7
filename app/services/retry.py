"""Small exponential backoff shared by the remote API clients"""

import time
from typing import Callable, TypeVar

T = TypeVar("T")

TRANSIENT_STATUS_CODES = (429, 500, 502, 503, 504)


def with_retries(
    fn: Callable[[], T],
    should_retry: Callable[[Exception], bool],
    *,
    max_attempts: int = 3,
    base_delay_s: float = 0.5,
) -> T:
    """Run callable with small exponential backoff on transient errors."""
    attempt = 1
    while True:
        try:
            return fn()
        except Exception as e:
            if attempt >= max_attempts or not should_retry(e):
                raise
            time.sleep(base_delay_s * (2 ** (attempt - 1)))
            attempt += 1
