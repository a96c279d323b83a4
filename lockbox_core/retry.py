# lockbox_core/retry.py

import time
import random
import logging

from .errors import LockboxError

logger = logging.getLogger("LB.Retry")


class RetryPolicy:
    """
    Retry schedule for transient relayer failures:
    - retry_limit: maximum number of retries after the first attempt
    - backoff: delay strategy ('fixed', 'exponential', 'jitter')
    - base_delay: base delay in seconds
    """

    def __init__(self, retry_limit: int = 3, backoff: str = "exponential", base_delay: float = 0.5,
                 max_delay: float = 8.0, sleep=time.sleep):
        self.retry_limit = retry_limit
        self.backoff = backoff
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.sleep = sleep

    def should_retry(self, attempt: int, error: Exception) -> bool:
        return attempt < self.retry_limit and isinstance(error, LockboxError) and error.retryable

    def get_delay(self, attempt: int) -> float:
        if self.backoff == "fixed":
            delay = self.base_delay
        elif self.backoff == "exponential":
            delay = self.base_delay * (2 ** attempt)
        elif self.backoff == "jitter":
            delay = self.base_delay * random.uniform(1, 2 ** attempt)
        else:
            delay = 0.0
        return min(delay, self.max_delay)


NO_RETRY = RetryPolicy(retry_limit=0)


def retry_with_policy(policy: RetryPolicy, func, *args, **kwargs):
    """Call ``func``, retrying only errors flagged ``retryable``."""
    attempt = 0
    while True:
        try:
            return func(*args, **kwargs)
        except Exception as e:
            if not policy.should_retry(attempt, e):
                raise
            delay = policy.get_delay(attempt)
            logger.warning(f"Retry #{attempt + 1} in {delay:.2f}s due to: {e}")
            policy.sleep(delay)
            attempt += 1
