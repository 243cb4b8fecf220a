"""
Rate limiting and retry for text-model calls.

Free OpenRouter models throttle aggressively; every model call goes
through LLMRateLimiter so bursts are spaced out and 429 responses are
retried after the wait the provider asks for.
"""

import re
import threading
import time
from typing import Callable, Optional, TypeVar

from openai import RateLimitError

from ...logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# "Please try again in 1.5s" as sent by the provider
_RETRY_AFTER_PATTERN = re.compile(r"Please try again in ([0-9.]+)s")


class LLMRateLimiter:
    """
    Spaces out requests and retries throttled or failed calls.

    Thread-safe: the minimum-interval bookkeeping is guarded by a lock so
    concurrent retrieval stages share one request budget.
    """

    def __init__(
        self,
        delay_ms: int = 2000,
        max_retries: int = 3,
        min_interval_ms: int = 0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.delay_ms = delay_ms
        self.max_retries = max_retries
        self.min_interval_ms = min_interval_ms
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request = 0.0

    def execute(self, operation: Callable[[], T], description: str = "LLM call") -> T:
        """
        Run `operation` with spacing and retries.

        Raises the last error once `max_retries` retries are used up.
        """
        attempt = 0
        while True:
            self._wait_for_slot()
            try:
                return operation()
            except RateLimitError as e:
                attempt += 1
                if attempt > self.max_retries:
                    logger.error(f"{description} still rate limited after {self.max_retries} retries")
                    raise
                wait_ms = self.retry_delay_ms(str(e))
                logger.warning(
                    f"{description} rate limited, retry {attempt}/{self.max_retries} in {wait_ms}ms"
                )
                self._sleep(wait_ms / 1000.0)
            except Exception as e:
                attempt += 1
                if attempt > self.max_retries:
                    logger.error(f"{description} failed after {self.max_retries} retries: {e}")
                    raise
                logger.warning(f"{description} failed ({e}), retry {attempt}/{self.max_retries}")
                self._sleep(self.delay_ms / 1000.0)

    def retry_delay_ms(self, message: Optional[str]) -> int:
        """Wait requested by the provider plus 500ms, else the default delay."""
        if message:
            match = _RETRY_AFTER_PATTERN.search(message)
            if match:
                try:
                    return int(float(match.group(1)) * 1000) + 500
                except ValueError:
                    logger.debug(f"Unparseable retry hint: {match.group(1)}")
        return self.delay_ms

    def _wait_for_slot(self):
        if self.min_interval_ms <= 0:
            return
        with self._lock:
            now = time.monotonic()
            wait = self._last_request + self.min_interval_ms / 1000.0 - now
            if wait > 0:
                self._sleep(wait)
            self._last_request = time.monotonic()
