"""
Per-query deadline and cancellation token.
"""

import threading
import time
from concurrent.futures import Future, wait
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..logger import get_logger

logger = get_logger(__name__)


@dataclass
class QueryContext:
    """
    Deadline shared by every stage of one query.

    Concurrent fan-outs wait at most `remaining()` seconds; once the
    deadline passes (or `cancel()` is called) the event is set and
    sub-tasks that have not started yet return empty results.
    """

    timeout_seconds: Optional[float] = 30.0
    start_time: float = field(default_factory=time.monotonic)
    cancel_event: threading.Event = field(default_factory=threading.Event)

    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def remaining(self) -> Optional[float]:
        """Seconds left, None when there is no deadline."""
        if self.timeout_seconds is None:
            return None
        return max(0.0, self.timeout_seconds - self.elapsed())

    def is_cancelled(self) -> bool:
        if self.cancel_event.is_set():
            return True
        if self.timeout_seconds is not None and self.elapsed() >= self.timeout_seconds:
            logger.warning(f"Query deadline of {self.timeout_seconds:.1f}s reached")
            self.cancel_event.set()
            return True
        return False

    def cancel(self):
        self.cancel_event.set()

    def collect(self, futures: Dict[str, Future], empty_factory=list) -> Dict[str, object]:
        """
        Join named futures, keeping partial successes.

        A failed or unfinished task logs and contributes `empty_factory()`;
        unfinished tasks are cancelled and the context is marked cancelled.
        """
        done, not_done = wait(list(futures.values()), timeout=self.remaining())
        results = {}
        for name, future in futures.items():
            if future in not_done:
                future.cancel()
                logger.warning(f"Task '{name}' did not finish before the deadline")
                results[name] = empty_factory()
                continue
            try:
                results[name] = future.result()
            except Exception as e:
                logger.error(f"Task '{name}' failed: {e}")
                results[name] = empty_factory()

        if not_done:
            self.cancel()
        return results
