"""Circuit breaker for the speech synthesis providers.

After ``failure_threshold`` consecutive failures the primary voice is skipped
for ``cooldown_seconds``; once the cooldown elapses one probe call is let
through and a success closes the breaker again.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class CircuitBreaker:
    failure_threshold: int = 3
    cooldown_seconds: float = 60.0
    label: str = "service"
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    _failures: int = field(default=0, init=False, repr=False)
    _opened_at: Optional[float] = field(default=None, init=False, repr=False)

    @property
    def is_open(self) -> bool:
        return self._opened_at is not None

    @property
    def failures(self) -> int:
        return self._failures

    def allow(self) -> bool:
        if self._opened_at is None:
            return True
        return (self.clock() - self._opened_at) >= self.cooldown_seconds

    def record_success(self) -> None:
        if self._opened_at is not None:
            logger.info("Circuit breaker for %s closed again", self.label)
        self._failures = 0
        self._opened_at = None

    def record_failure(self) -> None:
        self._failures += 1
        if self._failures < self.failure_threshold:
            return
        # A failed half-open probe restarts the cooldown.
        self._opened_at = self.clock()
        logger.warning(
            "Circuit breaker OPEN for %s after %d consecutive failures, skipping for %.0fs",
            self.label,
            self._failures,
            self.cooldown_seconds,
        )
