"""
Request pacing for sequential visits.

Two kinds of waits keep the probe from presenting as an automated burst:

- retry backoff: ``base * 2**(attempt - 1) + uniform(0, jitter)``, growing
  geometrically so repeated failures against the same origin spread out
- inter-visit gap: ``uniform(min_gap, max_gap)`` after every target,
  whatever its outcome

All waits go through one injectable ``sleep`` coroutine so tests can run
without wall-clock delays.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


def backoff_delay(
    attempt: int,
    base: float = 1.0,
    jitter_ceiling: float = 0.5,
    rng: Optional[random.Random] = None,
) -> float:
    """
    Delay before the attempt following ``attempt`` (1-based).

    The jitter is additive and never negative, so the result is always at
    least ``base * 2**(attempt - 1)``.
    """
    if attempt < 1:
        raise ValueError(f"attempt is 1-based, got {attempt}")
    rng = rng or random
    jitter = rng.uniform(0, jitter_ceiling) if jitter_ceiling > 0 else 0.0
    return base * (2 ** (attempt - 1)) + jitter


@dataclass(frozen=True)
class PacingConfig:
    """Configuration for retry backoff and visit spacing (seconds)."""
    backoff_base: float = 1.0
    backoff_jitter: float = 0.5
    min_gap: float = 1.2
    max_gap: float = 4.0


class Pacer:
    """
    Computes and performs the waits of a sequential visit run.

    Keeps simple statistics about how long the run spent suspended.
    """

    def __init__(
        self,
        config: Optional[PacingConfig] = None,
        sleep: Optional[Sleeper] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or PacingConfig()
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()
        self._total_wait_time = 0.0
        self._wait_count = 0

    def backoff_delay(self, attempt: int) -> float:
        return backoff_delay(
            attempt,
            base=self.config.backoff_base,
            jitter_ceiling=self.config.backoff_jitter,
            rng=self._rng,
        )

    def visit_gap(self) -> float:
        return self._rng.uniform(self.config.min_gap, self.config.max_gap)

    async def wait(self, seconds: float) -> float:
        """Suspend the run for ``seconds``. Returns the time waited."""
        seconds = max(0.0, seconds)
        if seconds > 0:
            await self._sleep(seconds)
        self._total_wait_time += seconds
        self._wait_count += 1
        return seconds

    async def wait_backoff(self, attempt: int) -> float:
        delay = self.backoff_delay(attempt)
        logger.debug(f"Backing off {delay:.2f}s after attempt {attempt}")
        return await self.wait(delay)

    async def wait_between_visits(self) -> float:
        delay = self.visit_gap()
        logger.debug(f"Pausing {delay:.2f}s before next visit")
        return await self.wait(delay)

    def get_stats(self) -> dict:
        """Get pacing statistics."""
        return {
            "waits": self._wait_count,
            "total_wait_time": round(self._total_wait_time, 3),
        }
