"""
Request pacing with jitter and cooldown.
Avoids uniform request timing and backs off after repeated failures.
"""

import random
from typing import Optional

from ..config import RateLimitConfig


class RateLimiter:
    """Computes jittered delays between requests and tracks failure streaks."""

    def __init__(self, config: Optional[RateLimitConfig] = None, rng: Optional[random.Random] = None):
        """
        Initialize rate limiter with configuration.

        Args:
            config: RateLimitConfig instance, uses defaults if None
            rng: Random source, a fresh random.Random() if None
        """
        self.config = config or RateLimitConfig()
        self._rng = rng or random.Random()
        self._consecutive_failures = 0

    def item_delay(self) -> float:
        """Delay between detail pages: base_delay x (1.5 + random fraction)."""
        return self.config.base_delay * (1.5 + self._rng.random())

    def batch_delay(self) -> float:
        """Delay between listing page batches, uniform within the configured range."""
        return self._rng.uniform(self.config.batch_delay_min, self.config.batch_delay_max)

    def record_success(self):
        self._consecutive_failures = 0

    def record_failure(self):
        self._consecutive_failures += 1

    def should_cooldown(self) -> bool:
        """
        Check if cooldown period should be triggered.

        Returns:
            True if consecutive failures reached threshold
        """
        threshold = self.config.cooldown_threshold
        return threshold > 0 and self._consecutive_failures >= threshold

    def cooldown_seconds(self) -> float:
        """Enter cooldown: reset the failure streak and return how long to pause."""
        print(f"Entering cooldown for {self.config.cooldown_duration}s due to "
              f"{self._consecutive_failures} consecutive failures")
        self._consecutive_failures = 0
        return self.config.cooldown_duration

    def get_stats(self) -> dict:
        return {
            'base_delay': self.config.base_delay,
            'consecutive_failures': self._consecutive_failures,
            'cooldown_threshold': self.config.cooldown_threshold,
        }

    def reset(self):
        self._consecutive_failures = 0
