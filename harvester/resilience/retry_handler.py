"""
Per-item retry handling with exponential backoff.
Each item moves Pending -> Attempting(n) -> Succeeded | Failed.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional

from ..config import RetryConfig


class ItemStatus(str, Enum):
    PENDING = "pending"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class ItemAttempt:
    """Retry state of a single item."""
    status: ItemStatus = ItemStatus.PENDING
    attempt: int = 0
    result: Any = None
    last_error: Optional[str] = None
    delays: List[float] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status is ItemStatus.SUCCEEDED

    @property
    def terminal(self) -> bool:
        return self.status in (ItemStatus.SUCCEEDED, ItemStatus.FAILED)


class RetryHandler:
    """Drives the per-item retry state machine."""

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Any] = time.sleep
    ):
        """
        Initialize retry handler.

        Args:
            config: RetryConfig instance, uses defaults if None
            sleep: Function used to wait between attempts
        """
        self.config = config or RetryConfig()
        self._sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        """
        Delay before the attempt following ``attempt``.

        Non-decreasing in ``attempt`` and capped at max_delay.
        """
        delay = self.config.base_delay * (self.config.backoff_factor ** max(0, attempt - 1))
        return min(delay, self.config.max_delay)

    def execute_with_retry(
        self,
        func: Callable,
        *args,
        on_failure: Optional[Callable[[int, BaseException], None]] = None,
        should_stop: Optional[Callable[[], bool]] = None,
        **kwargs
    ) -> ItemAttempt:
        """
        Execute function with retry logic.

        A ``None`` result counts as a failure (missing required fields).

        Args:
            func: Function to execute
            *args: Positional arguments for func
            on_failure: Called with (attempt, error) after every failed attempt
            should_stop: Checked between attempts; when true the item is left non-terminal
            **kwargs: Keyword arguments for func

        Returns:
            ItemAttempt, terminal unless should_stop cut the retries short
        """
        item = ItemAttempt()

        while not item.terminal:
            item.attempt += 1
            item.status = ItemStatus.ATTEMPTING

            error: Optional[BaseException] = None
            try:
                result = func(*args, **kwargs)
                if result is not None:
                    item.result = result
                    item.status = ItemStatus.SUCCEEDED
                    break
                error = ValueError("Extractor returned no record")
            except Exception as e:
                error = e

            item.last_error = str(error) or type(error).__name__
            print(f"  Attempt {item.attempt}/{self.config.max_retries} failed: {item.last_error}")
            if on_failure is not None:
                on_failure(item.attempt, error)

            if item.attempt >= self.config.max_retries:
                item.status = ItemStatus.FAILED
                break

            if should_stop is not None and should_stop():
                break

            delay = self.backoff_delay(item.attempt)
            item.delays.append(delay)
            print(f"  Retrying in {delay:.1f}s...")
            self._sleep(delay)

            if should_stop is not None and should_stop():
                break

        return item
