"""
Resilience components for the harvester: durable stores, retry and pacing.
"""

from .batch_archiver import BatchArchiver
from .failure_ledger import FailureLedger
from .frontier_store import FrontierStore
from .progress_tracker import ProgressTracker
from .rate_limiter import RateLimiter
from .retry_handler import ItemAttempt, ItemStatus, RetryHandler
from .visited_ledger import VisitedLedger

__all__ = [
    'BatchArchiver',
    'FailureLedger',
    'FrontierStore',
    'ItemAttempt',
    'ItemStatus',
    'ProgressTracker',
    'RateLimiter',
    'RetryHandler',
    'VisitedLedger'
]
