"""
Data models for the resumable harvester.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional


class CrawlPhase(str, Enum):
    INITIALIZING = "initializing"
    COLLECTING_URLS = "collecting_urls"
    EXTRACTING_DATA = "extracting_data"
    INTERRUPTED = "interrupted"
    COMPLETED = "completed"

    @property
    def is_active(self) -> bool:
        return self in (CrawlPhase.INITIALIZING, CrawlPhase.COLLECTING_URLS, CrawlPhase.EXTRACTING_DATA)


@dataclass
class ProgressCheckpoint:
    """Persistent singleton recording crawl phase and counters."""
    phase: CrawlPhase = CrawlPhase.INITIALIZING
    current_page: int = 0
    total_pages: int = 0
    total_collected: int = 0
    total_processed: int = 0
    total_failed: int = 0
    started_at: str = ""
    updated_at: str = ""
    interrupted_phase: Optional[CrawlPhase] = None
    last_processed_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['phase'] = self.phase.value
        data['interrupted_phase'] = self.interrupted_phase.value if self.interrupted_phase else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressCheckpoint":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values['phase'] = CrawlPhase(values.get('phase') or CrawlPhase.INITIALIZING.value)
        if values.get('interrupted_phase'):
            values['interrupted_phase'] = CrawlPhase(values['interrupted_phase'])
        return cls(**values)


@dataclass
class FailureRecord:
    """Record of a URL whose extraction failed."""
    url: str
    last_error: str
    attempt_count: int
    last_attempt: str


@dataclass(frozen=True)
class Batch:
    """Immutable, numbered snapshot of extracted records."""
    sequence_number: int
    created_at: str
    records: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'batch_number': self.sequence_number,
            'count': len(self.records),
            'created_at': self.created_at,
            'items': list(self.records),
        }


@dataclass
class CrawlResult:
    """Result of a harvester run."""
    success: bool
    target: str
    phase: str
    started_at: str
    completed_at: str
    total_collected: int
    total_processed: int
    total_failed: int
    total_skipped: int = 0
    failed_urls: List[dict] = field(default_factory=list)
    duration_seconds: float = 0.0
    items_per_hour: float = 0.0
