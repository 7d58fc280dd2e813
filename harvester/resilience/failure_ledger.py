"""
Durable ledger of failed extraction attempts.
"""

from pathlib import Path
from typing import Dict, Optional, Set

from ..models import FailureRecord
from ..utils import now_iso
from .json_store import read_document, write_document


class FailureLedger:
    """URL -> FailureRecord. Attempts accumulate across runs and are never auto-cleared."""

    def __init__(self, state_dir: Path):
        self.path = Path(state_dir) / "failed.json"
        self._records: Optional[Dict[str, FailureRecord]] = None

    def _load(self) -> Dict[str, FailureRecord]:
        if self._records is None:
            data = read_document(self.path) or {}
            records = {}
            for url, entry in (data.get('urls') or {}).items():
                records[url] = FailureRecord(
                    url=url,
                    last_error=entry.get('error', ''),
                    attempt_count=int(entry.get('attempts', 0)),
                    last_attempt=entry.get('timestamp', ''),
                )
            self._records = records
        return self._records

    def mark_failed(self, url: str, error) -> FailureRecord:
        """
        Record one failed attempt for a URL.

        Args:
            url: URL whose attempt failed
            error: Exception or message describing the failure

        Returns:
            Updated FailureRecord
        """
        records = dict(self._load())
        previous = records.get(url)
        record = FailureRecord(
            url=url,
            last_error=str(error) or type(error).__name__,
            attempt_count=(previous.attempt_count if previous else 0) + 1,
            last_attempt=now_iso(),
        )
        records[url] = record
        self._save(records)
        return record

    def get(self, url: str) -> Optional[FailureRecord]:
        return self._load().get(url)

    def load_all(self) -> Dict[str, FailureRecord]:
        return dict(self._load())

    def count(self) -> int:
        """Number of distinct failed URLs."""
        return len(self._load())

    def exhausted(self, max_retries: int) -> Set[str]:
        """URLs whose recorded attempts reached ``max_retries``."""
        return {url for url, r in self._load().items() if r.attempt_count >= max_retries}

    def reset(self):
        self._save({})

    def _save(self, records: Dict[str, FailureRecord]):
        write_document(self.path, {
            'urls': {
                url: {
                    'error': r.last_error,
                    'attempts': r.attempt_count,
                    'timestamp': r.last_attempt,
                }
                for url, r in records.items()
            },
            'count': len(records),
            'last_updated': now_iso(),
        })
        self._records = records
