"""
Durable ledger of URLs that were successfully processed.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Set

from ..utils import now_iso
from .json_store import read_document, write_document


class VisitedLedger:
    """URL -> {visited_at, payload?}. Entries are only removed by reset()."""

    def __init__(self, state_dir: Path):
        self.path = Path(state_dir) / "visited.json"
        self._entries: Optional[Dict[str, Dict[str, Any]]] = None

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if self._entries is None:
            data = read_document(self.path) or {}
            entries = data.get('urls', {})
            # Older documents stored a bare list of URLs
            if isinstance(entries, list):
                entries = {url: {'visited_at': data.get('last_updated', '')} for url in entries}
            self._entries = entries
        return self._entries

    def contains(self, url: str) -> bool:
        return url in self._load()

    def load_all(self) -> Set[str]:
        """Return the set of visited URLs."""
        return set(self._load())

    def get(self, url: str) -> Optional[Dict[str, Any]]:
        return self._load().get(url)

    def mark_visited(self, url: str, payload: Optional[Dict[str, Any]] = None):
        """
        Durably record a URL as processed.

        Args:
            url: URL that was processed
            payload: Extracted record, stored for audit when given
        """
        entries = dict(self._load())
        entry: Dict[str, Any] = {'visited_at': now_iso()}
        if payload is not None:
            entry['payload'] = payload
        entries[url] = entry
        self._save(entries)

    def count(self) -> int:
        return len(self._load())

    def reset(self):
        """Forget every visited URL."""
        self._save({})

    def _save(self, entries: Dict[str, Dict[str, Any]]):
        write_document(self.path, {
            'urls': entries,
            'count': len(entries),
            'last_updated': now_iso(),
        })
        self._entries = entries
