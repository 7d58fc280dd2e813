"""
Durable frontier of discovered URLs awaiting processing.
"""

from pathlib import Path
from typing import Iterable, List, Optional

from ..utils import now_iso, unique
from .json_store import read_document, write_document


class FrontierStore:
    """Ordered, duplicate-free set of discovered URLs."""

    def __init__(self, state_dir: Path):
        self.path = Path(state_dir) / "frontier.json"
        self._urls: Optional[List[str]] = None

    def load(self) -> List[str]:
        """
        Load the persisted frontier.

        Returns:
            URLs in insertion order
        """
        if self._urls is None:
            data = read_document(self.path) or {}
            self._urls = unique(data.get('urls', []))
        return list(self._urls)

    def append(self, urls: Iterable[str]) -> int:
        """
        Merge new URLs into the frontier and persist the full set.
        Appending a URL that is already present is a no-op.

        Args:
            urls: Candidate URLs

        Returns:
            Number of URLs actually added
        """
        current = self.load()
        before = len(current)
        merged = unique(current + list(urls))
        self._save(merged)
        return len(merged) - before

    def remove(self, url: str):
        """Drop a single URL from the frontier."""
        current = self.load()
        if url in current:
            current.remove(url)
            self._save(current)

    def reset(self):
        """Empty the frontier."""
        self._save([])

    def _save(self, urls: List[str]):
        write_document(self.path, {
            'urls': urls,
            'total_count': len(urls),
            'last_updated': now_iso(),
        })
        self._urls = urls

    def __len__(self) -> int:
        return len(self.load())

    def __contains__(self, url: str) -> bool:
        return url in self.load()
