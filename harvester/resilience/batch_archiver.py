"""
Append-only archive of numbered batches of extracted records.
"""

import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models import Batch
from ..utils import now_iso
from .json_store import write_document

BATCH_FILE_RE = re.compile(r'^batch-(\d+)\.json$')


class BatchArchiver:
    """Buffers records in memory and flushes them as immutable numbered batches."""

    def __init__(self, batch_dir: Path, batch_size: int = 50):
        """
        Args:
            batch_dir: Directory holding batch-NNN.json documents
            batch_size: Buffered record count that triggers a flush
        """
        self.batch_dir = Path(batch_dir)
        self.batch_size = max(1, batch_size)
        self._buffer: List[Dict[str, Any]] = []
        self._next_sequence = self._highest_sequence() + 1

    def _highest_sequence(self) -> int:
        if not self.batch_dir.exists():
            return 0
        numbers = [
            int(m.group(1))
            for m in (BATCH_FILE_RE.match(p.name) for p in self.batch_dir.iterdir())
            if m
        ]
        return max(numbers, default=0)

    @property
    def pending(self) -> int:
        """Records buffered but not yet durable."""
        return len(self._buffer)

    @property
    def next_sequence(self) -> int:
        return self._next_sequence

    def add(self, record: Dict[str, Any]) -> Optional[Batch]:
        """
        Buffer a record, flushing when the buffer reaches batch_size.

        Returns:
            The flushed Batch, or None if still buffering
        """
        self._buffer.append(record)
        if len(self._buffer) >= self.batch_size:
            return self.flush()
        return None

    def flush(self) -> Optional[Batch]:
        """
        Write buffered records as the next batch.
        Durable once this returns; the buffer is cleared only after the write succeeds.

        Returns:
            The flushed Batch, or None when nothing was buffered
        """
        if not self._buffer:
            return None

        batch = Batch(
            sequence_number=self._next_sequence,
            created_at=now_iso(),
            records=tuple(self._buffer),
        )
        write_document(self.path_for(batch.sequence_number), batch.to_dict())
        self._buffer = []
        self._next_sequence += 1
        print(f"Batch {batch.sequence_number} saved: {len(batch.records)} items")
        return batch

    def path_for(self, sequence_number: int) -> Path:
        return self.batch_dir / f"batch-{sequence_number:03d}.json"
