"""
Progress checkpoint for resumable crawls.
Persists phase and counters to disk for recovery after interruptions.
"""

from dataclasses import replace
from pathlib import Path
from typing import Optional

from ..models import CrawlPhase, ProgressCheckpoint
from ..utils import now_iso
from .json_store import read_document, write_document


class ProgressTracker:
    """Manages the durable crawl checkpoint."""

    def __init__(self, state_dir: Path):
        """
        Initialize tracker with state directory.

        Args:
            state_dir: Directory to store state files
        """
        self.state_dir = Path(state_dir)
        self.state_file = self.state_dir / "progress.json"
        self._state: Optional[ProgressCheckpoint] = None

    def load(self) -> ProgressCheckpoint:
        """
        Load the checkpoint from disk.

        Returns:
            Persisted checkpoint, or a fresh "initializing" record if absent
        """
        data = read_document(self.state_file)
        if data and data.get('phase'):
            try:
                self._state = ProgressCheckpoint.from_dict(data)
                return self._state
            except (ValueError, TypeError) as e:
                print(f"⚠️  Progress checkpoint unreadable ({e}), starting from defaults")

        now = now_iso()
        self._state = ProgressCheckpoint(started_at=now, updated_at=now)
        return self._state

    @property
    def state(self) -> ProgressCheckpoint:
        if self._state is None:
            return self.load()
        return self._state

    def save(self, **updates) -> ProgressCheckpoint:
        """
        Merge a partial update into the checkpoint and persist it.

        Args:
            **updates: ProgressCheckpoint fields to overwrite

        Returns:
            The saved checkpoint
        """
        phase = updates.get('phase')
        if phase is not None and not isinstance(phase, CrawlPhase):
            updates['phase'] = CrawlPhase(phase)
        state = replace(self.state, **updates)
        state.updated_at = now_iso()
        if not state.started_at:
            state.started_at = state.updated_at

        write_document(self.state_file, state.to_dict())
        self._state = state
        return state

    def reset(self) -> ProgressCheckpoint:
        """Replace the checkpoint with a fresh "initializing" record."""
        self._state = None
        now = now_iso()
        state = ProgressCheckpoint(started_at=now, updated_at=now)
        write_document(self.state_file, state.to_dict())
        self._state = state
        return state

    def get_stats(self) -> dict:
        """
        Get current progress statistics.

        Returns:
            Dict with progress stats
        """
        state = self.state
        total = state.total_collected
        done = state.total_processed
        return {
            'phase': state.phase.value,
            'current_page': state.current_page,
            'collected': total,
            'processed': done,
            'failed': state.total_failed,
            'percent': (done / total * 100) if total > 0 else 0.0,
        }
