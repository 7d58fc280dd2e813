"""
Append-only CSV output sink.
The header is written once; each successful extraction appends one row.
"""

import csv
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import PersistenceError

# (CSV header, record key)
Column = Tuple[str, str]


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, tuple)):
        return "; ".join(str(v) for v in value)
    return str(value)


class CsvSink:
    """Writes extracted records to a single CSV file, one row per record."""

    def __init__(self, path: Path, columns: Sequence[Column]):
        self.path = Path(path)
        self.columns: List[Column] = list(columns)
        self.rows_written = 0

    @property
    def header(self) -> List[str]:
        return [name for name, _ in self.columns]

    def to_row(self, record: Dict[str, Any]) -> List[str]:
        return [format_cell(record.get(key)) for _, key in self.columns]

    def append(self, record: Dict[str, Any]):
        """
        Append one record, writing the header first if the file is new.

        Raises:
            PersistenceError: if the row could not be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            needs_header = not self.path.exists() or self.path.stat().st_size == 0
            with open(self.path, 'a', newline='', encoding='utf-8') as f:
                writer = csv.writer(f)
                if needs_header:
                    writer.writerow(self.header)
                writer.writerow(self.to_row(record))
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise PersistenceError(f"Failed to append to {self.path}: {e}") from e
        self.rows_written += 1

    def rotate(self) -> Optional[Path]:
        """
        Move an existing output file aside with a timestamp suffix.

        Returns:
            New path of the rotated file, or None if there was nothing to rotate
        """
        if not self.path.exists():
            return None
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        rotated = self.path.with_name(f"{self.path.stem}-{timestamp}{self.path.suffix}")
        try:
            os.replace(self.path, rotated)
        except OSError as e:
            raise PersistenceError(f"Failed to rotate {self.path}: {e}") from e
        print(f"Previous output moved to {rotated}")
        return rotated
