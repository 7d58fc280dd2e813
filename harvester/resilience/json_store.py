"""
Whole-document JSON persistence.
Every save rewrites the full document through a temp file and an atomic rename.
"""

import json
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..errors import PersistenceError


def read_document(path: Path) -> Optional[Any]:
    """
    Load a JSON document from disk.

    Args:
        path: Document path

    Returns:
        Parsed JSON, or None if missing or corrupted
    """
    path = Path(path)
    if not path.exists():
        return None

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        print(f"⚠️  {path.name} corrupted: {e}")
        _backup_corrupted(path)
        return None


def _backup_corrupted(path: Path):
    """Copy a corrupted document aside so it is not silently overwritten."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = path.with_name(f"{path.stem}.corrupted.{timestamp}{path.suffix}")
    try:
        shutil.copy2(path, backup_path)
        print(f"Backed up corrupted document to {backup_path}")
    except OSError as e:
        print(f"Failed to backup corrupted document: {e}")


def write_document(path: Path, data: Any):
    """
    Atomically save a JSON document.

    Args:
        path: Destination path
        data: JSON-serializable document

    Raises:
        PersistenceError: if the document could not be made durable
    """
    path = Path(path)
    temp_file = path.with_name(f"{path.stem}.tmp{path.suffix}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(temp_file, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        # os.replace is atomic on POSIX and Windows
        os.replace(temp_file, path)
    except (OSError, TypeError, ValueError) as e:
        if temp_file.exists():
            try:
                temp_file.unlink()
            except OSError:
                pass
        raise PersistenceError(f"Failed to save {path}: {e}") from e
