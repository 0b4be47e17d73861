"""
File-backed persistence for the observation delivery queue.

The whole queue is one JSON array, rewritten with write-to-temp-then-rename
on every mutation so a crash never leaves a truncated document behind.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from ..models import QueuedObservation

QUEUE_FILENAME = "observation-queue.json"

_QUEUE_ADAPTER = TypeAdapter(list[QueuedObservation])


def atomic_write(path: Path, data: bytes, mode: Optional[int] = None) -> None:
    """Replace path with data atomically (temp file in the same dir + os.replace)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


class QueueStore:
    """Loads and saves the pending observation queue.

    Example:
        store = QueueStore(settings.data_dir / QUEUE_FILENAME)
        queue = store.load()
        queue.append(record)
        store.save(queue)
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    @classmethod
    def in_dir(cls, data_dir: Path | str) -> "QueueStore":
        return cls(Path(data_dir) / QUEUE_FILENAME)

    def load(self) -> list[QueuedObservation]:
        """Read the queue; a missing or corrupt document yields an empty queue."""
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning(f"Failed to read observation queue {self.path}: {e}")
            return []

        try:
            queue = _QUEUE_ADAPTER.validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Failed to decode observation queue {self.path}: {e}")
            return []

        logger.debug(f"Loaded {len(queue)} pending observation(s) from {self.path}")
        return queue

    def save(self, queue: Sequence[QueuedObservation]) -> bool:
        """Persist the full queue. Returns False (and logs) on disk errors."""
        try:
            data = _QUEUE_ADAPTER.dump_json(list(queue), by_alias=True)
            atomic_write(self.path, data)
        except OSError as e:
            logger.error(f"Failed to persist observation queue {self.path}: {e}")
            return False
        return True

    def clear(self) -> bool:
        return self.save([])
