"""
Persistence adapters for the replica.

An adapter stores and returns the whole replica as one JSON-compatible
dictionary.  ``JSONFileStorage`` writes atomically (temporary file and
rename) so a crash never leaves a half-written replica behind.
"""

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class MemoryStorage:
    """Keeps the replica in memory (tests, throwaway sessions)."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self.data = copy.deepcopy(initial) if initial is not None else None
        self.saves = 0

    def load(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self.data) if self.data is not None else None

    def save(self, data: Dict[str, Any]) -> None:
        self.data = copy.deepcopy(data)
        self.saves += 1


class JSONFileStorage:
    """Stores the replica as a JSON document on disk."""

    def __init__(self, path: str) -> None:
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored replica, or ``None`` if there is none yet."""
        if not self.path.exists():
            return None
        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".replica-", suffix=".json", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug("Replica saved to %s", self.path)
