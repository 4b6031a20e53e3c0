"""
Device-local key-value state.

Backs the seen-report set and notification preferences. The JSON file store
writes atomically (unique temp file + os.replace) so a crash mid-write never
leaves a truncated state file behind. Writes block; async callers run them
with asyncio.to_thread.
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class StateStore(ABC):
    """Key-value persistence for per-device state."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Persist a value. May raise OSError."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key. Missing keys are ignored. May raise OSError."""
        pass


class MemoryStateStore(StateStore):
    """Non-durable store for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStateStore(StateStore):
    """
    Key-value store persisted as a single JSON object.

    A missing or unreadable file loads as empty state. Every write rewrites
    the whole file.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        try:
            if not self.path.exists():
                return {}
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read local state {self.path}: {e}; starting empty")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Local state {self.path} is not an object; starting empty")
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._write()

    def remove(self, key: str) -> None:
        with self._lock:
            if key not in self._data:
                return
            del self._data[key]
            self._write()

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        data = json.dumps(self._data, ensure_ascii=False, indent=2) + "\n"

        # Temp name must be unique: two processes may share a state directory
        fd, tmp_name = tempfile.mkstemp(prefix=self.path.name + ".", suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
