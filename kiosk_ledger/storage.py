"""Key-value persistence backed by a single JSON file."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Optional
import json
import logging


logger = logging.getLogger(__name__)


@dataclass
class JsonFileStore:
    """Stores JSON-serializable blobs by key in one file.

    Writes go through a temporary file that replaces the original, so a crash
    mid-write leaves the previous contents intact.
    """

    path: Path
    _lock: RLock = field(default_factory=RLock, init=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read_locked().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            contents = self._read_locked()
            contents[key] = value
            self._write_locked(contents)

    def _read_locked(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        raw = self.path.read_text(encoding="utf-8") or "{}"
        try:
            contents: Optional[Any] = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable store file %s", self.path)
            return {}
        if not isinstance(contents, dict):
            return {}
        return contents

    def _write_locked(self, contents: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")
        temp_path.write_text(json.dumps(contents, indent=2, ensure_ascii=False), encoding="utf-8")
        temp_path.replace(self.path)


__all__ = ["JsonFileStore"]
