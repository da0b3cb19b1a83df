"""
storage.py
──────────
Simple JSON file-based persistence layer.

Each collection lives in its own file and is always read and replaced whole:
there is no per-record API, callers read-modify-write the full list.
Writes go to a temp file first and are moved into place with os.replace().
"""

import os
import json
import threading
from pathlib import Path
from typing import Dict, Any, List, Union

from errors import PersistenceError

ALARMS_FILE = "alarms.json"
SOUNDS_FILE = "sounds.json"


class JsonStorage:
    """Whole-collection store for alarms and custom sounds."""

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)
        self._lock    = threading.Lock()

    # ── Alarm storage ─────────────────────────────────────────────────────────

    def load_alarms(self) -> List[Dict[str, Any]]:
        with self._lock:
            data = self._read(self.data_dir / ALARMS_FILE)
            return list(data.get("alarms", []))

    def save_alarms(self, alarms: List[Dict[str, Any]]) -> None:
        with self._lock:
            self._write(self.data_dir / ALARMS_FILE, {"alarms": alarms})

    # ── Sound storage ─────────────────────────────────────────────────────────

    def load_sounds(self) -> List[Dict[str, Any]]:
        with self._lock:
            data = self._read(self.data_dir / SOUNDS_FILE)
            return list(data.get("sounds", []))

    def save_sounds(self, sounds: List[Dict[str, Any]]) -> None:
        with self._lock:
            self._write(self.data_dir / SOUNDS_FILE, {"sounds": sounds})

    # ── Internal ──────────────────────────────────────────────────────────────

    @staticmethod
    def _read(path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Failed to read {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceError(f"Unexpected payload in {path}")
        return data

    @staticmethod
    def _write(path: Path, data: Dict[str, Any]) -> None:
        """Atomic write: write to a tmp file then rename (os.replace)."""
        tmp = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Failed to write {path}: {exc}") from exc
