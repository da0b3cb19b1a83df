"""
sound_catalog.py
────────────────
Alarm sounds: a fixed catalogue of system sounds plus user-added custom
sounds persisted through the JSON store.

Only the catalogue lives here; audio files and playback belong to the client.
"""

import logging
import threading
from typing import List, Optional

from models import DEFAULT_SOUND_ID, Sound
from storage import JsonStorage

logger = logging.getLogger(__name__)

# ── System sounds ─────────────────────────────────────────────────────────────
SYSTEM_SOUNDS = (
    Sound(id=DEFAULT_SOUND_ID, name="Default", uri="system://default"),
    Sound(id="classic",        name="Classic", uri="system://classic"),
    Sound(id="gentle",         name="Gentle",  uri="system://gentle"),
    Sound(id="urgent",         name="Urgent",  uri="system://urgent"),
    Sound(id="melody",         name="Melody",  uri="system://melody"),
    Sound(id="chime",          name="Chime",   uri="system://chime"),
)


class SoundCatalog:
    def __init__(self, storage: JsonStorage):
        self._storage = storage
        self._lock    = threading.Lock()

    def system_sounds(self) -> List[Sound]:
        return [s.model_copy() for s in SYSTEM_SOUNDS]

    def custom_sounds(self) -> List[Sound]:
        return [Sound(**row, is_custom=True) for row in self._rows()]

    def all_sounds(self) -> List[Sound]:
        """System sounds first, then custom sounds in the order they were added."""
        return self.system_sounds() + self.custom_sounds()

    def get_sound(self, sound_id: str) -> Optional[Sound]:
        for sound in self.all_sounds():
            if sound.id == sound_id:
                return sound
        return None

    def add_custom_sound(self, name: str, uri: str) -> Sound:
        sound = Sound(name=name, uri=uri, is_custom=True)
        with self._lock:
            rows = self._rows()
            rows.append(sound.model_dump(exclude={"is_custom"}))
            self._storage.save_sounds(rows)
        logger.info("Added custom sound %s (%s)", sound.id, name)
        return sound

    def delete_custom_sound(self, sound_id: str) -> bool:
        """Remove a custom sound. System sounds cannot be deleted."""
        with self._lock:
            rows = self._rows()
            remaining = [row for row in rows if row.get("id") != sound_id]
            if len(remaining) == len(rows):
                return False
            self._storage.save_sounds(remaining)
        logger.info("Deleted custom sound %s", sound_id)
        return True

    def _rows(self) -> List[dict]:
        rows = []
        for row in self._storage.load_sounds():
            if not isinstance(row, dict) or not all(row.get(k) for k in ("id", "name", "uri")):
                logger.warning("Skipping malformed custom sound entry: %r", row)
                continue
            rows.append({k: row[k] for k in ("id", "name", "uri")})
        return rows
