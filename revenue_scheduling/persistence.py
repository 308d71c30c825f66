"""
Host-application collaborators: change callbacks and a durable JSON cache.

The engine does not own storage. It reports every change through
``EngineCallbacks`` and mirrors shifts and submitted projections into a
``JsonCache`` so that a reload restores them.
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

logger = logging.getLogger(__name__)


class EngineCallbacks:
    """
    Receives results from the engine. Subclass and override what the host needs;
    the defaults do nothing.
    """

    def on_update_scheduled_hours(self, entity_id: str, total_hours: float, kind: str = "employee") -> None:
        """``kind`` is ``employee`` or ``unit``; ids are only unique within a kind."""
        pass

    def on_update_schedule(self, shifts: List) -> None:
        pass

    def on_update_projection(self, projection) -> None:
        pass

    def on_update_monthly_schedule(self, schedule) -> None:
        pass


class RecordingCallbacks(EngineCallbacks):
    """Callbacks that keep every notification, for hosts that poll and for tests."""

    def __init__(self):
        self.scheduled_hours = {}
        self.schedules = []
        self.projections = []
        self.monthly_schedules = []

    def on_update_scheduled_hours(self, entity_id: str, total_hours: float, kind: str = "employee") -> None:
        self.scheduled_hours[(kind, entity_id)] = total_hours

    def hours_for(self, entity_id: str, kind: str = "employee") -> Optional[float]:
        """Last reported total for an entity, or None if never reported."""
        return self.scheduled_hours.get((kind, entity_id))

    def on_update_schedule(self, shifts: List) -> None:
        self.schedules.append(list(shifts))

    def on_update_projection(self, projection) -> None:
        self.projections.append(projection)

    def on_update_monthly_schedule(self, schedule) -> None:
        self.monthly_schedules.append(schedule)


class JsonCache:
    """
    A single JSON document on disk, written atomically.

    Writes go to a temporary sibling file which then replaces the target, so a
    crash mid-write never leaves a truncated cache behind.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self, default: Any = None) -> Any:
        """
        Read the cached document.

        Returns:
            The decoded JSON value, or ``default`` when the file is missing or empty
        """
        if not self.path.exists():
            return default
        raw = self.path.read_text(encoding="utf-8").strip()
        if not raw:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.error("Corrupt cache file %s", self.path)
            raise

    def save(self, data: Any) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self.path)
        except OSError:
            logger.error("Failed to write cache file %s", self.path, exc_info=True)
            raise

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
