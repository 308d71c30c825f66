"""
Shift store for the scheduling calendar.

Implements the calendar rules:
1. At most one shift per (schedulable, date); saving an existing key replaces it
2. Scheduled hours are always recomputed from start/end at write time
3. Every upsert/remove reports the entity's new hour total and the full shift list
"""

import logging
import uuid
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd

from ..config import ROLLUP_SCOPE
from ..exceptions import Conflict, InvalidRange, ValidationError
from ..periods import Period
from ..persistence import EngineCallbacks, JsonCache
from .models import RollupScope, SchedulableRef, ShiftEntry
from .time_math import RoundingPolicy, duration

logger = logging.getLogger(__name__)

ShiftKey = Tuple[SchedulableRef, date]


def as_date(value: Union[date, str]) -> date:
    """Accept a ``date`` or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD")


def check_version(current: Optional[int], expected: Optional[int], what: str) -> None:
    """
    Compare a caller's expected version against the stored one.

    ``expected=None`` keeps last-write-wins; ``expected=0`` means "no record yet".
    """
    if expected is None:
        return
    if (current or 0) != expected:
        raise Conflict(f"{what} is at version {current or 0}, expected {expected}")


class ShiftStore:
    """
    Keyed store of calendar shifts with per-entity hour rollups.

    The store holds every shift in memory, mirrors the full list into an
    optional JSON cache after each change, and notifies the host through
    ``EngineCallbacks``.
    """

    def __init__(self,
                 callbacks: Optional[EngineCallbacks] = None,
                 cache: Optional[JsonCache] = None,
                 rollup_scope: Union[RollupScope, str] = ROLLUP_SCOPE):
        """
        Initialize the store.

        Args:
            callbacks: Receiver for hour totals and shift-list updates
            cache: Durable cache; existing contents are loaded immediately
            rollup_scope: Default scope for rollups and hour notifications
        """
        self.callbacks = callbacks or EngineCallbacks()
        self.cache = cache
        self.rollup_scope = RollupScope(rollup_scope)
        self.reset_state()
        if cache is not None:
            self.load_state(cache.load(default=[]))

    def reset_state(self) -> None:
        self._shifts: Dict[ShiftKey, ShiftEntry] = {}

    def load_state(self, state: List[Dict]) -> None:
        """
        Load shifts previously produced by ``get_state``.

        Args:
            state: List of shift dictionaries
        """
        for item in state:
            entry = ShiftEntry.from_dict(item)
            self._shifts[entry.key] = entry

    def get_state(self) -> List[Dict]:
        """Get current shifts for persistence."""
        return [entry.to_dict() for entry in self.entries()]

    def get(self, schedulable: SchedulableRef, day: Union[date, str]) -> Optional[ShiftEntry]:
        return self._shifts.get((schedulable, as_date(day)))

    def entries(self, schedulable: Optional[SchedulableRef] = None) -> List[ShiftEntry]:
        """All shifts, optionally for one schedulable, ordered by date."""
        shifts = [s for s in self._shifts.values()
                  if schedulable is None or s.schedulable == schedulable]
        return sorted(shifts, key=lambda s: (s.date, s.schedulable.kind.value, s.schedulable.id))

    def upsert(self,
               schedulable: SchedulableRef,
               day: Union[date, str],
               start_time: str,
               end_time: str,
               location: str,
               division_id: str,
               actor_id: str,
               expected_version: Optional[int] = None) -> ShiftEntry:
        """
        Save a shift, replacing any existing shift for the same key.

        Args:
            schedulable: Employee or unit being scheduled
            day: Calendar day of the shift
            start_time: ``HH:MM`` start
            end_time: ``HH:MM`` end
            location: Location tag for the shift
            division_id: Division the shift counts toward
            actor_id: Who made the change
            expected_version: Optional stored version the caller last saw

        Returns:
            The newly stored ShiftEntry

        Raises:
            ValidationError: location or division missing
            InvalidRange: the shift would be zero length or negative
            Conflict: ``expected_version`` does not match
        """
        day = as_date(day)
        if not location:
            raise ValidationError("A location is required for a shift")
        if not division_id:
            raise ValidationError("A division is required for a shift")

        hours = duration(start_time, end_time, RoundingPolicy.CALENDAR)
        if hours <= 0:
            logger.warning("Rejected shift %s-%s for %s on %s", start_time, end_time,
                           schedulable.id, day, extra={"entity_id": schedulable.id})
            raise InvalidRange(f"End time {end_time} must be after start time {start_time}")

        key = (schedulable, day)
        existing = self._shifts.get(key)
        check_version(existing.version if existing else None, expected_version,
                      f"Shift for {schedulable.id} on {day}")

        entry = ShiftEntry(
            id=f"shift-{uuid.uuid4().hex[:12]}",
            schedulable=schedulable,
            date=day,
            start_time=start_time,
            end_time=end_time,
            scheduled_hours=hours,
            location=location,
            division_id=division_id,
            created_by=actor_id,
            created_at=datetime.now(),
            version=existing.version + 1 if existing else 1
        )
        self._shifts[key] = entry
        logger.info("Saved %.2fh shift for %s on %s", hours, schedulable.id, day,
                    extra={"entity_id": schedulable.id, "actor_id": actor_id})

        self._changed(schedulable, day)
        return entry

    def remove(self,
               schedulable: SchedulableRef,
               day: Union[date, str],
               expected_version: Optional[int] = None) -> Optional[ShiftEntry]:
        """
        Delete the shift for a key. Missing keys are a no-op.

        Returns:
            The removed entry, or None if there was nothing to remove
        """
        day = as_date(day)
        existing = self._shifts.get((schedulable, day))
        if existing is not None:
            check_version(existing.version, expected_version,
                          f"Shift for {schedulable.id} on {day}")
            del self._shifts[(schedulable, day)]
            logger.info("Removed shift for %s on %s", schedulable.id, day,
                        extra={"entity_id": schedulable.id})

        self._changed(schedulable, day)
        return existing

    def rollup(self,
               schedulable: SchedulableRef,
               scope: Optional[Union[RollupScope, str]] = None,
               period: Optional[Period] = None) -> float:
        """
        Sum of scheduled hours for one schedulable.

        Args:
            schedulable: Entity to total
            scope: ``ALL`` sums every shift ever entered, ``PERIOD`` one month only
            period: Month to total; required for ``PERIOD``

        Returns:
            Total scheduled hours
        """
        scope = RollupScope(scope) if scope is not None else self.rollup_scope
        if scope == RollupScope.PERIOD and period is None:
            raise ValidationError("A period is required for a period-scoped rollup")
        return sum(
            s.scheduled_hours for s in self._shifts.values()
            if s.schedulable == schedulable
            and (scope == RollupScope.ALL or period.contains(s.date))
        )

    def rollups(self,
                scope: Optional[Union[RollupScope, str]] = None,
                period: Optional[Period] = None) -> Dict[SchedulableRef, float]:
        """Hour totals for every schedulable that has at least one shift."""
        refs = {s.schedulable for s in self._shifts.values()}
        return {ref: self.rollup(ref, scope, period) for ref in refs}

    def to_dataframe(self) -> pd.DataFrame:
        """Convert shifts to pandas DataFrame."""
        columns = ['id', 'schedulable_kind', 'schedulable_id', 'date', 'start_time', 'end_time',
                   'scheduled_hours', 'location', 'division_id', 'created_by', 'created_at',
                   'is_locked', 'version']
        return pd.DataFrame([s.to_dict() for s in self.entries()], columns=columns)

    def _changed(self, schedulable: SchedulableRef, day: date) -> None:
        """Report the new totals and persist after a mutation."""
        period = Period.of(day)
        total = self.rollup(schedulable, self.rollup_scope, period)
        self.callbacks.on_update_scheduled_hours(schedulable.id, total, kind=schedulable.kind.value)
        self.callbacks.on_update_schedule(self.entries())
        if self.cache is not None:
            self.cache.save(self.get_state())
