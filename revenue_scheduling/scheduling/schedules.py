"""
Monthly schedule book.

Keeps one MonthlySchedule per (employee, month, year). Saving an existing key
replaces it; fields left out of a save keep their stored (or default) values.
"""

import logging
from dataclasses import replace
from datetime import datetime
from numbers import Number
from typing import Callable, Dict, List, Optional, Tuple

import pandas as pd

from ..exceptions import ValidationError
from ..periods import Period
from ..persistence import EngineCallbacks, JsonCache
from .models import MonthlySchedule, WeeklySchedule
from .store import check_version

logger = logging.getLogger(__name__)

ScheduleKey = Tuple[str, Period]


class ScheduleBook:
    """Keyed store of monthly schedules with callbacks and an optional JSON cache."""

    def __init__(self,
                 callbacks: Optional[EngineCallbacks] = None,
                 cache: Optional[JsonCache] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.callbacks = callbacks or EngineCallbacks()
        self.cache = cache
        self.clock = clock
        self.reset_state()
        if cache is not None:
            self.load_state(cache.load(default=[]))

    def reset_state(self) -> None:
        self._schedules: Dict[ScheduleKey, MonthlySchedule] = {}

    def load_state(self, state: List[Dict]) -> None:
        for item in state:
            schedule = MonthlySchedule.from_dict(item)
            self._schedules[schedule.key] = schedule

    def get_state(self) -> List[Dict]:
        return [s.to_dict() for s in self._schedules.values()]

    def get(self, employee_id: str, period: Period) -> Optional[MonthlySchedule]:
        return self._schedules.get((employee_id, period))

    def save(self,
             employee_id: str,
             period: Period,
             actor_id: str,
             weekly_schedule: Optional[WeeklySchedule] = None,
             expected_version: Optional[int] = None,
             **fields) -> MonthlySchedule:
        """
        Create or replace the schedule for an employee and month.

        Args:
            employee_id: Employee being scheduled
            period: Month of the schedule
            actor_id: Who made the change
            weekly_schedule: New recurring week; the stored one (or the default week) otherwise
            expected_version: Optional stored version the caller last saw
            **fields: Any of ``MonthlySchedule.NUMBER_FIELDS``

        Returns:
            The stored MonthlySchedule

        Raises:
            ValidationError: unknown field, non-numeric or negative value
            Conflict: ``expected_version`` does not match
        """
        self._validate(fields)

        stored = self.get(employee_id, period)
        check_version(stored.version if stored else None, expected_version,
                      f"Schedule for {employee_id} {period}")

        current = stored or MonthlySchedule(employee_id, period)
        schedule = replace(
            current,
            weekly_schedule=weekly_schedule or current.weekly_schedule,
            updated_by=actor_id,
            updated_at=self.clock(),
            version=(stored.version if stored else 0) + 1,
            **fields
        )
        self._schedules[schedule.key] = schedule
        logger.info("Saved schedule for %s %s: %dh, estimated revenue %.2f", employee_id, period,
                    schedule.scheduled_hours, schedule.estimated_revenue,
                    extra={"entity_id": employee_id, "period": str(period), "actor_id": actor_id})

        self.callbacks.on_update_monthly_schedule(schedule)
        if self.cache is not None:
            self.cache.save(self.get_state())
        return schedule

    def history(self, employee_id: str) -> List[MonthlySchedule]:
        """Every saved schedule for an employee, newest month first."""
        found = [s for s in self._schedules.values() if s.employee_id == employee_id]
        return sorted(found, key=lambda s: (s.period.year, s.period.month), reverse=True)

    def to_dataframe(self) -> pd.DataFrame:
        """Flatten saved schedules, without the weekly breakdown, into a DataFrame."""
        columns = ['employee_id', 'month', 'year', 'weekly_hours', 'scheduled_hours',
                   'service_sales_per_hour', 'productivity_goal', 'estimated_revenue',
                   'actual_hours', 'booked_hours', 'actual_booked_hours',
                   'calculated_productivity', 'updated_by', 'version']
        rows = sorted(self._schedules.values(), key=lambda s: (s.employee_id, s.period.key()))
        return pd.DataFrame([s.to_dict() for s in rows], columns=columns)

    @staticmethod
    def _validate(fields: Dict) -> None:
        unknown = set(fields) - set(MonthlySchedule.NUMBER_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown schedule fields: {sorted(unknown)}")
        for name, value in fields.items():
            if value is None and name == 'actual_booked_hours':
                continue
            if isinstance(value, bool) or not isinstance(value, Number):
                raise ValidationError(f"{name} must be a number")
            if value < 0:
                raise ValidationError(f"{name} cannot be negative")
