"""
Scheduling module for the shift calendar, hour rollups and monthly schedules.
"""

from .models import (
    DaySlot, Division, Employee, HormoneUnit, MonthlySchedule, RollupScope,
    SchedulableKind, SchedulableRef, ShiftEntry, WeeklySchedule,
)
from .schedules import ScheduleBook
from .store import ShiftStore
from .time_math import RoundingPolicy, duration, month_grid_dates, monthly_estimate, week_dates

__all__ = [
    "DaySlot", "Division", "Employee", "HormoneUnit", "MonthlySchedule", "RollupScope", "ScheduleBook",
    "SchedulableKind", "SchedulableRef", "ShiftEntry", "ShiftStore", "WeeklySchedule",
    "RoundingPolicy", "duration", "month_grid_dates", "monthly_estimate", "week_dates",
]
