"""
Data models for the shift calendar and monthly schedules.
"""

from typing import List, Dict, Optional
from datetime import date, datetime
from dataclasses import dataclass, field
from enum import Enum

from ..config import (
    DEFAULT_PRODUCTIVITY, DEFAULT_SERVICE_SALES_PER_HOUR, DEFAULT_WEEK, UNIT_DIVISION_ID,
)
from ..exceptions import ValidationError
from ..periods import Period
from .time_math import RoundingPolicy, duration, monthly_estimate, round_half_up


class SchedulableKind(str, Enum):
    EMPLOYEE = "employee"
    UNIT = "unit"


class RollupScope(str, Enum):
    """Which shifts an hour rollup sums over."""
    ALL = "all"
    PERIOD = "period"


@dataclass(frozen=True)
class SchedulableRef:
    """Identifies an employee or a unit that can be assigned shifts."""

    kind: SchedulableKind
    id: str

    @classmethod
    def employee(cls, employee_id: str) -> 'SchedulableRef':
        return cls(SchedulableKind.EMPLOYEE, employee_id)

    @classmethod
    def unit(cls, unit_id: str) -> 'SchedulableRef':
        return cls(SchedulableKind.UNIT, unit_id)

    @property
    def is_unit(self) -> bool:
        return self.kind == SchedulableKind.UNIT


@dataclass
class Division:
    id: str
    name: str
    color: str = "#6b7280"

    @classmethod
    def from_dict(cls, data: Dict) -> 'Division':
        return cls(id=data['id'], name=data['name'], color=data.get('color', '#6b7280'))


@dataclass
class Employee:
    """Read-only employee reference data supplied by the host application."""

    id: str
    name: str
    division_id: str
    locations: List[str] = field(default_factory=list)
    category: str = ""
    experience_level: str = ""
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: Dict) -> 'Employee':
        """Create Employee instance from dictionary."""
        return cls(
            id=data['id'],
            name=data.get('name', data['id']),
            division_id=data['division_id'],
            locations=list(data.get('locations', [])),
            category=data.get('category', ''),
            experience_level=data.get('experience_level', ''),
            is_active=data.get('is_active', True)
        )

    @property
    def ref(self) -> SchedulableRef:
        return SchedulableRef.employee(self.id)

    @property
    def schedulable_division(self) -> str:
        return self.division_id


@dataclass
class HormoneUnit:
    """A care unit scheduled as a single entity, always in the hormone division."""

    unit_id: str
    location: str
    unit_name: str = ""
    np_ids: List[str] = field(default_factory=list)
    specialist_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict) -> 'HormoneUnit':
        return cls(
            unit_id=data['unit_id'],
            location=data['location'],
            unit_name=data.get('unit_name', ''),
            np_ids=list(data.get('np_ids', [])),
            specialist_ids=list(data.get('specialist_ids', []))
        )

    @property
    def ref(self) -> SchedulableRef:
        return SchedulableRef.unit(self.unit_id)

    @property
    def locations(self) -> List[str]:
        return [self.location]

    @property
    def schedulable_division(self) -> str:
        return UNIT_DIVISION_ID


@dataclass
class ShiftEntry:
    """A single day's start/end assignment for one schedulable."""

    id: str
    schedulable: SchedulableRef
    date: date
    start_time: str
    end_time: str
    scheduled_hours: float
    location: str
    division_id: str
    created_by: str
    created_at: datetime
    is_locked: bool = False
    version: int = 1

    @property
    def key(self):
        return (self.schedulable, self.date)

    def to_dict(self) -> Dict:
        """Convert to dictionary representation."""
        return {
            'id': self.id,
            'schedulable_kind': self.schedulable.kind.value,
            'schedulable_id': self.schedulable.id,
            'date': self.date.isoformat(),
            'start_time': self.start_time,
            'end_time': self.end_time,
            'scheduled_hours': self.scheduled_hours,
            'location': self.location,
            'division_id': self.division_id,
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat(),
            'is_locked': self.is_locked,
            'version': self.version
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ShiftEntry':
        """Create ShiftEntry instance from dictionary."""
        return cls(
            id=data['id'],
            schedulable=SchedulableRef(SchedulableKind(data['schedulable_kind']), data['schedulable_id']),
            date=date.fromisoformat(data['date']),
            start_time=data['start_time'],
            end_time=data['end_time'],
            scheduled_hours=data['scheduled_hours'],
            location=data['location'],
            division_id=data['division_id'],
            created_by=data['created_by'],
            created_at=datetime.fromisoformat(data['created_at']),
            is_locked=data.get('is_locked', False),
            version=data.get('version', 1)
        )


WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']


@dataclass
class DaySlot:
    """One weekday of a recurring schedule. Empty times mean a day off."""

    start: str = ""
    end: str = ""

    @property
    def hours(self) -> float:
        if not self.start or not self.end:
            return 0.0
        return duration(self.start, self.end, RoundingPolicy.HALF_HOUR)


@dataclass
class WeeklySchedule:
    """A recurring Monday-to-Sunday schedule used for monthly hour estimates."""

    days: Dict[str, DaySlot] = field(default_factory=lambda: {d: DaySlot() for d in WEEKDAYS})

    @classmethod
    def from_dict(cls, data: Dict[str, Dict]) -> 'WeeklySchedule':
        schedule = cls()
        for day, slot in data.items():
            if day not in WEEKDAYS:
                raise ValidationError(f"Unknown weekday: {day}")
            schedule.days[day] = DaySlot(start=slot.get('start', ''), end=slot.get('end', ''))
        return schedule

    @classmethod
    def default_week(cls) -> 'WeeklySchedule':
        """Weekdays 09:00-17:00 and Saturday 10:00-16:00."""
        return cls.from_dict(DEFAULT_WEEK)

    def set_day(self, day: str, start: str, end: str) -> None:
        if day not in WEEKDAYS:
            raise ValidationError(f"Unknown weekday: {day}")
        self.days[day] = DaySlot(start=start, end=end)

    def weekly_hours(self) -> float:
        return sum(slot.hours for slot in self.days.values())

    def monthly_hours(self) -> int:
        return monthly_estimate(self.weekly_hours())

    def to_dict(self) -> Dict:
        return {
            day: {'start': slot.start, 'end': slot.end, 'hours': slot.hours}
            for day, slot in self.days.items()
        }


@dataclass
class MonthlySchedule:
    """
    One employee's planned and recorded hours for a month.

    Scheduled hours and estimated revenue always follow the weekly schedule;
    productivity is calculated from the booked hours once they are recorded.
    """

    employee_id: str
    period: Period
    weekly_schedule: WeeklySchedule = field(default_factory=WeeklySchedule.default_week)
    service_sales_per_hour: float = DEFAULT_SERVICE_SALES_PER_HOUR
    productivity_goal: float = DEFAULT_PRODUCTIVITY
    actual_hours: float = 0
    booked_hours: float = 0
    actual_booked_hours: Optional[float] = None
    updated_by: str = ""
    updated_at: Optional[datetime] = None
    version: int = 0

    NUMBER_FIELDS = ('service_sales_per_hour', 'productivity_goal', 'actual_hours',
                     'booked_hours', 'actual_booked_hours')

    @property
    def key(self):
        return (self.employee_id, self.period)

    @property
    def scheduled_hours(self) -> int:
        return self.weekly_schedule.monthly_hours()

    @property
    def estimated_revenue(self) -> float:
        return self.scheduled_hours * self.service_sales_per_hour

    @property
    def calculated_productivity(self) -> Optional[int]:
        """Booked share of scheduled hours as a whole percent; None until hours are booked."""
        if not self.actual_booked_hours or not self.scheduled_hours:
            return None
        return round_half_up(self.actual_booked_hours / self.scheduled_hours * 100)

    def to_dict(self) -> Dict:
        return {
            'employee_id': self.employee_id,
            'month': self.period.month,
            'year': self.period.year,
            'weekly_schedule': self.weekly_schedule.to_dict(),
            'weekly_hours': self.weekly_schedule.weekly_hours(),
            'scheduled_hours': self.scheduled_hours,
            'service_sales_per_hour': self.service_sales_per_hour,
            'productivity_goal': self.productivity_goal,
            'estimated_revenue': self.estimated_revenue,
            'actual_hours': self.actual_hours,
            'booked_hours': self.booked_hours,
            'actual_booked_hours': self.actual_booked_hours,
            'calculated_productivity': self.calculated_productivity,
            'updated_by': self.updated_by,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'version': self.version
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'MonthlySchedule':
        updated_at = data.get('updated_at')
        return cls(
            employee_id=data['employee_id'],
            period=Period(data['month'], int(data['year'])),
            weekly_schedule=WeeklySchedule.from_dict(data.get('weekly_schedule') or {}),
            service_sales_per_hour=data.get('service_sales_per_hour', DEFAULT_SERVICE_SALES_PER_HOUR),
            productivity_goal=data.get('productivity_goal', DEFAULT_PRODUCTIVITY),
            actual_hours=data.get('actual_hours', 0),
            booked_hours=data.get('booked_hours', 0),
            actual_booked_hours=data.get('actual_booked_hours'),
            updated_by=data.get('updated_by', ''),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
            version=data.get('version', 1)
        )
