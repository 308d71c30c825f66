"""
Data models for revenue projections and KPI history.
"""

from typing import Dict, List, Optional
from datetime import datetime
from dataclasses import dataclass, field, replace
from enum import Enum

from ..exceptions import ValidationError
from ..periods import Period
from ..scheduling.models import SchedulableKind, SchedulableRef


class SubmissionState(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


def _required_number(data: Dict, name: str, employee_id: str) -> float:
    value = data.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Row for {employee_id}: {name} is required")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Row for {employee_id}: {name} must be a number, got {value!r}")


@dataclass(frozen=True)
class KPIRecord:
    """One month of recorded performance for an employee (read-only input)."""

    employee_id: str
    period: Period
    productivity_rate: float
    retail_percentage: float
    attendance_rate: float
    service_sales_per_hour: float
    hours_sold: float = 0
    division_id: str = ""
    average_ticket: float = 0
    new_clients: int = 0

    @classmethod
    def from_dict(cls, data: Dict) -> 'KPIRecord':
        """
        Create KPIRecord instance from dictionary.

        Raises:
            ValidationError: employee id, month, year or a threshold metric is blank or not a number
        """
        employee_id = data.get('employee_id')
        if employee_id is None or str(employee_id).strip() == '':
            raise ValidationError("KPI row is missing employee_id")
        employee_id = str(employee_id)
        return cls(
            employee_id=employee_id,
            period=Period(str(int(_required_number(data, 'month', employee_id))),
                          int(_required_number(data, 'year', employee_id))),
            productivity_rate=_required_number(data, 'productivity_rate', employee_id),
            retail_percentage=_required_number(data, 'retail_percentage', employee_id),
            attendance_rate=_required_number(data, 'attendance_rate', employee_id),
            service_sales_per_hour=float(data.get('service_sales_per_hour') or 0),
            hours_sold=float(data.get('hours_sold', 0) or 0),
            division_id=str(data.get('division_id', '') or ''),
            average_ticket=float(data.get('average_ticket', 0) or 0),
            new_clients=int(data.get('new_clients', 0) or 0)
        )

    @property
    def revenue(self) -> float:
        return self.average_ticket * self.new_clients


@dataclass(frozen=True)
class ProjectionInputs:
    """The four user-supplied projection inputs."""

    scheduled_hours: float
    estimated_productivity: float
    service_sales_per_hour: float
    retail_percentage: float

    FIELDS = ('scheduled_hours', 'estimated_productivity',
              'service_sales_per_hour', 'retail_percentage')

    def with_changes(self, **changes) -> 'ProjectionInputs':
        unknown = set(changes) - set(self.FIELDS)
        if unknown:
            raise KeyError(f"Unknown projection inputs: {sorted(unknown)}")
        return replace(self, **changes)

    def to_dict(self) -> Dict:
        return {name: getattr(self, name) for name in self.FIELDS}


@dataclass(frozen=True)
class ProjectionDerived:
    """Fields derived from ProjectionInputs; never set on their own."""

    effective_hours: float
    projected_service_revenue: float
    projected_retail_revenue: float
    total_revenue_goal: float

    def to_dict(self) -> Dict:
        return {
            'effective_hours': self.effective_hours,
            'projected_service_revenue': self.projected_service_revenue,
            'projected_retail_revenue': self.projected_retail_revenue,
            'total_revenue_goal': self.total_revenue_goal
        }


@dataclass
class RevenueProjection:
    """A per-entity, per-month revenue forecast."""

    schedulable: SchedulableRef
    period: Period
    inputs: ProjectionInputs
    derived: ProjectionDerived
    is_submitted: bool = False
    submitted_at: Optional[datetime] = None
    submitted_by: Optional[str] = None
    version: int = 0

    @property
    def key(self):
        return (self.schedulable, self.period)

    @property
    def state(self) -> SubmissionState:
        return SubmissionState.SUBMITTED if self.is_submitted else SubmissionState.DRAFT

    @property
    def total_revenue_goal(self) -> float:
        return self.derived.total_revenue_goal

    def to_dict(self) -> Dict:
        """Convert to dictionary representation."""
        data = {
            'schedulable_kind': self.schedulable.kind.value,
            'schedulable_id': self.schedulable.id,
            'month': self.period.month,
            'year': self.period.year,
        }
        data.update(self.inputs.to_dict())
        data.update(self.derived.to_dict())
        data.update({
            'is_submitted': self.is_submitted,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
            'submitted_by': self.submitted_by,
            'version': self.version
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'RevenueProjection':
        """Create RevenueProjection instance from dictionary."""
        submitted_at = data.get('submitted_at')
        return cls(
            schedulable=SchedulableRef(SchedulableKind(data['schedulable_kind']), data['schedulable_id']),
            period=Period(data['month'], int(data['year'])),
            inputs=ProjectionInputs(**{name: data[name] for name in ProjectionInputs.FIELDS}),
            derived=ProjectionDerived(
                effective_hours=data['effective_hours'],
                projected_service_revenue=data['projected_service_revenue'],
                projected_retail_revenue=data['projected_retail_revenue'],
                total_revenue_goal=data['total_revenue_goal']
            ),
            is_submitted=data.get('is_submitted', False),
            submitted_at=datetime.fromisoformat(submitted_at) if submitted_at else None,
            submitted_by=data.get('submitted_by'),
            version=data.get('version', 0)
        )


@dataclass
class ScenarioResult:
    """Revenue under one of the preset calculator scenarios."""

    name: str
    productivity: float
    sales_per_hour: float
    effective_hours: float
    service_revenue: float
    retail_revenue: float
    total_revenue: float


@dataclass
class TeamProjection:
    """Calculator output for a whole division or a single employee."""

    mode: str
    team_size: int
    effective_hours_per_employee: float
    projected_service_revenue: float
    projected_retail_revenue: float
    total_projected_revenue: float
    revenue_per_employee: int
    goal_vs_target: int


@dataclass
class CoachingSnapshot:
    """Current goal against the two prior months, for a coaching conversation."""

    employee_id: str
    period: Period
    rows: List[Dict] = field(default_factory=list)
    status: str = "Draft"
