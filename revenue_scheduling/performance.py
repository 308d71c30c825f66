"""
Underperformance flagging from trailing KPI records.

An employee is flagged when last month's record shows productivity below 80%,
retail below 10% or attendance below 90%. No record means no flag.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .config import MIN_ATTENDANCE_RATE, MIN_PRODUCTIVITY_RATE, MIN_RETAIL_PERCENTAGE
from .periods import Period
from .projections.history import KPIHistory
from .projections.models import KPIRecord

SEVERITY_BY_COUNT = {1: 'low', 2: 'medium', 3: 'high'}


@dataclass
class UnderperformanceFlag:
    """Computed on demand; never stored."""

    employee_id: str
    division_id: str
    period: Period
    criteria: List[str] = field(default_factory=list)
    severity: str = 'low'
    flagged_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict:
        return {
            'employee_id': self.employee_id,
            'division_id': self.division_id,
            'month': self.period.month,
            'year': self.period.year,
            'criteria': list(self.criteria),
            'severity': self.severity,
            'flagged_at': self.flagged_at.isoformat()
        }


class UnderperformanceEvaluator:
    """Flags employees from the KPI record of the month before a period."""

    def __init__(self, history: KPIHistory):
        self.history = history

    @staticmethod
    def failed_criteria(record: KPIRecord) -> List[str]:
        """Names of the thresholds the record falls below."""
        criteria = []
        if record.productivity_rate < MIN_PRODUCTIVITY_RATE:
            criteria.append('productivity_rate')
        if record.retail_percentage < MIN_RETAIL_PERCENTAGE:
            criteria.append('retail_percentage')
        if record.attendance_rate < MIN_ATTENDANCE_RATE:
            criteria.append('attendance_rate')
        return criteria

    def evaluate(self, employee_id: str, period: Period,
                 division_id: str = "") -> Optional[UnderperformanceFlag]:
        """
        Evaluate one employee for ``period``.

        Args:
            employee_id: Employee to check
            period: Period being viewed; its prior month's KPIs are used
            division_id: Division to report on the flag (defaults to the KPI record's)

        Returns:
            An UnderperformanceFlag, or None when not flagged or no record exists
        """
        record = self.history.prior_month(employee_id, period)
        if record is None:
            return None
        criteria = self.failed_criteria(record)
        if not criteria:
            return None
        return UnderperformanceFlag(
            employee_id=employee_id,
            division_id=division_id or record.division_id,
            period=period,
            criteria=criteria,
            severity=SEVERITY_BY_COUNT[len(criteria)]
        )

    def is_underperforming(self, employee_id: str, period: Period) -> bool:
        return self.evaluate(employee_id, period) is not None
