"""
Roll-ups across employees: submission progress per division and roster filters.
"""

from typing import Callable, Dict, List, Optional

import pandas as pd

from ..exceptions import ValidationError
from ..policy import Role, RoleLike
from ..scheduling.models import Division, Employee
from ..scheduling.time_math import round_half_up
from .models import RevenueProjection


def submission_stats(employees: List[Employee],
                     divisions: List[Division],
                     projections: Dict[str, RevenueProjection]) -> Dict:
    """
    Submission progress for active employees, overall and per division.

    Args:
        employees: Employee reference data (inactive employees are ignored)
        divisions: Divisions to report on
        projections: Projection per employee id for the period, stored or seeded

    Returns:
        Dictionary with totals, overall percentage and one entry per division
    """
    rows = []
    for employee in employees:
        if not employee.is_active:
            continue
        projection = projections.get(employee.id)
        rows.append({
            'employee_id': employee.id,
            'division_id': employee.division_id,
            'submitted': bool(projection and projection.is_submitted),
            'revenue': projection.total_revenue_goal if projection else 0,
            'productivity': projection.inputs.estimated_productivity if projection else None,
        })
    df = pd.DataFrame(rows, columns=['employee_id', 'division_id', 'submitted', 'revenue', 'productivity'])

    total = len(df)
    submitted = int(df['submitted'].sum()) if total else 0

    division_stats = []
    for division in divisions:
        members = df[df['division_id'] == division.id]
        count = len(members)
        done = int(members['submitted'].sum()) if count else 0
        productivity = members['productivity'].dropna()
        division_stats.append({
            'division_id': division.id,
            'division_name': division.name,
            'total': count,
            'submitted': done,
            'percentage': _percent(done, count),
            'projected_revenue': float(members['revenue'].sum()) if count else 0.0,
            'avg_productivity': round_half_up(productivity.mean()) if len(productivity) else 0,
        })

    return {
        'total_employees': total,
        'submitted_count': submitted,
        'overall_percentage': _percent(submitted, total),
        'division_stats': division_stats,
    }


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part * 100 / whole)


def filter_employees(employees: List[Employee],
                     division_id: Optional[str] = None,
                     location: Optional[str] = None,
                     category: Optional[str] = None,
                     experience_level: Optional[str] = None,
                     submission_status: str = 'all',
                     underperforming_only: bool = False,
                     is_submitted: Optional[Callable[[Employee], bool]] = None,
                     is_underperforming: Optional[Callable[[Employee], bool]] = None,
                     viewer_role: Optional[RoleLike] = None,
                     viewer_division_id: Optional[str] = None) -> List[Employee]:
    """
    Active employees matching the roster filters.

    ``None`` or ``'all'`` disables a filter. Division managers only ever see
    their own division.
    """
    filtered = [e for e in employees if e.is_active]

    if division_id and division_id != 'all':
        filtered = [e for e in filtered if e.division_id == division_id]
    if location and location != 'all':
        filtered = [e for e in filtered if location in e.locations]
    if category and category != 'all':
        filtered = [e for e in filtered if e.category == category]
    if experience_level and experience_level != 'all':
        filtered = [e for e in filtered if e.experience_level == experience_level]

    role = viewer_role.value if isinstance(viewer_role, Role) else viewer_role
    if role == Role.DIVISION_MANAGER.value and viewer_division_id:
        filtered = [e for e in filtered if e.division_id == viewer_division_id]

    if underperforming_only and is_underperforming is not None:
        filtered = [e for e in filtered if is_underperforming(e)]

    if submission_status not in ('all', 'submitted', 'pending'):
        raise ValidationError("submission_status must be 'all', 'submitted' or 'pending'")
    if submission_status != 'all' and is_submitted is not None:
        want = submission_status == 'submitted'
        filtered = [e for e in filtered if is_submitted(e) == want]

    return filtered
