"""
Revenue Scheduling Engine

Shift calendar, revenue projections, monthly submission lock and
underperformance flags for a service business.
"""

from .engine import SchedulingEngine
from .periods import Period
from .policy import LockPolicy, LockState, Role
from .performance import UnderperformanceEvaluator
from .projections.calculator import ProjectionCalculator
from .projections.workflow import SubmissionWorkflow
from .scheduling.models import SchedulableRef
from .scheduling.store import ShiftStore

__all__ = [
    "SchedulingEngine",
    "Period",
    "LockPolicy",
    "LockState",
    "Role",
    "UnderperformanceEvaluator",
    "ProjectionCalculator",
    "SubmissionWorkflow",
    "SchedulableRef",
    "ShiftStore",
]
