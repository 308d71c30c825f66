"""
Projections module for revenue forecasting and submission tracking.
"""

from .analytics import filter_employees, submission_stats
from .calculator import ProjectionCalculator
from .history import KPIHistory
from .models import (
    CoachingSnapshot, KPIRecord, ProjectionDerived, ProjectionInputs,
    RevenueProjection, ScenarioResult, SubmissionState, TeamProjection,
)
from .workflow import SubmissionWorkflow

__all__ = [
    "ProjectionCalculator", "SubmissionWorkflow", "KPIHistory",
    "CoachingSnapshot", "KPIRecord", "ProjectionDerived", "ProjectionInputs",
    "RevenueProjection", "ScenarioResult", "SubmissionState", "TeamProjection",
    "filter_employees", "submission_stats",
]
