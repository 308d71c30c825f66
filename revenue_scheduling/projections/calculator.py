"""
Revenue projection calculator.

Derivation cascade (all four derived fields recomputed together):

    effective_hours           = round(scheduled_hours * productivity / 100)
    projected_service_revenue = effective_hours * service_sales_per_hour
    projected_retail_revenue  = round(projected_service_revenue * retail_percentage / 100)
    total_revenue_goal        = projected_service_revenue + projected_retail_revenue

Rounding is half-up, as a spreadsheet would do it.
"""

from typing import Dict, List, Optional, Sequence

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error

from ..config import (
    DEFAULT_PRODUCTIVITY, DEFAULT_RETAIL_PERCENTAGE, DEFAULT_SERVICE_SALES_PER_HOUR,
    MAX_PRODUCTIVITY, MONTHLY_TARGETS, PRODUCTIVITY_BUMP, SCENARIOS, UNIT_DEFAULTS,
)
from ..exceptions import ValidationError
from ..periods import Period
from ..scheduling.models import SchedulableRef
from ..scheduling.time_math import round_half_up
from .history import KPIHistory
from .models import (
    CoachingSnapshot, KPIRecord, ProjectionDerived, ProjectionInputs,
    RevenueProjection, ScenarioResult, TeamProjection,
)


class ProjectionCalculator:
    """
    Pure projection math: derivation, auto-seeded defaults and what-if views.

    Nothing here touches stored state; callers persist what it returns.
    """

    SUPPORTED_MODES = ['division', 'individual']

    @staticmethod
    def derive(inputs: ProjectionInputs) -> ProjectionDerived:
        """Compute every derived field from the four inputs."""
        effective_hours = round_half_up(inputs.scheduled_hours * inputs.estimated_productivity / 100)
        service_revenue = effective_hours * inputs.service_sales_per_hour
        retail_revenue = round_half_up(service_revenue * inputs.retail_percentage / 100)
        return ProjectionDerived(
            effective_hours=effective_hours,
            projected_service_revenue=service_revenue,
            projected_retail_revenue=retail_revenue,
            total_revenue_goal=service_revenue + retail_revenue
        )

    def build(self,
              schedulable: SchedulableRef,
              period: Period,
              inputs: ProjectionInputs) -> RevenueProjection:
        """A new draft projection with derived fields filled in."""
        return RevenueProjection(
            schedulable=schedulable,
            period=period,
            inputs=inputs,
            derived=self.derive(inputs)
        )

    def recompute(self, projection: RevenueProjection, **changes) -> RevenueProjection:
        """
        Apply input changes and rederive, returning a new projection.

        Workflow fields (submission stamps, version) carry over unchanged.

        Args:
            projection: Current projection
            **changes: New values for any of the four input fields

        Returns:
            A RevenueProjection whose derived fields match its inputs
        """
        inputs = projection.inputs.with_changes(**changes)
        return RevenueProjection(
            schedulable=projection.schedulable,
            period=projection.period,
            inputs=inputs,
            derived=self.derive(inputs),
            is_submitted=projection.is_submitted,
            submitted_at=projection.submitted_at,
            submitted_by=projection.submitted_by,
            version=projection.version
        )

    @staticmethod
    def seed_inputs(schedulable: SchedulableRef,
                    scheduled_hours: float,
                    prior_kpi: Optional[KPIRecord] = None) -> ProjectionInputs:
        """
        Default inputs for a period that has no projection yet.

        Employees start from their scheduled hours and last month's KPIs
        (productivity + 1 capped at 100, last month's sales/hour). Units use
        fixed defaults since they have no KPI history.

        Args:
            schedulable: Entity being projected
            scheduled_hours: Externally supplied hour rollup for the entity/period
            prior_kpi: The prior month's KPI record, if any

        Returns:
            ProjectionInputs for a fresh projection
        """
        if schedulable.is_unit:
            return ProjectionInputs(**UNIT_DEFAULTS)

        if prior_kpi is not None:
            productivity = min(prior_kpi.productivity_rate + PRODUCTIVITY_BUMP, MAX_PRODUCTIVITY)
        else:
            productivity = DEFAULT_PRODUCTIVITY
        sales_per_hour = DEFAULT_SERVICE_SALES_PER_HOUR
        if prior_kpi is not None and prior_kpi.service_sales_per_hour:
            sales_per_hour = prior_kpi.service_sales_per_hour

        return ProjectionInputs(
            scheduled_hours=scheduled_hours,
            estimated_productivity=productivity,
            service_sales_per_hour=sales_per_hour,
            retail_percentage=DEFAULT_RETAIL_PERCENTAGE
        )

    def seed(self,
             schedulable: SchedulableRef,
             period: Period,
             scheduled_hours: float,
             history: Optional[KPIHistory] = None) -> RevenueProjection:
        """Auto-seeded draft projection for ``period``."""
        prior = None
        if history is not None and not schedulable.is_unit:
            prior = history.prior_month(schedulable.id, period)
        return self.build(schedulable, period, self.seed_inputs(schedulable, scheduled_hours, prior))

    def scenarios(self, inputs: ProjectionInputs, team_size: int = 1) -> List[ScenarioResult]:
        """Revenue under the Conservative / Realistic / Optimistic presets."""
        results = []
        for scenario in SCENARIOS:
            effective_hours = round_half_up(inputs.scheduled_hours * scenario['productivity'] / 100)
            service_revenue = effective_hours * scenario['sales_per_hour'] * team_size
            retail_revenue = round_half_up(service_revenue * inputs.retail_percentage / 100)
            results.append(ScenarioResult(
                name=scenario['name'],
                productivity=scenario['productivity'],
                sales_per_hour=scenario['sales_per_hour'],
                effective_hours=effective_hours,
                service_revenue=service_revenue,
                retail_revenue=retail_revenue,
                total_revenue=service_revenue + retail_revenue
            ))
        return results

    def team_projection(self,
                        inputs: ProjectionInputs,
                        team_size: int,
                        mode: str = 'division') -> TeamProjection:
        """
        Projection for a whole team or one employee.

        In ``division`` mode the per-employee scheduled hours are multiplied by
        the team size; ``individual`` mode always counts a team of one.

        Args:
            inputs: Per-employee inputs
            team_size: Active headcount in the division
            mode: ``division`` or ``individual``

        Returns:
            TeamProjection including goal achievement against the monthly target
        """
        if mode not in self.SUPPORTED_MODES:
            raise ValidationError(f"Mode must be one of {self.SUPPORTED_MODES}")
        if mode == 'individual':
            team_size = 1

        total_hours = inputs.scheduled_hours * team_size
        effective_hours = round_half_up(total_hours * inputs.estimated_productivity / 100)
        service_revenue = effective_hours * inputs.service_sales_per_hour
        retail_revenue = round_half_up(service_revenue * inputs.retail_percentage / 100)
        total_revenue = service_revenue + retail_revenue

        target = MONTHLY_TARGETS[mode]
        return TeamProjection(
            mode=mode,
            team_size=team_size,
            effective_hours_per_employee=round_half_up(effective_hours / team_size * 10) / 10 if team_size else 0,
            projected_service_revenue=service_revenue,
            projected_retail_revenue=retail_revenue,
            total_projected_revenue=total_revenue,
            revenue_per_employee=round_half_up(total_revenue / team_size) if team_size else 0,
            goal_vs_target=round_half_up(total_revenue / target * 100) if target else 0
        )

    @staticmethod
    def coaching_snapshot(projection: RevenueProjection, history: KPIHistory) -> CoachingSnapshot:
        """
        Compare a projection's goals against the two prior months of KPIs.

        Missing months show as None.
        """
        employee_id = projection.schedulable.id
        last = history.prior_month(employee_id, projection.period)
        before = history.two_months_prior(employee_id, projection.period)

        def metric(record, attr):
            if record is None:
                return None
            return getattr(record, attr)

        rows = [
            {'metric': 'Scheduled Hours', 'current': projection.inputs.scheduled_hours,
             'last_month': metric(last, 'hours_sold'), 'two_months_ago': metric(before, 'hours_sold')},
            {'metric': 'Productivity Goal %', 'current': projection.inputs.estimated_productivity,
             'last_month': metric(last, 'productivity_rate'),
             'two_months_ago': metric(before, 'productivity_rate')},
            {'metric': 'Service Sales/Hour', 'current': projection.inputs.service_sales_per_hour,
             'last_month': metric(last, 'service_sales_per_hour'),
             'two_months_ago': metric(before, 'service_sales_per_hour')},
            {'metric': 'Total Revenue Goal', 'current': projection.derived.total_revenue_goal,
             'last_month': metric(last, 'revenue'), 'two_months_ago': metric(before, 'revenue')},
            {'metric': 'Retail %', 'current': projection.inputs.retail_percentage,
             'last_month': metric(last, 'retail_percentage'),
             'two_months_ago': metric(before, 'retail_percentage')},
        ]
        return CoachingSnapshot(
            employee_id=employee_id,
            period=projection.period,
            rows=rows,
            status='Submitted & Locked' if projection.is_submitted else 'Draft'
        )

    @staticmethod
    def evaluate_accuracy(projected: Sequence[float], actual: Sequence[float]) -> Dict[str, Optional[float]]:
        """
        Compare projected revenue goals with actual revenue.

        Args:
            projected: Projected totals
            actual: Actual totals, aligned with ``projected``

        Returns:
            Dictionary with MAE, RMSE and MAPE (MAPE is None when every actual is zero)
        """
        if len(projected) != len(actual):
            raise ValidationError("Projected and actual series must have the same length")
        if not projected:
            raise ValidationError("No projections to evaluate")

        projected_arr = np.array(projected, dtype=float)
        actual_arr = np.array(actual, dtype=float)
        mae = mean_absolute_error(actual_arr, projected_arr)
        rmse = np.sqrt(mean_squared_error(actual_arr, projected_arr))

        nonzero = actual_arr != 0
        mape = None
        if nonzero.any():
            mape = float(np.mean(np.abs((actual_arr[nonzero] - projected_arr[nonzero]) / actual_arr[nonzero])) * 100)

        return {
            'count': len(projected),
            'mae': float(mae),
            'rmse': float(rmse),
            'mape': mape
        }
