"""
test_calculator.py - Unit tests for ProjectionCalculator.

Tests cover:
  - derive: the four-step revenue cascade with half-up rounding
  - seed_inputs / seed: defaults from the prior month's KPIs, unit defaults
  - scenarios and team projections
  - coaching snapshot and projection accuracy
"""

import pytest

from revenue_scheduling.config import UNIT_DEFAULTS
from revenue_scheduling.exceptions import ValidationError
from revenue_scheduling.periods import Period
from revenue_scheduling.projections.calculator import ProjectionCalculator
from revenue_scheduling.projections.history import KPIHistory
from revenue_scheduling.projections.models import KPIRecord, ProjectionInputs
from revenue_scheduling.scheduling.models import SchedulableRef

E1 = SchedulableRef.employee("e1")
MARCH = Period("03", 2025)
BASE = ProjectionInputs(scheduled_hours=160, estimated_productivity=85,
                        service_sales_per_hour=150, retail_percentage=20)


def _kpi(productivity=88, sales_per_hour=210, period=Period("02", 2025)):
    return KPIRecord("e1", period, productivity_rate=productivity, retail_percentage=18,
                     attendance_rate=97, service_sales_per_hour=sales_per_hour)


@pytest.fixture
def calculator():
    return ProjectionCalculator()


class TestDerive:

    def test_cascade(self):
        derived = ProjectionCalculator.derive(BASE)
        assert derived.effective_hours == 136
        assert derived.projected_service_revenue == 20400
        assert derived.projected_retail_revenue == 4080
        assert derived.total_revenue_goal == 24480

    def test_effective_hours_round_half_up(self):
        # 10 * 85% = 8.5 -> 9
        derived = ProjectionCalculator.derive(ProjectionInputs(10, 85, 100, 0))
        assert derived.effective_hours == 9
        assert derived.total_revenue_goal == 900

    def test_zero_hours(self):
        derived = ProjectionCalculator.derive(ProjectionInputs(0, 85, 150, 20))
        assert derived.total_revenue_goal == 0

    def test_recompute_rederives_everything(self, calculator):
        projection = calculator.build(E1, MARCH, BASE)
        updated = calculator.recompute(projection, retail_percentage=10)
        assert updated.derived.projected_retail_revenue == 2040
        assert updated.total_revenue_goal == 22440
        assert projection.total_revenue_goal == 24480

    def test_recompute_keeps_submission(self, calculator):
        projection = calculator.build(E1, MARCH, BASE)
        projection.is_submitted = True
        projection.submitted_by = "mgr1"
        projection.version = 4
        updated = calculator.recompute(projection, scheduled_hours=100)
        assert updated.is_submitted
        assert updated.submitted_by == "mgr1"
        assert updated.version == 4


class TestSeed:

    def test_no_history_uses_defaults(self):
        inputs = ProjectionCalculator.seed_inputs(E1, 40)
        assert inputs == ProjectionInputs(40, 85, 150, 20)

    def test_prior_month_bumps_productivity(self):
        inputs = ProjectionCalculator.seed_inputs(E1, 40, _kpi())
        assert inputs.estimated_productivity == 89
        assert inputs.service_sales_per_hour == 210

    def test_productivity_capped(self):
        assert ProjectionCalculator.seed_inputs(E1, 40, _kpi(productivity=99.5)).estimated_productivity == 100

    def test_zero_sales_rate_falls_back(self):
        assert ProjectionCalculator.seed_inputs(E1, 40, _kpi(sales_per_hour=0)).service_sales_per_hour == 150

    def test_unit_defaults(self):
        inputs = ProjectionCalculator.seed_inputs(SchedulableRef.unit("u1"), 12, _kpi())
        assert inputs.to_dict() == UNIT_DEFAULTS

    def test_seed_uses_previous_month_only(self, calculator):
        history = KPIHistory([_kpi(period=Period("03", 2025))])
        projection = calculator.seed(E1, MARCH, 24, history)
        assert projection.inputs.estimated_productivity == 85
        assert not projection.is_submitted
        assert projection.version == 0

    def test_seed_wraps_january(self, calculator):
        history = KPIHistory([_kpi(productivity=90, period=Period("12", 2024))])
        projection = calculator.seed(E1, Period("01", 2025), 24, history)
        assert projection.inputs.estimated_productivity == 91


class TestScenarios:

    def test_three_presets(self, calculator):
        results = {s.name: s for s in calculator.scenarios(BASE)}
        assert results["Conservative"].total_revenue == 25920
        assert results["Realistic"].total_revenue == 36557
        assert results["Optimistic"].total_revenue == 51072


class TestTeamProjection:

    def test_division_mode(self, calculator):
        team = calculator.team_projection(BASE, team_size=3)
        assert team.total_projected_revenue == 73440
        assert team.revenue_per_employee == 24480
        assert team.effective_hours_per_employee == 136.0
        assert team.goal_vs_target == 29

    def test_individual_mode_ignores_team_size(self, calculator):
        team = calculator.team_projection(BASE, team_size=5, mode='individual')
        assert team.team_size == 1
        assert team.total_projected_revenue == 24480
        assert team.goal_vs_target == 490

    def test_empty_team(self, calculator):
        team = calculator.team_projection(BASE, team_size=0)
        assert team.total_projected_revenue == 0
        assert team.revenue_per_employee == 0

    def test_unknown_mode(self, calculator):
        with pytest.raises(ValidationError):
            calculator.team_projection(BASE, 1, mode='regional')


class TestCoachingSnapshot:

    def test_prior_months(self, calculator):
        history = KPIHistory([_kpi(), _kpi(productivity=84, period=Period("01", 2025))])
        snapshot = calculator.coaching_snapshot(calculator.build(E1, MARCH, BASE), history)
        rows = {row['metric']: row for row in snapshot.rows}
        assert rows['Productivity Goal %'] == {
            'metric': 'Productivity Goal %', 'current': 85, 'last_month': 88, 'two_months_ago': 84
        }
        assert snapshot.status == 'Draft'

    def test_missing_months_are_none(self, calculator):
        snapshot = calculator.coaching_snapshot(calculator.build(E1, MARCH, BASE), KPIHistory())
        assert all(row['last_month'] is None for row in snapshot.rows)


class TestAccuracy:

    def test_metrics(self):
        result = ProjectionCalculator.evaluate_accuracy([100, 200], [110, 190])
        assert result['count'] == 2
        assert result['mae'] == pytest.approx(10)
        assert result['rmse'] == pytest.approx(10)
        assert result['mape'] == pytest.approx((10 / 110 + 10 / 190) / 2 * 100)

    def test_mape_none_when_actuals_zero(self):
        assert ProjectionCalculator.evaluate_accuracy([100], [0])['mape'] is None

    def test_length_mismatch(self):
        with pytest.raises(ValidationError):
            ProjectionCalculator.evaluate_accuracy([1, 2], [1])

    def test_empty(self):
        with pytest.raises(ValidationError):
            ProjectionCalculator.evaluate_accuracy([], [])
