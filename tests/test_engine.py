"""
test_engine.py - Integration tests for SchedulingEngine.

The engine fixture (see conftest.py) has three active employees, one unit,
two divisions and KPI history for January/February 2025. The clock sits at
2025-03-10, before the lock cutoff.
"""

from datetime import datetime

import pandas as pd
import pytest

from revenue_scheduling.config import Settings
from revenue_scheduling.engine import SchedulingEngine
from revenue_scheduling.exceptions import LockedPeriod, NotFound, ValidationError
from revenue_scheduling.periods import Period
from revenue_scheduling.policy import Role
from revenue_scheduling.projections.models import KPIRecord
from revenue_scheduling.scheduling.models import Employee, SchedulableRef

from conftest import LOCKED_NOW, FakeClock

E1 = SchedulableRef.employee("e1")
U1 = SchedulableRef.unit("u1")
MARCH = Period("03", 2025)
MANAGER = Role.DIVISION_MANAGER


def _schedule_e1(engine, days=("2025-03-03", "2025-03-04", "2025-03-05")):
    for day in days:
        engine.save_shift(E1, day, "09:00", "17:00", "St. Albert", actor_id="mgr1", role=MANAGER)


class TestReferenceData:

    def test_load_kpi_dataframe(self, engine):
        df = pd.DataFrame([{
            'employee_id': 'e3', 'month': 2, 'year': 2025, 'productivity_rate': 70,
            'retail_percentage': 12, 'attendance_rate': 95, 'service_sales_per_hour': None,
        }])
        assert engine.load_kpi_dataframe(df) == 1
        assert engine.history.find('e3', Period("02", 2025)).service_sales_per_hour == 0

    def test_load_kpi_dataframe_missing_columns(self, engine):
        with pytest.raises(ValidationError):
            engine.load_kpi_dataframe(pd.DataFrame([{'employee_id': 'e1'}]))

    def test_blank_required_metric_loads_nothing(self, engine):
        df = pd.DataFrame([
            {'employee_id': 'e3', 'month': 2, 'year': 2025, 'productivity_rate': 70,
             'retail_percentage': 12, 'attendance_rate': 95, 'service_sales_per_hour': 180},
            {'employee_id': 'e2', 'month': 1, 'year': 2025, 'productivity_rate': None,
             'retail_percentage': 12, 'attendance_rate': 95, 'service_sales_per_hour': 180},
        ])
        with pytest.raises(ValidationError, match="productivity_rate is required"):
            engine.load_kpi_dataframe(df)
        assert len(engine.history) == 3
        assert engine.history.find('e3', Period("02", 2025)) is None

    def test_non_numeric_metric(self, engine):
        df = pd.DataFrame([{
            'employee_id': 'e3', 'month': 2, 'year': 2025, 'productivity_rate': 'high',
            'retail_percentage': 12, 'attendance_rate': 95, 'service_sales_per_hour': 180,
        }])
        with pytest.raises(ValidationError, match="must be a number"):
            engine.load_kpi_dataframe(df)

    def test_resolve_unknown(self, engine):
        with pytest.raises(NotFound):
            engine.resolve(SchedulableRef.employee("nobody"))


class TestShifts:

    def test_save_reports_total(self, engine, callbacks):
        _schedule_e1(engine)
        assert callbacks.hours_for("e1") == 24.0
        assert engine.scheduled_hours(E1) == 24.0

    def test_division_defaults_to_entity(self, engine):
        entry = engine.save_shift(U1, "2025-03-03", "10:00", "14:00", "Spruce Grove",
                                  actor_id="mgr1", role=MANAGER)
        assert entry.division_id == "hormone"
        employee_entry = engine.save_shift(E1, "2025-03-03", "09:00", "10:00", "St. Albert",
                                           actor_id="mgr1", role=MANAGER)
        assert employee_entry.division_id == "laser"

    def test_unknown_entity(self, engine):
        with pytest.raises(NotFound):
            engine.save_shift(SchedulableRef.unit("u9"), "2025-03-03", "09:00", "17:00",
                              "Remote", actor_id="mgr1", role=MANAGER)

    def test_locked_for_manager(self, engine, clock):
        clock.now = LOCKED_NOW
        with pytest.raises(LockedPeriod):
            _schedule_e1(engine)
        assert engine.store.entries() == []

    def test_admin_edits_when_locked(self, engine, clock):
        clock.now = LOCKED_NOW
        engine.save_shift(E1, "2025-03-03", "09:00", "17:00", "St. Albert",
                          actor_id="admin1", role=Role.ADMIN)
        assert engine.scheduled_hours(E1) == 8.0

    def test_delete_locked(self, engine, clock):
        _schedule_e1(engine)
        clock.now = LOCKED_NOW
        with pytest.raises(LockedPeriod):
            engine.delete_shift(E1, "2025-03-03", MANAGER)

    def test_delete(self, engine, callbacks):
        _schedule_e1(engine)
        engine.delete_shift(E1, "2025-03-03", MANAGER)
        assert callbacks.hours_for("e1") == 16.0


class TestMonthlySchedules:

    def test_unsaved_default(self, engine):
        schedule = engine.monthly_schedule("e1", MARCH)
        assert schedule.scheduled_hours == 199
        assert schedule.version == 0
        assert engine.schedules.get("e1", MARCH) is None

    def test_save_and_history(self, engine, callbacks):
        engine.save_monthly_schedule("e1", Period("02", 2025), "mgr1", MANAGER)
        saved = engine.save_monthly_schedule("e1", MARCH, "mgr1", MANAGER,
                                             service_sales_per_hour=220, actual_booked_hours=140)
        assert saved.estimated_revenue == 43780
        assert saved.calculated_productivity == 70
        assert engine.monthly_schedule("e1", MARCH) is saved
        assert [str(s.period) for s in engine.schedule_history("e1")] == ["2025-03", "2025-02"]
        assert callbacks.monthly_schedules[-1] is saved

    def test_locked_for_manager(self, engine, clock):
        clock.now = LOCKED_NOW
        with pytest.raises(LockedPeriod):
            engine.save_monthly_schedule("e1", MARCH, "mgr1", MANAGER)
        assert engine.schedule_history("e1") == []

    def test_admin_edits_when_locked(self, engine, clock):
        clock.now = LOCKED_NOW
        saved = engine.save_monthly_schedule("e1", MARCH, "admin1", Role.ADMIN, booked_hours=12)
        assert saved.updated_at == LOCKED_NOW

    def test_units_have_no_monthly_schedule(self, engine):
        with pytest.raises(NotFound):
            engine.save_monthly_schedule("u1", MARCH, "mgr1", MANAGER)
        with pytest.raises(NotFound):
            engine.monthly_schedule("nobody", MARCH)


class TestProjections:

    def test_seeded_from_hours_and_kpis(self, engine):
        _schedule_e1(engine)
        projection = engine.projection(E1, MARCH)
        assert projection.inputs.scheduled_hours == 24.0
        assert projection.inputs.estimated_productivity == 89
        assert projection.inputs.service_sales_per_hour == 210
        assert projection.total_revenue_goal == 5292
        assert engine.workflow.get(E1, MARCH) is None

    def test_unit_defaults(self, engine):
        assert engine.projection(U1, MARCH).total_revenue_goal == 30600

    def test_unknown_employee(self, engine):
        with pytest.raises(NotFound):
            engine.projection(SchedulableRef.employee("nobody"), MARCH)

    def test_update_and_submit(self, engine, callbacks):
        engine.update_projection(E1, MARCH, MANAGER, {'scheduled_hours': 160, 'estimated_productivity': 85,
                                                      'service_sales_per_hour': 150, 'retail_percentage': 20})
        submitted = engine.submit_projection(E1, MARCH, "mgr1", MANAGER)
        assert submitted.total_revenue_goal == 24480
        assert engine.projection(E1, MARCH).is_submitted
        assert callbacks.projections[-1] is submitted

    def test_submit_unsaved(self, engine):
        with pytest.raises(NotFound):
            engine.submit_projection(E1, MARCH, "mgr1", MANAGER)

    def test_scenarios(self, engine):
        assert [s.name for s in engine.scenarios(E1, MARCH)] == ["Conservative", "Realistic", "Optimistic"]

    def test_coaching_snapshot(self, engine):
        rows = {r['metric']: r for r in engine.coaching_snapshot("e1", MARCH).rows}
        assert rows['Productivity Goal %']['last_month'] == 88
        assert rows['Productivity Goal %']['two_months_ago'] == 84
        assert rows['Total Revenue Goal']['last_month'] == 4800

    def test_submission_stats(self, engine):
        engine.update_projection(E1, MARCH, MANAGER)
        engine.submit_projection(E1, MARCH, "mgr1", MANAGER)
        stats = engine.submission_stats(MARCH)
        assert stats['submitted_count'] == 1
        assert stats['overall_percentage'] == 33


class TestAccuracy:

    def test_against_recorded_revenue(self, engine):
        engine.load_kpi_records([
            KPIRecord("e1", MARCH, productivity_rate=90, retail_percentage=20, attendance_rate=98,
                      service_sales_per_hour=220, average_ticket=100, new_clients=250),
        ])
        engine.update_projection(E1, MARCH, MANAGER, {'scheduled_hours': 160, 'estimated_productivity': 85,
                                                      'service_sales_per_hour': 150, 'retail_percentage': 20})
        engine.submit_projection(E1, MARCH, "mgr1", MANAGER)
        result = engine.projection_accuracy(MARCH)
        assert result['count'] == 1
        assert result['mae'] == pytest.approx(520)
        assert result['mape'] == pytest.approx(2.08)

    def test_nothing_to_compare(self, engine):
        with pytest.raises(NotFound):
            engine.projection_accuracy(MARCH)


class TestLockAndFlags:

    def test_lock_status(self, engine):
        status = engine.lock_status(MANAGER, now=LOCKED_NOW)
        assert status == {'state': 'locked', 'cutoff': '2025-03-25T23:59:59', 'can_edit': False}
        assert engine.lock_status(Role.ADMIN, now=LOCKED_NOW)['can_edit']

    def test_is_locked(self, engine):
        assert not engine.is_locked(MANAGER)
        assert engine.is_locked(MANAGER, now=datetime(2025, 3, 31))

    def test_underperformance(self, engine):
        flag = engine.underperformance("e2", MARCH)
        assert flag.criteria == ['productivity_rate', 'retail_percentage']
        assert flag.severity == 'medium'
        assert flag.division_id == 'injectables'
        assert not engine.is_underperforming("e1", MARCH)
        assert not engine.is_underperforming("e3", MARCH)

    def test_filter_underperforming(self, engine):
        assert [e.id for e in engine.filter_employees(MARCH, underperforming_only=True)] == ['e2']

    def test_filter_submitted(self, engine):
        engine.update_projection(E1, MARCH, MANAGER)
        engine.submit_projection(E1, MARCH, "mgr1", MANAGER)
        submitted = engine.filter_employees(MARCH, submission_status='submitted')
        assert [e.id for e in submitted] == ['e1']


class TestPersistence:

    def test_state_survives_restart(self, tmp_path, employees):
        settings = Settings(state_dir=str(tmp_path))
        clock = FakeClock(datetime(2025, 3, 10))

        first = SchedulingEngine(settings, clock=clock, persist=True)
        first.load_employees(employees)
        _schedule_e1(first)
        first.update_projection(E1, MARCH, MANAGER)
        first.save_monthly_schedule("e1", MARCH, "mgr1", MANAGER, booked_hours=90)

        second = SchedulingEngine(settings, clock=clock, persist=True)
        assert second.scheduled_hours(E1) == 24.0
        assert second.workflow.get(E1, MARCH).version == 1
        assert second.schedules.get("e1", MARCH).booked_hours == 90
        assert (tmp_path / "shifts.json").exists()

    def test_settings_from_env(self, monkeypatch):
        monkeypatch.setenv("RS_LOCK_DAY", "20")
        monkeypatch.setenv("RS_ROLLUP_SCOPE", "PERIOD")
        monkeypatch.setenv("LOG_FORMAT", "text")
        monkeypatch.setenv("RS_PERSIST", "1")
        settings = Settings.from_env()
        assert settings.lock_day == 20
        assert settings.rollup_scope == "period"
        assert not settings.json_logs
        assert settings.persist

    def test_period_scope_from_settings(self):
        engine = SchedulingEngine(Settings(rollup_scope="period"), clock=FakeClock(datetime(2025, 3, 10)))
        engine.load_employees([Employee("e1", "Avery", "laser")])
        _schedule_e1(engine, days=("2025-02-27", "2025-03-03"))
        assert engine.scheduled_hours(E1, MARCH) == 8.0
        assert engine.projection(E1, MARCH).inputs.scheduled_hours == 8.0
