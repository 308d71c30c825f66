"""
In-process facade over the scheduling and projection components.

The host application supplies reference data (employees, units, divisions,
KPI history) and receives results through ``EngineCallbacks``. Every mutating
call is checked against the lock window for the acting role.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

import pandas as pd

from .config import Settings
from .exceptions import NotFound
from .performance import UnderperformanceEvaluator, UnderperformanceFlag
from .periods import Period
from .persistence import EngineCallbacks, JsonCache
from .policy import LockPolicy, RoleLike
from .projections.analytics import filter_employees, submission_stats
from .projections.calculator import ProjectionCalculator
from .projections.history import KPIHistory
from .projections.models import (
    CoachingSnapshot, KPIRecord, RevenueProjection, ScenarioResult,
)
from .projections.workflow import SubmissionWorkflow
from .scheduling.models import (
    Division, Employee, HormoneUnit, MonthlySchedule, RollupScope, SchedulableRef, ShiftEntry,
    WeeklySchedule,
)
from .scheduling.schedules import ScheduleBook
from .scheduling.store import ShiftStore

logger = logging.getLogger(__name__)

Schedulable = Union[Employee, HormoneUnit]


class SchedulingEngine:
    """
    Wires ShiftStore, ScheduleBook, ProjectionCalculator, SubmissionWorkflow, LockPolicy and
    UnderperformanceEvaluator around shared reference data.
    """

    def __init__(self,
                 settings: Optional[Settings] = None,
                 callbacks: Optional[EngineCallbacks] = None,
                 clock: Callable[[], datetime] = datetime.now,
                 persist: Optional[bool] = None):
        """
        Initialize the engine.

        Args:
            settings: Runtime settings (defaults when omitted)
            callbacks: Receiver for hour totals, shift lists and projections
            clock: Wall-clock source for the lock window
            persist: Mirror shifts, schedules and projections into JSON files under ``settings.state_dir``
                (defaults to ``settings.persist``)
        """
        self.settings = settings or Settings()
        self.callbacks = callbacks or EngineCallbacks()
        self.lock_policy = LockPolicy(self.settings.lock_day, self.settings.privileged_role, clock)

        shift_cache = projection_cache = schedule_cache = None
        if persist is None:
            persist = self.settings.persist
        if persist:
            state_dir = Path(self.settings.state_dir)
            shift_cache = JsonCache(state_dir / "shifts.json")
            projection_cache = JsonCache(state_dir / "projections.json")
            schedule_cache = JsonCache(state_dir / "schedules.json")

        self.store = ShiftStore(self.callbacks, shift_cache, self.settings.rollup_scope)
        self.schedules = ScheduleBook(self.callbacks, schedule_cache, clock)
        self.calculator = ProjectionCalculator()
        self.workflow = SubmissionWorkflow(self.lock_policy, self.calculator, self.callbacks, projection_cache)
        self.history = KPIHistory()
        self.evaluator = UnderperformanceEvaluator(self.history)

        self.employees: Dict[str, Employee] = {}
        self.units: Dict[str, HormoneUnit] = {}
        self.divisions: Dict[str, Division] = {}

    # ---------- reference data ----------

    def load_employees(self, employees: Iterable[Employee]) -> None:
        self.employees = {e.id: e for e in employees}
        logger.info("Loaded %d employees", len(self.employees))

    def load_units(self, units: Iterable[HormoneUnit]) -> None:
        self.units = {u.unit_id: u for u in units}
        logger.info("Loaded %d units", len(self.units))

    def load_divisions(self, divisions: Iterable[Division]) -> None:
        self.divisions = {d.id: d for d in divisions}

    def load_kpi_records(self, records: Iterable[KPIRecord]) -> None:
        for record in records:
            self.history.add(record)

    def load_kpi_dataframe(self, data: pd.DataFrame) -> int:
        count = self.history.load_dataframe(data)
        logger.info("Loaded %d KPI records", count)
        return count

    def resolve(self, ref: SchedulableRef) -> Schedulable:
        """
        Look up reference data for a schedulable.

        Raises:
            NotFound: the id is not a known employee or unit
        """
        entity = self.units.get(ref.id) if ref.is_unit else self.employees.get(ref.id)
        if entity is None:
            raise NotFound(f"Unknown {ref.kind.value}: {ref.id}")
        return entity

    # ---------- shifts ----------

    def save_shift(self,
                   ref: SchedulableRef,
                   day: Union[date, str],
                   start_time: str,
                   end_time: str,
                   location: str,
                   actor_id: str,
                   role: RoleLike,
                   division_id: Optional[str] = None,
                   expected_version: Optional[int] = None) -> ShiftEntry:
        """Upsert a shift; the division defaults to the entity's own."""
        self.lock_policy.require_editable(role)
        entity = self.resolve(ref)
        return self.store.upsert(
            ref, day, start_time, end_time, location,
            division_id or entity.schedulable_division, actor_id,
            expected_version=expected_version
        )

    def delete_shift(self,
                     ref: SchedulableRef,
                     day: Union[date, str],
                     role: RoleLike,
                     expected_version: Optional[int] = None) -> Optional[ShiftEntry]:
        self.lock_policy.require_editable(role)
        return self.store.remove(ref, day, expected_version=expected_version)

    def scheduled_hours(self,
                        ref: SchedulableRef,
                        period: Optional[Period] = None,
                        scope: Optional[Union[RollupScope, str]] = None) -> float:
        return self.store.rollup(ref, scope, period)

    # ---------- monthly schedules ----------

    def monthly_schedule(self, employee_id: str, period: Period) -> MonthlySchedule:
        """The saved schedule, or an unsaved default one (version 0)."""
        self.resolve(SchedulableRef.employee(employee_id))
        return self.schedules.get(employee_id, period) or MonthlySchedule(employee_id, period)

    def save_monthly_schedule(self,
                              employee_id: str,
                              period: Period,
                              actor_id: str,
                              role: RoleLike,
                              weekly_schedule: Optional[WeeklySchedule] = None,
                              expected_version: Optional[int] = None,
                              **fields) -> MonthlySchedule:
        self.lock_policy.require_editable(role)
        self.resolve(SchedulableRef.employee(employee_id))
        return self.schedules.save(employee_id, period, actor_id, weekly_schedule,
                                   expected_version=expected_version, **fields)

    def schedule_history(self, employee_id: str) -> List[MonthlySchedule]:
        self.resolve(SchedulableRef.employee(employee_id))
        return self.schedules.history(employee_id)

    # ---------- projections ----------

    def projection(self, ref: SchedulableRef, period: Period) -> RevenueProjection:
        """The stored projection, or an auto-seeded draft that is not yet saved."""
        self.resolve(ref)
        stored = self.workflow.get(ref, period)
        if stored is not None:
            return stored
        return self.calculator.seed(ref, period, self.store.rollup(ref, period=period), self.history)

    def update_projection(self,
                          ref: SchedulableRef,
                          period: Period,
                          role: RoleLike,
                          changes: Optional[Dict[str, float]] = None,
                          expected_version: Optional[int] = None) -> RevenueProjection:
        return self.workflow.update(self.projection(ref, period), role, changes,
                                    expected_version=expected_version)

    def submit_projection(self,
                          ref: SchedulableRef,
                          period: Period,
                          actor_id: str,
                          role: RoleLike,
                          expected_version: Optional[int] = None) -> RevenueProjection:
        self.resolve(ref)
        return self.workflow.submit(ref, period, actor_id, role, expected_version=expected_version)

    def scenarios(self, ref: SchedulableRef, period: Period) -> List[ScenarioResult]:
        return self.calculator.scenarios(self.projection(ref, period).inputs)

    def coaching_snapshot(self, employee_id: str, period: Period) -> CoachingSnapshot:
        projection = self.projection(SchedulableRef.employee(employee_id), period)
        return self.calculator.coaching_snapshot(projection, self.history)

    def submission_stats(self, period: Period) -> Dict:
        projections = {
            e.id: self.projection(e.ref, period)
            for e in self.employees.values() if e.is_active
        }
        return submission_stats(list(self.employees.values()), list(self.divisions.values()), projections)

    def projection_accuracy(self, period: Period) -> Dict:
        """
        Accuracy of submitted goals against recorded revenue for ``period``.

        Only employees with both a submitted projection and a KPI record count.
        """
        projected, actual = [], []
        for projection in self.workflow.projections(period):
            if projection.schedulable.is_unit or not projection.is_submitted:
                continue
            record = self.history.find(projection.schedulable.id, period)
            if record is None:
                continue
            projected.append(projection.total_revenue_goal)
            actual.append(record.revenue)
        if not projected:
            raise NotFound(f"No submitted projections with recorded revenue for {period}")
        return self.calculator.evaluate_accuracy(projected, actual)

    # ---------- lock and flags ----------

    def is_locked(self, role: RoleLike, now: Optional[datetime] = None) -> bool:
        return self.lock_policy.is_locked(now, role)

    def lock_status(self, role: RoleLike, now: Optional[datetime] = None) -> Dict:
        now = now or self.lock_policy.clock()
        state = self.lock_policy.window_state(now)
        return {
            'state': state.value,
            'cutoff': self.lock_policy.cutoff(now).isoformat(),
            'can_edit': self.lock_policy.can_edit(role, state),
        }

    def underperformance(self, employee_id: str, period: Period) -> Optional[UnderperformanceFlag]:
        employee = self.resolve(SchedulableRef.employee(employee_id))
        return self.evaluator.evaluate(employee_id, period, employee.division_id)

    def is_underperforming(self, employee_id: str, period: Period) -> bool:
        return self.underperformance(employee_id, period) is not None

    def filter_employees(self, period: Period, **filters) -> List[Employee]:
        """Roster filters with submission status and underperformance evaluated for ``period``."""
        return filter_employees(
            list(self.employees.values()),
            is_submitted=lambda e: self.projection(e.ref, period).is_submitted,
            is_underperforming=lambda e: self.evaluator.is_underperforming(e.id, period),
            **filters
        )
