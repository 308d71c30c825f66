"""
Projection submission workflow.

States: Draft -> Submitted. There is no way back to Draft; submitting again
re-stamps the same record. Submitted projections stay editable (and are
rederived) for the privileged role only.
"""

import logging
from dataclasses import replace
from datetime import datetime
from numbers import Number
from typing import Dict, List, Optional, Tuple

from ..exceptions import LockedPeriod, NotFound, ValidationError
from ..periods import Period
from ..persistence import EngineCallbacks, JsonCache
from ..policy import LockPolicy, RoleLike
from ..scheduling.models import SchedulableRef
from ..scheduling.store import check_version
from .calculator import ProjectionCalculator
from .models import ProjectionInputs, RevenueProjection

logger = logging.getLogger(__name__)

ProjectionKey = Tuple[SchedulableRef, Period]


class SubmissionWorkflow:
    """
    Tracks draft/submitted projections per (entity, period), gated by LockPolicy.
    """

    def __init__(self,
                 lock_policy: LockPolicy,
                 calculator: Optional[ProjectionCalculator] = None,
                 callbacks: Optional[EngineCallbacks] = None,
                 cache: Optional[JsonCache] = None):
        """
        Initialize the workflow.

        Args:
            lock_policy: Decides whether an actor may edit right now
            calculator: Derivation used when inputs change
            callbacks: Receiver for every saved projection
            cache: Durable cache; existing contents are loaded immediately
        """
        self.lock_policy = lock_policy
        self.calculator = calculator or ProjectionCalculator()
        self.callbacks = callbacks or EngineCallbacks()
        self.cache = cache
        self.reset_state()
        if cache is not None:
            self.load_state(cache.load(default=[]))

    def reset_state(self) -> None:
        self._projections: Dict[ProjectionKey, RevenueProjection] = {}

    def load_state(self, state: List[Dict]) -> None:
        for item in state:
            projection = RevenueProjection.from_dict(item)
            self._projections[projection.key] = projection

    def get_state(self) -> List[Dict]:
        return [p.to_dict() for p in self.projections()]

    def get(self, schedulable: SchedulableRef, period: Period) -> Optional[RevenueProjection]:
        return self._projections.get((schedulable, period))

    def projections(self, period: Optional[Period] = None) -> List[RevenueProjection]:
        """Stored projections, optionally for one period."""
        found = [p for p in self._projections.values() if period is None or p.period == period]
        return sorted(found, key=lambda p: (p.period.year, p.period.month,
                                            p.schedulable.kind.value, p.schedulable.id))

    def update(self,
               base: RevenueProjection,
               role: RoleLike,
               changes: Optional[Dict[str, float]] = None,
               expected_version: Optional[int] = None,
               now: Optional[datetime] = None) -> RevenueProjection:
        """
        Change projection inputs and rederive every dependent field.

        The stored record for ``base.key`` wins over ``base`` when one exists;
        ``base`` is normally an auto-seeded draft for a first edit.

        Args:
            base: Projection to start from when nothing is stored yet
            role: Role of the acting user
            changes: New values for input fields; empty saves the draft as-is
            expected_version: Optional stored version the caller last saw
            now: Evaluation time for the lock window

        Returns:
            The stored, fully rederived projection

        Raises:
            LockedPeriod: inside the lock window, or already submitted, for a non-privileged role
            ValidationError: unknown field or negative value
            Conflict: ``expected_version`` does not match
        """
        changes = dict(changes or {})
        self._validate_changes(changes)

        stored = self._projections.get(base.key)
        current = stored or base
        state = self.lock_policy.window_state(now)
        if not self.lock_policy.can_edit_projection(role, state, current.is_submitted):
            logger.warning("Projection edit refused for %s (%s, submitted=%s)",
                           current.schedulable.id, state.value, current.is_submitted,
                           extra={"entity_id": current.schedulable.id, "period": str(current.period)})
            if current.is_submitted:
                raise LockedPeriod("Submitted projections are read-only")
            raise LockedPeriod("Projection edits are locked for this month")
        check_version(stored.version if stored else None, expected_version,
                      f"Projection for {current.schedulable.id} {current.period}")

        updated = self.calculator.recompute(current, **changes)
        updated.version = (stored.version if stored else 0) + 1
        self._store(updated)
        logger.info("Updated projection for %s %s: goal %s", updated.schedulable.id,
                    updated.period, updated.total_revenue_goal,
                    extra={"entity_id": updated.schedulable.id, "period": str(updated.period)})
        return updated

    def submit(self,
               schedulable: SchedulableRef,
               period: Period,
               actor_id: str,
               role: RoleLike,
               expected_version: Optional[int] = None,
               now: Optional[datetime] = None) -> RevenueProjection:
        """
        Mark a stored projection as submitted, stamping who and when.

        Raises:
            LockedPeriod: inside the lock window for a non-privileged role
            NotFound: no projection has been saved for the key
            Conflict: ``expected_version`` does not match
        """
        now = now or self.lock_policy.clock()
        self.lock_policy.require_editable(role, now)

        current = self._projections.get((schedulable, period))
        if current is None:
            raise NotFound(f"No projection for {schedulable.id} in {period}")
        check_version(current.version, expected_version,
                      f"Projection for {schedulable.id} {period}")

        submitted = replace(
            current,
            is_submitted=True,
            submitted_at=now,
            submitted_by=actor_id,
            version=current.version + 1
        )
        self._store(submitted)
        logger.info("Projection for %s %s submitted by %s", schedulable.id, period, actor_id,
                    extra={"entity_id": schedulable.id, "period": str(period), "actor_id": actor_id})
        return submitted

    def _store(self, projection: RevenueProjection) -> None:
        self._projections[projection.key] = projection
        self.callbacks.on_update_projection(projection)
        if self.cache is not None:
            self.cache.save(self.get_state())

    @staticmethod
    def _validate_changes(changes: Dict) -> None:
        unknown = set(changes) - set(ProjectionInputs.FIELDS)
        if unknown:
            raise ValidationError(f"Unknown projection inputs: {sorted(unknown)}")
        for name, value in changes.items():
            if isinstance(value, bool) or not isinstance(value, Number):
                raise ValidationError(f"{name} must be a number")
            if value < 0:
                raise ValidationError(f"{name} cannot be negative")
