"""
Monthly lock window for schedule and projection edits.

Edits freeze after 23:59:59 on the lock day (the 25th) of the *current*
calendar month, for everyone except the privileged role. The cutoff is taken
from the wall clock, not from the period being edited: once this month's
cutoff has passed, every period reads as locked, however old it is.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Union

from .config import LOCK_DAY, PRIVILEGED_ROLE
from .exceptions import LockedPeriod

logger = logging.getLogger(__name__)


class Role(str, Enum):
    ADMIN = "admin"
    DIVISION_MANAGER = "division-manager"
    EXECUTIVE = "executive"


class LockState(str, Enum):
    OPEN = "open"
    LOCKED = "locked"


RoleLike = Union[Role, str]


def _role_value(role: RoleLike) -> str:
    return role.value if isinstance(role, Role) else str(role)


class LockPolicy:
    """
    Decides whether scheduling and projection edits are permitted.

    State is never cached: every check reads the clock again.
    """

    def __init__(self,
                 lock_day: int = LOCK_DAY,
                 privileged_role: RoleLike = PRIVILEGED_ROLE,
                 clock: Callable[[], datetime] = datetime.now):
        if not 1 <= lock_day <= 28:
            raise ValueError("lock_day must be between 1 and 28")
        self.lock_day = lock_day
        self.privileged_role = _role_value(privileged_role)
        self.clock = clock

    def cutoff(self, now: datetime) -> datetime:
        """The lock instant for ``now``'s own calendar month."""
        return datetime(now.year, now.month, self.lock_day, 23, 59, 59, tzinfo=now.tzinfo)

    def window_state(self, now: Optional[datetime] = None) -> LockState:
        """Lock state from the clock alone, ignoring the actor."""
        now = now or self.clock()
        return LockState.LOCKED if now > self.cutoff(now) else LockState.OPEN

    def is_privileged(self, role: RoleLike) -> bool:
        return _role_value(role) == self.privileged_role

    def can_edit(self, role: RoleLike, lock_state: LockState) -> bool:
        return lock_state == LockState.OPEN or self.is_privileged(role)

    def can_edit_projection(self, role: RoleLike, lock_state: LockState, is_submitted: bool) -> bool:
        """Submitted projections are read-only except for the privileged role."""
        if self.is_privileged(role):
            return True
        return lock_state == LockState.OPEN and not is_submitted

    def is_locked(self, now: Optional[datetime] = None, role: RoleLike = Role.DIVISION_MANAGER) -> bool:
        """True when ``role`` may not edit at ``now``."""
        return not self.can_edit(role, self.window_state(now))

    def require_editable(self, role: RoleLike, now: Optional[datetime] = None) -> None:
        """
        Raise if ``role`` is inside the lock window.

        Raises:
            LockedPeriod: edits are frozen for this role
        """
        now = now or self.clock()
        if self.is_locked(now, role):
            logger.warning("Edit by role %s refused after cutoff %s",
                           _role_value(role), self.cutoff(now).isoformat())
            raise LockedPeriod(
                f"Edits are locked after {self.cutoff(now):%Y-%m-%d %H:%M:%S}"
            )
