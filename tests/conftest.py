"""
conftest.py - Shared pytest fixtures for the revenue scheduling test suite.

All tests are pure unit tests: the engine keeps its state in memory, and
persistence tests write only under pytest's ``tmp_path``.

Import-path bootstrapping:
    The repository root is inserted into sys.path so that
    ``revenue_scheduling.*`` imports resolve without an editable install.
"""

import os
import sys
from datetime import datetime

import pytest

_ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _ROOT_DIR not in sys.path:
    sys.path.insert(0, _ROOT_DIR)

from revenue_scheduling.config import Settings  # noqa: E402
from revenue_scheduling.engine import SchedulingEngine  # noqa: E402
from revenue_scheduling.periods import Period  # noqa: E402
from revenue_scheduling.persistence import RecordingCallbacks  # noqa: E402
from revenue_scheduling.policy import LockPolicy  # noqa: E402
from revenue_scheduling.projections.models import KPIRecord  # noqa: E402
from revenue_scheduling.scheduling.models import Division, Employee, HormoneUnit  # noqa: E402

# Before the 25th: edits open. After the 25th: locked for non-admins.
OPEN_NOW = datetime(2025, 3, 10, 9, 0)
LOCKED_NOW = datetime(2025, 3, 26, 8, 0)


class FakeClock:
    """Settable wall clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


# ---------------------------------------------------------------------------
# Clock / policy fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return FakeClock(OPEN_NOW)


@pytest.fixture
def lock_policy(clock):
    return LockPolicy(clock=clock)


@pytest.fixture
def callbacks():
    return RecordingCallbacks()


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

@pytest.fixture
def divisions():
    return [
        Division("laser", "Laser", "#3b82f6"),
        Division("injectables", "Injectables", "#ec4899"),
    ]


@pytest.fixture
def employees():
    """
    e1, e3 in laser; e2 in injectables; e4 is inactive and never counted.
    """
    return [
        Employee("e1", "Avery", "laser", ["St. Albert"], "technician", "senior"),
        Employee("e2", "Jordan", "injectables", ["Sherwood Park"], "nurse", "junior"),
        Employee("e3", "Sam", "laser", ["Spruce Grove", "St. Albert"], "technician", "junior"),
        Employee("e4", "Riley", "laser", ["St. Albert"], "technician", "senior", is_active=False),
    ]


@pytest.fixture
def units():
    return [HormoneUnit("u1", "Spruce Grove", "Hormone Unit 1", ["np1"], ["sp1"])]


@pytest.fixture
def kpi_records():
    """
    e1 is healthy in Jan and Feb 2025; e2 misses productivity and retail in Feb.
    """
    return [
        KPIRecord("e1", Period("01", 2025), productivity_rate=84, retail_percentage=15,
                  attendance_rate=96, service_sales_per_hour=200, hours_sold=140,
                  division_id="laser", average_ticket=110, new_clients=35),
        KPIRecord("e1", Period("02", 2025), productivity_rate=88, retail_percentage=18,
                  attendance_rate=97, service_sales_per_hour=210, hours_sold=150,
                  division_id="laser", average_ticket=120, new_clients=40),
        KPIRecord("e2", Period("02", 2025), productivity_rate=76, retail_percentage=8,
                  attendance_rate=95, service_sales_per_hour=160, hours_sold=120,
                  division_id="injectables"),
    ]


@pytest.fixture
def engine(clock, callbacks, employees, units, divisions, kpi_records):
    """In-memory engine loaded with the reference data above, clock at OPEN_NOW."""
    eng = SchedulingEngine(Settings(), callbacks=callbacks, clock=clock, persist=False)
    eng.load_divisions(divisions)
    eng.load_employees(employees)
    eng.load_units(units)
    eng.load_kpi_records(kpi_records)
    return eng
