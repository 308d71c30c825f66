"""
FastAPI application for the revenue scheduling engine.

Provides REST API endpoints for:
- Loading reference data (employees, units, divisions, KPI history)
- Editing the shift calendar and reading hour rollups
- Monthly schedules per employee with revenue estimates and history
- Reading, updating and submitting revenue projections
- Lock status and underperformance flags

The acting user is taken from the X-Actor-Id / X-Actor-Role headers and is
trusted as given.

Handlers that change engine state are plain functions, so FastAPI runs them
in its threadpool and cache writes stay off the event loop.
"""

from typing import List, Dict, Optional
from dataclasses import asdict
import io
import logging

import pandas as pd
from fastapi import Depends, FastAPI, File, Header, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import Settings
from ..engine import SchedulingEngine
from ..exceptions import (
    Conflict, InvalidRange, LockedPeriod, NotFound, SchedulingError, ValidationError,
)
from ..logging_config import setup_logging
from ..periods import Period
from ..policy import Role
from ..scheduling.models import (
    Division, Employee, HormoneUnit, RollupScope, SchedulableKind, SchedulableRef, WeeklySchedule,
)
from ..scheduling.time_math import RoundingPolicy, duration

settings = Settings.from_env()
setup_logging(level=settings.log_level, json_output=settings.json_logs)
logger = logging.getLogger("revenue_scheduling.api")

VERSION = "0.1.0"


# Pydantic models for API
class EmployeeIn(BaseModel):
    id: str
    name: str
    division_id: str
    locations: List[str] = []
    category: str = ""
    experience_level: str = ""
    is_active: bool = True


class UnitIn(BaseModel):
    unit_id: str
    location: str
    unit_name: str = ""
    np_ids: List[str] = []
    specialist_ids: List[str] = []


class DivisionIn(BaseModel):
    id: str
    name: str
    color: str = "#6b7280"


class DurationRequest(BaseModel):
    start: str
    end: str
    policy: RoundingPolicy = RoundingPolicy.CALENDAR


class DurationResponse(BaseModel):
    hours: float
    policy: RoundingPolicy


class WeeklyScheduleRequest(BaseModel):
    days: Dict[str, Dict[str, str]]


class MonthlyScheduleRequest(BaseModel):
    days: Optional[Dict[str, Dict[str, str]]] = None
    service_sales_per_hour: Optional[float] = None
    productivity_goal: Optional[float] = None
    actual_hours: Optional[float] = None
    booked_hours: Optional[float] = None
    actual_booked_hours: Optional[float] = None
    expected_version: Optional[int] = None


class ShiftRequest(BaseModel):
    start_time: str
    end_time: str
    location: str
    division_id: Optional[str] = None
    expected_version: Optional[int] = None


class ProjectionUpdate(BaseModel):
    scheduled_hours: Optional[float] = None
    estimated_productivity: Optional[float] = None
    service_sales_per_hour: Optional[float] = None
    retail_percentage: Optional[float] = None
    expected_version: Optional[int] = None


class SubmitRequest(BaseModel):
    expected_version: Optional[int] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    reference_data: Dict[str, int]


# Initialize FastAPI app
app = FastAPI(
    title="Revenue Scheduling API",
    description="API for shift scheduling and revenue projections",
    version=VERSION
)

_engine = SchedulingEngine(settings)

ERROR_STATUS = {
    InvalidRange: 400,
    ValidationError: 400,
    NotFound: 404,
    Conflict: 409,
    LockedPeriod: 423,
}


def get_engine() -> SchedulingEngine:
    return _engine


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    status = next((code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)), 400)
    logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status, content={"error": type(exc).__name__, "detail": str(exc)})


def _period(year: int, month: str) -> Period:
    return Period(month, year)


def _ref(kind: SchedulableKind, entity_id: str) -> SchedulableRef:
    return SchedulableRef(kind, entity_id)


@app.get("/", response_model=HealthResponse)
async def health_check(engine: SchedulingEngine = Depends(get_engine)):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=VERSION,
        reference_data={
            "employees": len(engine.employees),
            "units": len(engine.units),
            "divisions": len(engine.divisions),
            "kpi_records": len(engine.history),
        }
    )


@app.post("/reference/employees")
def load_employees(employees: List[EmployeeIn], engine: SchedulingEngine = Depends(get_engine)):
    engine.load_employees(Employee.from_dict(e.model_dump()) for e in employees)
    return {"status": "success", "message": f"Loaded {len(employees)} employees"}


@app.post("/reference/units")
def load_units(units: List[UnitIn], engine: SchedulingEngine = Depends(get_engine)):
    engine.load_units(HormoneUnit.from_dict(u.model_dump()) for u in units)
    return {"status": "success", "message": f"Loaded {len(units)} units"}


@app.post("/reference/divisions")
def load_divisions(divisions: List[DivisionIn], engine: SchedulingEngine = Depends(get_engine)):
    engine.load_divisions(Division.from_dict(d.model_dump()) for d in divisions)
    return {"status": "success", "message": f"Loaded {len(divisions)} divisions"}


@app.post("/reference/kpi")
def load_kpi_data(file: UploadFile = File(...), engine: SchedulingEngine = Depends(get_engine)):
    """
    Load employee KPI history from a CSV file.

    Expected CSV columns: employee_id, month, year, productivity_rate,
    retail_percentage, attendance_rate, service_sales_per_hour
    """
    if not file.filename.endswith('.csv'):
        raise HTTPException(status_code=400, detail="File must be CSV format")

    content = file.file.read()
    try:
        df = pd.read_csv(io.StringIO(content.decode('utf-8')), dtype={'employee_id': str})
    except (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise HTTPException(status_code=400, detail=f"Error processing file: {str(e)}")

    count = engine.load_kpi_dataframe(df)
    return {"status": "success", "message": f"Loaded {count} KPI records"}


@app.post("/time/duration", response_model=DurationResponse)
async def compute_duration(request: DurationRequest):
    """Hours between two HH:MM times under the chosen rounding policy."""
    return DurationResponse(hours=duration(request.start, request.end, request.policy), policy=request.policy)


@app.post("/schedules/weekly-estimate")
async def weekly_estimate(request: WeeklyScheduleRequest):
    """Weekly and monthly hours for a recurring schedule (half-hour rounding)."""
    schedule = WeeklySchedule.from_dict(request.days)
    return {
        "days": schedule.to_dict(),
        "weekly_hours": schedule.weekly_hours(),
        "monthly_hours": schedule.monthly_hours()
    }


@app.get("/schedules/{employee_id}/history")
async def schedule_history(employee_id: str, engine: SchedulingEngine = Depends(get_engine)):
    """Saved monthly schedules for an employee, newest first."""
    return [s.to_dict() for s in engine.schedule_history(employee_id)]


@app.get("/schedules/{employee_id}/{year}/{month}")
async def get_monthly_schedule(employee_id: str, year: int, month: str,
                               engine: SchedulingEngine = Depends(get_engine)):
    return engine.monthly_schedule(employee_id, _period(year, month)).to_dict()


@app.put("/schedules/{employee_id}/{year}/{month}")
def save_monthly_schedule(employee_id: str, year: int, month: str,
                          request: MonthlyScheduleRequest,
                          x_actor_id: str = Header(...),
                          x_actor_role: str = Header(...),
                          engine: SchedulingEngine = Depends(get_engine)):
    fields = request.model_dump(exclude_none=True, exclude={'days', 'expected_version'})
    schedule = engine.save_monthly_schedule(
        employee_id, _period(year, month), x_actor_id, x_actor_role,
        weekly_schedule=WeeklySchedule.from_dict(request.days) if request.days is not None else None,
        expected_version=request.expected_version, **fields
    )
    return schedule.to_dict()


@app.get("/shifts")
async def list_shifts(kind: Optional[SchedulableKind] = None,
                      entity_id: Optional[str] = None,
                      engine: SchedulingEngine = Depends(get_engine)):
    ref = _ref(kind, entity_id) if kind and entity_id else None
    return [s.to_dict() for s in engine.store.entries(ref)]


@app.put("/shifts/{kind}/{entity_id}/{day}")
def save_shift(kind: SchedulableKind, entity_id: str, day: str, request: ShiftRequest,
               x_actor_id: str = Header(...),
               x_actor_role: str = Header(...),
               engine: SchedulingEngine = Depends(get_engine)):
    entry = engine.save_shift(
        _ref(kind, entity_id), day, request.start_time, request.end_time, request.location,
        actor_id=x_actor_id, role=x_actor_role, division_id=request.division_id,
        expected_version=request.expected_version
    )
    return entry.to_dict()


@app.delete("/shifts/{kind}/{entity_id}/{day}")
def delete_shift(kind: SchedulableKind, entity_id: str, day: str,
                 expected_version: Optional[int] = None,
                 x_actor_role: str = Header(...),
                 engine: SchedulingEngine = Depends(get_engine)):
    removed = engine.delete_shift(_ref(kind, entity_id), day, x_actor_role, expected_version=expected_version)
    return {"status": "success", "removed": removed.to_dict() if removed else None}


@app.get("/shifts/{kind}/{entity_id}/rollup")
async def shift_rollup(kind: SchedulableKind, entity_id: str,
                       scope: Optional[RollupScope] = None,
                       month: Optional[str] = None,
                       year: Optional[int] = None,
                       engine: SchedulingEngine = Depends(get_engine)):
    period = _period(year, month) if month and year else None
    hours = engine.scheduled_hours(_ref(kind, entity_id), period, scope)
    return {"entity_id": entity_id, "scope": (scope or engine.store.rollup_scope).value, "hours": hours}


@app.get("/lock")
async def lock_status(x_actor_role: str = Header(Role.DIVISION_MANAGER.value),
                      engine: SchedulingEngine = Depends(get_engine)):
    return engine.lock_status(x_actor_role)


@app.get("/projections/stats/{year}/{month}")
async def projection_stats(year: int, month: str, engine: SchedulingEngine = Depends(get_engine)):
    return engine.submission_stats(_period(year, month))


@app.get("/projections/accuracy/{year}/{month}")
async def projection_accuracy(year: int, month: str, engine: SchedulingEngine = Depends(get_engine)):
    return engine.projection_accuracy(_period(year, month))


@app.get("/projections/{kind}/{entity_id}/{year}/{month}")
async def get_projection(kind: SchedulableKind, entity_id: str, year: int, month: str,
                         engine: SchedulingEngine = Depends(get_engine)):
    """Stored projection, or auto-seeded defaults when none has been saved."""
    return engine.projection(_ref(kind, entity_id), _period(year, month)).to_dict()


@app.put("/projections/{kind}/{entity_id}/{year}/{month}")
def update_projection(kind: SchedulableKind, entity_id: str, year: int, month: str,
                      request: ProjectionUpdate,
                      x_actor_role: str = Header(...),
                      engine: SchedulingEngine = Depends(get_engine)):
    changes = request.model_dump(exclude_none=True, exclude={'expected_version'})
    projection = engine.update_projection(
        _ref(kind, entity_id), _period(year, month), x_actor_role, changes,
        expected_version=request.expected_version
    )
    return projection.to_dict()


@app.post("/projections/{kind}/{entity_id}/{year}/{month}/submit")
def submit_projection(kind: SchedulableKind, entity_id: str, year: int, month: str,
                      request: Optional[SubmitRequest] = None,
                      x_actor_id: str = Header(...),
                      x_actor_role: str = Header(...),
                      engine: SchedulingEngine = Depends(get_engine)):
    projection = engine.submit_projection(
        _ref(kind, entity_id), _period(year, month), x_actor_id, x_actor_role,
        expected_version=request.expected_version if request else None
    )
    return projection.to_dict()


@app.get("/projections/{kind}/{entity_id}/{year}/{month}/scenarios")
async def projection_scenarios(kind: SchedulableKind, entity_id: str, year: int, month: str,
                               engine: SchedulingEngine = Depends(get_engine)):
    return [asdict(s) for s in engine.scenarios(_ref(kind, entity_id), _period(year, month))]


@app.get("/employees/{employee_id}/underperformance/{year}/{month}")
async def employee_underperformance(employee_id: str, year: int, month: str,
                                    engine: SchedulingEngine = Depends(get_engine)):
    flag = engine.underperformance(employee_id, _period(year, month))
    return {
        "employee_id": employee_id,
        "is_underperforming": flag is not None,
        "flag": flag.to_dict() if flag else None
    }


@app.get("/employees/{employee_id}/coaching/{year}/{month}")
async def employee_coaching(employee_id: str, year: int, month: str,
                            engine: SchedulingEngine = Depends(get_engine)):
    snapshot = engine.coaching_snapshot(employee_id, _period(year, month))
    return {
        "employee_id": snapshot.employee_id,
        "period": str(snapshot.period),
        "status": snapshot.status,
        "rows": snapshot.rows
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
