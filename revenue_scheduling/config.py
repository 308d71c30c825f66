"""
Engine configuration: single source of truth for cutoffs, default rates,
thresholds and presets.

Import from here rather than hardcoding values in components.
"""

import os
from dataclasses import dataclass
from typing import Dict, List

# ── Lock window ───────────────────────────────────────────────────────────────
LOCK_DAY: int = 25
PRIVILEGED_ROLE: str = "admin"

# ── Hour rollups ──────────────────────────────────────────────────────────────
# "all" sums every shift ever entered for an entity; "period" restricts to one month.
ROLLUP_SCOPE: str = "all"
WEEKS_PER_MONTH: float = 4.33

# ── Projection seed defaults ──────────────────────────────────────────────────
DEFAULT_PRODUCTIVITY: float = 85
PRODUCTIVITY_BUMP: float = 1
MAX_PRODUCTIVITY: float = 100
DEFAULT_SERVICE_SALES_PER_HOUR: float = 150
DEFAULT_RETAIL_PERCENTAGE: float = 20

# Units have no KPI history
UNIT_DEFAULTS: Dict[str, float] = {
    "scheduled_hours": 160,
    "estimated_productivity": 85,
    "service_sales_per_hour": 180,
    "retail_percentage": 25,
}
UNIT_DIVISION_ID: str = "hormone"

# ── Monthly schedules ─────────────────────────────────────────────────────────
# Starting week for an employee with no saved schedule
DEFAULT_WEEK: Dict[str, Dict[str, str]] = {
    "monday": {"start": "09:00", "end": "17:00"},
    "tuesday": {"start": "09:00", "end": "17:00"},
    "wednesday": {"start": "09:00", "end": "17:00"},
    "thursday": {"start": "09:00", "end": "17:00"},
    "friday": {"start": "09:00", "end": "17:00"},
    "saturday": {"start": "10:00", "end": "16:00"},
}

# ── Underperformance thresholds ───────────────────────────────────────────────
MIN_PRODUCTIVITY_RATE: float = 80
MIN_RETAIL_PERCENTAGE: float = 10
MIN_ATTENDANCE_RATE: float = 90

# ── Calculator presets ────────────────────────────────────────────────────────
SCENARIOS: List[Dict] = [
    {"name": "Conservative", "productivity": 75, "sales_per_hour": 180},
    {"name": "Realistic", "productivity": 85, "sales_per_hour": 224},
    {"name": "Optimistic", "productivity": 95, "sales_per_hour": 280},
]
MONTHLY_TARGETS: Dict[str, float] = {
    "division": 250000,
    "individual": 5000,
}

LOCATIONS: List[str] = ["St. Albert", "Spruce Grove", "Sherwood Park", "Wellness", "Remote"]


@dataclass
class Settings:
    """Runtime settings, overridable through environment variables."""

    lock_day: int = LOCK_DAY
    privileged_role: str = PRIVILEGED_ROLE
    rollup_scope: str = ROLLUP_SCOPE
    state_dir: str = "state"
    log_level: str = "INFO"
    log_format: str = "json"
    persist: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``RS_*`` / ``LOG_*`` environment variables."""
        return cls(
            lock_day=int(os.getenv("RS_LOCK_DAY", str(LOCK_DAY))),
            privileged_role=os.getenv("RS_PRIVILEGED_ROLE", PRIVILEGED_ROLE),
            rollup_scope=os.getenv("RS_ROLLUP_SCOPE", ROLLUP_SCOPE).lower(),
            state_dir=os.getenv("RS_STATE_DIR", "state"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json").lower(),
            persist=os.getenv("RS_PERSIST", "false").lower() in ("1", "true", "yes"),
        )

    @property
    def json_logs(self) -> bool:
        return self.log_format != "text"
