"""
KPI history lookups.

Historical KPI records are owned by the host application; this module only
indexes them by (employee, month, year) for trailing-month lookups.
"""

from typing import Dict, Iterable, List, Optional

import pandas as pd

from ..exceptions import ValidationError
from ..periods import Period
from .models import KPIRecord


class KPIHistory:
    """Read-only index of monthly KPI records."""

    REQUIRED_COLUMNS = [
        'employee_id', 'month', 'year', 'productivity_rate',
        'retail_percentage', 'attendance_rate', 'service_sales_per_hour'
    ]

    def __init__(self, records: Optional[Iterable[KPIRecord]] = None):
        self._records: Dict[tuple, KPIRecord] = {}
        for record in records or []:
            self.add(record)

    def add(self, record: KPIRecord) -> None:
        """Add or replace the record for its (employee, period)."""
        self._records[(record.employee_id, record.period)] = record

    def load_dataframe(self, data: pd.DataFrame) -> int:
        """
        Load KPI rows from a DataFrame.

        Args:
            data: DataFrame with at least the columns in ``REQUIRED_COLUMNS``

        Returns:
            Number of records loaded

        Raises:
            ValidationError: a required column is missing, or a row has a blank or non-numeric value
        """
        missing_cols = [col for col in self.REQUIRED_COLUMNS if col not in data.columns]
        if missing_cols:
            raise ValidationError(f"Missing required columns: {missing_cols}")

        data = data.astype(object).where(pd.notna(data), None)
        # Parse every row before adding any, so a bad file loads nothing
        records = [KPIRecord.from_dict(row) for row in data.to_dict(orient='records')]
        for record in records:
            self.add(record)
        return len(records)

    def find(self, employee_id: str, period: Period) -> Optional[KPIRecord]:
        return self._records.get((employee_id, period))

    def prior_month(self, employee_id: str, period: Period) -> Optional[KPIRecord]:
        """Record for the month before ``period``."""
        return self.find(employee_id, period.previous())

    def two_months_prior(self, employee_id: str, period: Period) -> Optional[KPIRecord]:
        return self.find(employee_id, period.two_months_prior())

    def records(self) -> List[KPIRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)
