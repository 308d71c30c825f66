"""
Monthly reporting periods.

Months are stored as zero-padded strings (``"01"``..``"12"``) next to an
integer year, matching how KPI records and projections are keyed.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Union

from .exceptions import ValidationError


@dataclass(frozen=True)
class Period:
    """A calendar month."""

    month: str
    year: int

    def __post_init__(self):
        try:
            number = int(self.month)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid month {self.month!r}")
        if not 1 <= number <= 12:
            raise ValidationError(f"Invalid month {self.month!r}")
        object.__setattr__(self, "month", f"{number:02d}")

    @classmethod
    def of(cls, day: Union[date, datetime]) -> "Period":
        """Period containing the given day."""
        return cls(f"{day.month:02d}", day.year)

    @property
    def month_number(self) -> int:
        return int(self.month)

    def shift(self, months: int) -> "Period":
        """Period ``months`` away from this one, wrapping year edges."""
        index = self.year * 12 + (self.month_number - 1) + months
        return Period(f"{index % 12 + 1:02d}", index // 12)

    def previous(self) -> "Period":
        """Prior month; January looks back to December of the previous year."""
        return self.shift(-1)

    def two_months_prior(self) -> "Period":
        """Two months back; January and February wrap into the previous year."""
        return self.shift(-2)

    def contains(self, day: date) -> bool:
        return day.year == self.year and day.month == self.month_number

    def key(self) -> str:
        return f"{self.year:04d}-{self.month}"

    def __str__(self) -> str:
        return self.key()
