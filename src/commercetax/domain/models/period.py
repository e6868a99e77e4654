"""Calendar month used as the filing period key."""

import calendar
from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class Period(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int = Field(ge=1900, le=9999)
    month: int = Field(ge=1, le=12)

    @classmethod
    def of(cls, day: date) -> "Period":
        return cls(year=day.year, month=day.month)

    def previous(self) -> "Period":
        # January wraps to December of the prior year
        if self.month == 1:
            return Period(year=self.year - 1, month=12)
        return Period(year=self.year, month=self.month - 1)

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.month]

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"
