"""Tax policy value object, read from the configuration singleton."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class TaxPolicy(BaseModel):
    """Immutable snapshot of the active tax policy.

    Read once per operation and passed explicitly to the rate calculator and
    the backfill engine.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    deadline_day: int = Field(ge=1, le=31)
    current_rate: Decimal = Field(ge=0, le=1)
    default_amount: Decimal = Field(ge=0)
    good_taxpayer_discount: Decimal = Field(default=Decimal(0), ge=0, le=1)
