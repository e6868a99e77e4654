from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class ConfigurationResponse(BaseModel):
    deadline_day: int
    current_rate: Decimal
    default_amount: Decimal
    good_taxpayer_discount: Decimal

    model_config = {"from_attributes": True}


class ConfigurationUpdateRequest(BaseModel):
    deadline_day: int = Field(ge=1, le=31)
    current_rate: Decimal = Field(ge=0, le=1)
    default_amount: Decimal = Field(ge=0)
    good_taxpayer_discount: Optional[Decimal] = Field(default=None, ge=0, le=1)  # None keeps the stored value
