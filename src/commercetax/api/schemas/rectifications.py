from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class RectifyRequest(BaseModel):
    amount: Decimal
    month: Optional[str] = None  # Label of the corrected month; defaults to the month before the period


class RectificationResponse(BaseModel):
    id: int
    filing_id: int
    taxpayer_id: int
    trade_id: int
    amount: Decimal
    fee: Decimal
    description: Optional[str] = None
    transmitted: bool
    sequence_number: int

    model_config = {"from_attributes": True}


class RectificationList(BaseModel):
    rectifications: list[RectificationResponse]
    total: int
