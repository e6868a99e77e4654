"""Pydantic schemas for filing API."""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class FilingCreateRequest(BaseModel):
    taxpayer_id: int
    trade_id: int
    amount: Decimal  # Positivity checked by the service so the error says "invalid amount"
    description: Optional[str] = None


class FilingResponse(BaseModel):
    id: int
    taxpayer_id: int
    trade_id: int
    cuit: Optional[str] = None
    trade_code: Optional[str] = None
    filed_on: date
    period_year: int
    period_month: int
    amount: Decimal
    description: Optional[str] = None
    filed_on_time: bool
    computed_fee: Decimal
    transmitted: bool
    rectified: bool


class FilingList(BaseModel):
    filings: list[FilingResponse]
    total: int


class TransmittedResponse(BaseModel):
    message: str
    affected: int
