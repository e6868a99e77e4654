from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class BackfillRunResponse(BaseModel):
    trigger: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    batches: int
    inserted: int
    error: Optional[str] = None
    error_code: Optional[str] = None


class BackfillStatusResponse(BaseModel):
    state: str
    deadline_day: Optional[int] = None
    next_run_at: Optional[datetime] = None
    last_run: Optional[BackfillRunResponse] = None


class TradeActivationResponse(BaseModel):
    trade_id: int
    active: bool
    backfill: Optional[BackfillRunResponse] = None
