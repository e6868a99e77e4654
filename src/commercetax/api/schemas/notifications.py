from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: int
    read: bool
    notified_on: date
    cuit: str
    amount: Decimal
    trade_code: str
    month: Optional[str] = None

    model_config = {"from_attributes": True}


class NotificationList(BaseModel):
    notifications: list[NotificationResponse]
    total: int
