from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from commercetax.db.session import Base, IntPrimaryKey, TimestampMixin


class Notification(IntPrimaryKey, TimestampMixin, Base):
    """Operator-facing notice that a placeholder filing was generated."""

    __tablename__ = "notifications"

    read: Mapped[bool] = mapped_column(default=False)
    notified_on: Mapped[date]
    cuit: Mapped[str] = mapped_column(String(20))
    amount: Mapped[Decimal] = mapped_column(Numeric(20, 2))
    trade_code: Mapped[str] = mapped_column(String(50))
    month: Mapped[Optional[str]] = mapped_column(String(20), default=None)
