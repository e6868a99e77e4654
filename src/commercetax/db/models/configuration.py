from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from commercetax.db.session import Base, TimestampMixin

SINGLETON_ID = 1


class TaxConfiguration(TimestampMixin, Base):
    """The single active tax policy row (id is always 1)."""

    __tablename__ = "tax_configuration"
    __table_args__ = (
        CheckConstraint(f"id = {SINGLETON_ID}", name="singleton"),
        CheckConstraint("deadline_day BETWEEN 1 AND 31", name="deadline_day_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=SINGLETON_ID)
    deadline_day: Mapped[int] = mapped_column(Integer)
    current_rate: Mapped[Decimal] = mapped_column(Numeric(8, 6))
    default_amount: Mapped[Decimal] = mapped_column(Numeric(20, 2))
    good_taxpayer_discount: Mapped[Decimal] = mapped_column(Numeric(8, 6), default=Decimal(0))
