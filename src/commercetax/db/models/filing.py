from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Index, Numeric, SmallInteger, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from commercetax.db.session import Base, IntPrimaryKey, TimestampMixin


class Filing(IntPrimaryKey, TimestampMixin, Base):
    """A monthly sworn declaration (DDJJ) for one trade of one taxpayer.

    The period key is (period_year, period_month), derived from ``filed_on``.
    At most one row exists per (taxpayer, trade, period); the unique
    constraint is the arbiter when two writers race.
    """

    __tablename__ = "filings"
    __table_args__ = (
        UniqueConstraint(
            "taxpayer_id", "trade_id", "period_year", "period_month",
            name="uq_filings_taxpayer_trade_period",
        ),
        Index("ix_filings_period", "period_year", "period_month"),
    )

    taxpayer_id: Mapped[int] = mapped_column(ForeignKey("taxpayers.id"))
    trade_id: Mapped[int] = mapped_column(ForeignKey("trades.id"))
    filed_on: Mapped[date]
    period_year: Mapped[int] = mapped_column(SmallInteger)
    period_month: Mapped[int] = mapped_column(SmallInteger)
    amount: Mapped[Decimal] = mapped_column(Numeric(20, 2))
    description: Mapped[Optional[str]] = mapped_column(Text, default=None)
    filed_on_time: Mapped[bool] = mapped_column(default=False)
    computed_fee: Mapped[Decimal] = mapped_column(Numeric(20, 2))
    transmitted: Mapped[bool] = mapped_column(default=False)
    rectified: Mapped[bool] = mapped_column(default=False)

    trade: Mapped["Trade"] = relationship(lazy="selectin")  # noqa: F821
    rectifications: Mapped[list["Rectification"]] = relationship(  # noqa: F821
        back_populates="filing",
        lazy="selectin",
        order_by="Rectification.sequence_number",
    )

    @property
    def period_date(self) -> date:
        return date(self.period_year, self.period_month, 1)
