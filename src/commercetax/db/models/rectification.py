from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Integer, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from commercetax.db.models.filing import Filing
from commercetax.db.session import Base, IntPrimaryKey, TimestampMixin


class Rectification(IntPrimaryKey, TimestampMixin, Base):
    """A correction of an existing filing. History is append-only."""

    __tablename__ = "rectifications"
    __table_args__ = (
        UniqueConstraint("filing_id", "sequence_number", name="uq_rectifications_filing_sequence"),
    )

    filing_id: Mapped[int] = mapped_column(ForeignKey("filings.id"), index=True)
    taxpayer_id: Mapped[int] = mapped_column(ForeignKey("taxpayers.id"))
    trade_id: Mapped[int] = mapped_column(ForeignKey("trades.id"))
    amount: Mapped[Decimal] = mapped_column(Numeric(20, 2))
    fee: Mapped[Decimal] = mapped_column(Numeric(20, 2))
    description: Mapped[Optional[str]] = mapped_column(Text, default=None)
    transmitted: Mapped[bool] = mapped_column(default=False)
    sequence_number: Mapped[int] = mapped_column(Integer)

    filing: Mapped[Filing] = relationship(back_populates="rectifications")
