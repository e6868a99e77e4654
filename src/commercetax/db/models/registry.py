from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from commercetax.db.session import Base, IntPrimaryKey, TimestampMixin


class Taxpayer(IntPrimaryKey, TimestampMixin, Base):
    """A registered taxpayer. Registration itself happens elsewhere."""

    __tablename__ = "taxpayers"

    cuit: Mapped[str] = mapped_column(String(20), unique=True)
    name: Mapped[str] = mapped_column(String(255))
    good_taxpayer: Mapped[bool] = mapped_column(default=False)

    trades: Mapped[list["Trade"]] = relationship(back_populates="taxpayer", lazy="selectin")


class Trade(IntPrimaryKey, TimestampMixin, Base):
    """A commerce registered to a taxpayer. Only active trades owe filings."""

    __tablename__ = "trades"

    taxpayer_id: Mapped[int] = mapped_column(ForeignKey("taxpayers.id"), index=True)
    code: Mapped[str] = mapped_column(String(50))
    name: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    active: Mapped[bool] = mapped_column(default=False)

    taxpayer: Mapped[Taxpayer] = relationship(back_populates="trades", lazy="selectin")
