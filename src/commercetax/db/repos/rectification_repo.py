from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from commercetax.db.models.filing import Filing
from commercetax.db.models.rectification import Rectification
from commercetax.db.repos.filing_repo import FilingRepo
from commercetax.domain.models.period import Period
from commercetax.exceptions import FilingNotFoundError, PersistenceError


def rectification_description(month_label: str, timestamp: datetime) -> str:
    return f"Rectified month of {month_label}. {timestamp:%Y-%m-%d %H:%M:%S}"


class RectificationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def next_sequence_number(self, taxpayer_id: int, trade_id: int, period: Period) -> int:
        """Highest sequence number recorded for the filing plus one (1 when none).

        Only race-free when called inside the transaction that inserts, with
        the parent filing row locked.
        """
        result = await self._session.execute(
            select(func.max(Rectification.sequence_number))
            .join(Filing, Filing.id == Rectification.filing_id)
            .where(
                Filing.taxpayer_id == taxpayer_id,
                Filing.trade_id == trade_id,
                Filing.period_year == period.year,
                Filing.period_month == period.month,
            )
        )
        return (result.scalar() or 0) + 1

    async def record(
        self,
        taxpayer_id: int,
        trade_id: int,
        period: Period,
        new_amount: Decimal,
        new_fee: Decimal,
        month_label: str,
        timestamp: datetime,
    ) -> Rectification:
        """Append a rectification and copy the new values onto the parent filing."""
        filing = await FilingRepo(self._session).get_for_period(
            taxpayer_id, trade_id, period, for_update=True
        )
        if filing is None:
            raise FilingNotFoundError(
                f"No filing for trade {trade_id} of taxpayer {taxpayer_id} in {period}"
            )

        sequence_number = await self.next_sequence_number(taxpayer_id, trade_id, period)
        rectification = Rectification(
            filing=filing,
            taxpayer_id=taxpayer_id,
            trade_id=trade_id,
            amount=new_amount,
            fee=new_fee,
            description=rectification_description(month_label, timestamp),
            transmitted=False,
            sequence_number=sequence_number,
        )
        self._session.add(rectification)

        # Readers of the filing row see the latest values; history stays in rectifications
        filing.amount = new_amount
        filing.computed_fee = new_fee
        filing.rectified = True

        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not store rectification: {e}") from e
        return rectification

    async def get(self, rectification_id: int) -> Optional[Rectification]:
        result = await self._session.execute(select(Rectification).where(Rectification.id == rectification_id))
        return result.scalar_one_or_none()

    async def mark_transmitted(self, rectification_id: int) -> int:
        """Rows changed from not transmitted to transmitted (0 or 1)."""
        result = await self._session.execute(
            update(Rectification)
            .where(Rectification.id == rectification_id, Rectification.transmitted.is_(False))
            .values(transmitted=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    async def list_for_filing(self, taxpayer_id: int, trade_id: int, period: Period) -> list[Rectification]:
        result = await self._session.execute(
            select(Rectification)
            .join(Filing, Filing.id == Rectification.filing_id)
            .where(
                Filing.taxpayer_id == taxpayer_id,
                Filing.trade_id == trade_id,
                Filing.period_year == period.year,
                Filing.period_month == period.month,
            )
            .order_by(Rectification.sequence_number.asc())
        )
        return list(result.scalars().all())
