from datetime import date
from decimal import Decimal
from typing import NamedTuple, Optional

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from commercetax.db.models.filing import Filing
from commercetax.db.models.registry import Taxpayer, Trade
from commercetax.domain.models.period import Period
from commercetax.exceptions import DuplicateFilingError, PersistenceError

PERIOD_CONSTRAINT = "uq_filings_taxpayer_trade_period"


class UnfiledTrade(NamedTuple):
    """An active trade with no filing for the period being backfilled."""

    taxpayer_id: int
    trade_id: int
    trade_code: str
    cuit: str


class FilingRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        taxpayer_id: int,
        trade_id: int,
        amount: Decimal,
        description: Optional[str],
        filed_on_time: bool,
        fee: Decimal,
        filed_on: date,
    ) -> Filing:
        """Insert a filing for the period of ``filed_on``.

        Raises DuplicateFilingError when the period is already filed. The
        session must be rolled back by the caller after any error.
        """
        period = Period.of(filed_on)
        filing = Filing(
            taxpayer_id=taxpayer_id,
            trade_id=trade_id,
            filed_on=filed_on,
            period_year=period.year,
            period_month=period.month,
            amount=amount,
            description=description,
            filed_on_time=filed_on_time,
            computed_fee=fee,
            transmitted=False,
            rectified=False,
        )
        self._session.add(filing)
        try:
            await self._session.flush()
        except IntegrityError as e:
            if _is_period_conflict(e):
                raise DuplicateFilingError(taxpayer_id, trade_id, period.year, period.month) from e
            raise PersistenceError(f"Could not store filing: {e.orig}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not store filing: {e}") from e
        return filing

    async def find_by_period(
        self, taxpayer_id: int, trade_id: int, year: int, month: Optional[int] = None
    ) -> list[Filing]:
        """All filings of the year (or of one month), oldest first. Empty when none."""
        stmt = select(Filing).where(
            Filing.taxpayer_id == taxpayer_id,
            Filing.trade_id == trade_id,
            Filing.period_year == year,
        )
        if month is not None:
            stmt = stmt.where(Filing.period_month == month)
        result = await self._session.execute(stmt.order_by(Filing.filed_on.asc(), Filing.id.asc()))
        return list(result.scalars().all())

    async def get_for_period(
        self, taxpayer_id: int, trade_id: int, period: Period, for_update: bool = False
    ) -> Optional[Filing]:
        stmt = select(Filing).where(
            Filing.taxpayer_id == taxpayer_id,
            Filing.trade_id == trade_id,
            Filing.period_year == period.year,
            Filing.period_month == period.month,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def exists_for_period(self, taxpayer_id: int, trade_id: int, year: int, month: int) -> bool:
        result = await self._session.execute(
            select(
                exists().where(
                    Filing.taxpayer_id == taxpayer_id,
                    Filing.trade_id == trade_id,
                    Filing.period_year == year,
                    Filing.period_month == month,
                )
            )
        )
        return bool(result.scalar())

    async def mark_transmitted(self, taxpayer_id: int, trade_id: int, period: Period) -> int:
        """Flag the period's filing as sent to RAFAM.

        Returns the number of rows that changed; 0 when the filing is missing
        or was already transmitted.
        """
        result = await self._session.execute(
            update(Filing)
            .where(
                Filing.taxpayer_id == taxpayer_id,
                Filing.trade_id == trade_id,
                Filing.period_year == period.year,
                Filing.period_month == period.month,
                Filing.transmitted.is_(False),
            )
            .values(transmitted=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    async def find_unfiled_trades(self, period: Period, limit: int) -> list[UnfiledTrade]:
        """Active trades lacking a filing for ``period`` (left anti-join), by trade id."""
        filed = exists().where(
            Filing.taxpayer_id == Trade.taxpayer_id,
            Filing.trade_id == Trade.id,
            Filing.period_year == period.year,
            Filing.period_month == period.month,
        )
        result = await self._session.execute(
            select(Trade.taxpayer_id, Trade.id, Trade.code, Taxpayer.cuit)
            .join(Taxpayer, Taxpayer.id == Trade.taxpayer_id)
            .where(Trade.active.is_(True), ~filed)
            .order_by(Trade.id.asc())
            .limit(limit)
        )
        return [UnfiledTrade(*row) for row in result.all()]


def _is_period_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return PERIOD_CONSTRAINT in message or "UNIQUE constraint failed: filings." in message
