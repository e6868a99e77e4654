"""Filing lifecycle: submission, rectification and transmission marks."""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from commercetax.db.models.filing import Filing
from commercetax.db.models.rectification import Rectification
from commercetax.db.repos.configuration_repo import ConfigurationRepo
from commercetax.db.repos.filing_repo import FilingRepo
from commercetax.db.repos.rectification_repo import RectificationRepo
from commercetax.db.repos.registry_repo import RegistryRepo
from commercetax.domain.enums import FilingEvent
from commercetax.domain.models.period import Period
from commercetax.domain.models.policy import TaxPolicy
from commercetax.events import EventBus
from commercetax.exceptions import (
    ConfigurationMissingError,
    DuplicateFilingError,
    PersistenceError,
    TradeNotFoundError,
    ValidationError,
)
from commercetax.filing.deadline import is_due
from commercetax.filing.locks import KeyedLock
from commercetax.filing.rate_calculator import compute_fee

logger = logging.getLogger(__name__)


def filing_key(taxpayer_id: int, trade_id: int, period: Period) -> tuple:
    return ("filing", taxpayer_id, trade_id, period.year, period.month)


def validate_amount(amount: Optional[Decimal]) -> Decimal:
    if amount is None:
        raise ValidationError("Amount is required")
    amount = Decimal(amount)
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    return amount


def validate_ids(**ids: Optional[int]) -> None:
    missing = [name for name, value in ids.items() if value is None or value <= 0]
    if missing:
        raise ValidationError(f"Missing or invalid identifiers: {', '.join(missing)}")


class FilingService:
    """Write operations on filings. Each public method is one transaction.

    Writes for one (taxpayer, trade, period) key are serialized through
    ``locks``; the storage constraints catch writers from other processes.
    """

    def __init__(
        self,
        session: AsyncSession,
        event_bus: EventBus,
        locks: KeyedLock,
        clock: Callable[[], date] = date.today,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._session = session
        self._events = event_bus
        self._locks = locks
        self._clock = clock
        self._now = now

    async def submit(
        self,
        taxpayer_id: int,
        trade_id: int,
        amount: Decimal,
        description: Optional[str] = None,
    ) -> Filing:
        """File the current period's declaration for a trade."""
        validate_ids(taxpayer_id=taxpayer_id, trade_id=trade_id)
        amount = validate_amount(amount)

        registry = RegistryRepo(self._session)
        trade = await registry.get_trade(trade_id)
        if trade is None:
            raise TradeNotFoundError(f"Trade {trade_id} not found")
        if trade.taxpayer_id != taxpayer_id:
            raise ValidationError(f"Trade {trade_id} does not belong to taxpayer {taxpayer_id}")
        if not trade.active:
            raise ValidationError(f"Trade {trade_id} is not active")

        policy = await self._load_policy()
        good_taxpayer = await registry.is_good_taxpayer(taxpayer_id)
        fee = compute_fee(amount, policy, good_taxpayer)

        today = self._clock()
        period = Period.of(today)
        filed_on_time = not is_due(today, policy.deadline_day)

        repo = FilingRepo(self._session)
        async with self._locks.acquire(filing_key(taxpayer_id, trade_id, period)):
            try:
                if await repo.exists_for_period(taxpayer_id, trade_id, period.year, period.month):
                    raise DuplicateFilingError(taxpayer_id, trade_id, period.year, period.month)
                filing = await repo.create(
                    taxpayer_id=taxpayer_id,
                    trade_id=trade_id,
                    amount=amount,
                    description=description,
                    filed_on_time=filed_on_time,
                    fee=fee,
                    filed_on=today,
                )
                await self._session.commit()
                await self._session.refresh(filing, attribute_names=["trade"])
            except SQLAlchemyError as e:
                await self._session.rollback()
                raise PersistenceError(f"Could not file declaration: {e}") from e
            except Exception:
                await self._session.rollback()
                raise

        logger.info(
            "Filing %s for trade %d of taxpayer %d: amount=%s fee=%s on_time=%s",
            period, trade_id, taxpayer_id, amount, fee, filed_on_time,
        )
        await self._events.publish(
            FilingEvent.FILING_CREATED,
            taxpayer_id=taxpayer_id,
            trade_id=trade_id,
            period=str(period),
            amount=str(amount),
            fee=str(fee),
            filed_on_time=filed_on_time,
        )
        return filing

    async def rectify(
        self,
        taxpayer_id: int,
        trade_id: int,
        period: Period,
        amount: Decimal,
        month_label: Optional[str] = None,
    ) -> Rectification:
        """Correct an existing filing with a new declared amount.

        The fee is recomputed with the full rate algorithm, good taxpayer
        discount included.
        """
        validate_ids(taxpayer_id=taxpayer_id, trade_id=trade_id)
        amount = validate_amount(amount)

        policy = await self._load_policy()
        good_taxpayer = await RegistryRepo(self._session).is_good_taxpayer(taxpayer_id)
        fee = compute_fee(amount, policy, good_taxpayer)
        label = month_label or period.previous().month_name

        repo = RectificationRepo(self._session)
        async with self._locks.acquire(filing_key(taxpayer_id, trade_id, period)):
            try:
                rectification = await repo.record(
                    taxpayer_id, trade_id, period, amount, fee, label, self._now(),
                )
                await self._session.commit()
            except SQLAlchemyError as e:
                await self._session.rollback()
                raise PersistenceError(f"Could not rectify filing: {e}") from e
            except Exception:
                await self._session.rollback()
                raise

        logger.info(
            "Rectification #%d of %s for trade %d of taxpayer %d: amount=%s fee=%s",
            rectification.sequence_number, period, trade_id, taxpayer_id, amount, fee,
        )
        await self._events.publish(
            FilingEvent.FILING_RECTIFIED,
            taxpayer_id=taxpayer_id,
            trade_id=trade_id,
            period=str(period),
            rectification_id=rectification.id,
            sequence_number=rectification.sequence_number,
        )
        return rectification

    async def mark_filing_transmitted(self, taxpayer_id: int, trade_id: int, period: Period) -> int:
        """Returns the number of matching filings (0 means not found).

        The flag flips once; marking an already transmitted filing matches it
        without changing it or emitting another event.
        """
        repo = FilingRepo(self._session)
        try:
            changed = await repo.mark_transmitted(taxpayer_id, trade_id, period)
            await self._session.commit()
            found = changed or int(
                await repo.exists_for_period(taxpayer_id, trade_id, period.year, period.month)
            )
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError(f"Could not mark filing as transmitted: {e}") from e
        if changed:
            await self._events.publish(
                FilingEvent.FILING_TRANSMITTED,
                taxpayer_id=taxpayer_id, trade_id=trade_id, period=str(period),
            )
        return found

    async def mark_rectification_transmitted(self, rectification_id: int) -> int:
        repo = RectificationRepo(self._session)
        try:
            changed = await repo.mark_transmitted(rectification_id)
            await self._session.commit()
            found = changed or int(await repo.get(rectification_id) is not None)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError(f"Could not mark rectification as transmitted: {e}") from e
        if changed:
            await self._events.publish(FilingEvent.RECTIFICATION_TRANSMITTED, rectification_id=rectification_id)
        return found

    async def _load_policy(self) -> TaxPolicy:
        try:
            return await ConfigurationRepo(self._session).get_policy()
        except ConfigurationMissingError:
            logger.error("Tax configuration row is missing; fees cannot be computed")
            raise

