"""Placeholder filings for active trades that missed the deadline.

``BackfillEngine.run_once`` handles one bounded batch in one transaction.
``BackfillCoordinator`` drives batches until the queue is drained, then waits
and re-checks once before going idle, and never lets two drains overlap.
"""

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from commercetax.db.repos.configuration_repo import ConfigurationRepo
from commercetax.db.repos.filing_repo import FilingRepo, UnfiledTrade
from commercetax.db.repos.notification_repo import NotificationRepo
from commercetax.domain.enums import BackfillState, BackfillTrigger, FilingEvent
from commercetax.domain.models.period import Period
from commercetax.events import EventBus
from commercetax.exceptions import ConfigurationMissingError, DuplicateFilingError, PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100
DEFAULT_IDLE_SECONDS = 60.0
DEFAULT_MAX_ITERATIONS = 1000

# Key for pg_try_advisory_xact_lock; other dialects rely on the in-process lock
ADVISORY_LOCK_KEY = 0x44444A4A


def placeholder_description(period: Period) -> str:
    return f"Filing generated by the system. Must rectify the month of {period.previous().month_name}"


class BackfillEngine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_bus: EventBus,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._session_factory = session_factory
        self._events = event_bus
        self._batch_size = batch_size
        self._clock = clock
        self.last_inserted = 0

    def today(self) -> date:
        return self._clock()

    async def run_once(self) -> bool:
        """Insert placeholders for up to one batch of unfiled trades.

        Returns True when a batch was processed (more work may remain) and
        False when nothing qualified.
        """
        today = self.today()
        period = Period.of(today)
        self.last_inserted = 0

        async with self._session_factory() as session:
            try:
                policy = await ConfigurationRepo(session).get_policy()
                if not await self._try_lock(session):
                    logger.info("Backfill batch skipped: another process holds the backfill lock")
                    return False

                pending = await FilingRepo(session).find_unfiled_trades(period, self._batch_size)
                if not pending:
                    return False

                await self._insert_placeholders(session, pending, period, policy.default_amount, today)
                await session.commit()
            except DuplicateFilingError as e:
                # A taxpayer filed concurrently; the next batch no longer selects that trade
                await session.rollback()
                logger.warning("Backfill batch for %s rolled back: %s", period, e)
                return True
            except SQLAlchemyError as e:
                await session.rollback()
                raise PersistenceError(f"Backfill batch failed: {e}") from e
            except Exception:
                await session.rollback()
                raise

        self.last_inserted = len(pending)
        logger.info("Backfilled %d placeholder filings for %s", len(pending), period)
        for item in pending:
            await self._events.publish(
                FilingEvent.FILING_BACKFILLED,
                taxpayer_id=item.taxpayer_id,
                trade_id=item.trade_id,
                period=str(period),
                amount=str(policy.default_amount),
            )
        return True

    async def _insert_placeholders(
        self,
        session: AsyncSession,
        pending: list[UnfiledTrade],
        period: Period,
        default_amount,
        today: date,
    ) -> None:
        filings = FilingRepo(session)
        notifications = NotificationRepo(session)
        description = placeholder_description(period)
        month_label = period.previous().month_name
        for item in pending:
            await filings.create(
                taxpayer_id=item.taxpayer_id,
                trade_id=item.trade_id,
                amount=default_amount,
                description=description,
                filed_on_time=False,
                fee=default_amount,
                filed_on=today,
            )
            await notifications.add(
                notified_on=today,
                cuit=item.cuit,
                amount=default_amount,
                trade_code=item.trade_code,
                month=month_label,
            )

    @staticmethod
    async def _try_lock(session: AsyncSession) -> bool:
        if session.bind is None or session.bind.dialect.name != "postgresql":
            return True
        result = await session.execute(select(func.pg_try_advisory_xact_lock(ADVISORY_LOCK_KEY)))
        return bool(result.scalar())


class BackfillRunSummary(BaseModel):
    trigger: BackfillTrigger
    started_at: datetime
    finished_at: Optional[datetime] = None
    batches: int = 0
    inserted: int = 0
    error: Optional[str] = None
    error_code: Optional[str] = None


class BackfillCoordinator:
    """Single-flight driver around a BackfillEngine."""

    def __init__(
        self,
        engine: BackfillEngine,
        idle_seconds: float = DEFAULT_IDLE_SECONDS,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> None:
        self._engine = engine
        self._idle_seconds = idle_seconds
        self._max_iterations = max_iterations
        self._lock = asyncio.Lock()
        self._stopping = asyncio.Event()
        self._wake = asyncio.Event()
        self.state = BackfillState.IDLE
        self.last_run: Optional[BackfillRunSummary] = None

    def today(self) -> date:
        return self._engine.today()

    @property
    def running(self) -> bool:
        return self.state == BackfillState.RUNNING

    async def run(
        self,
        trigger: BackfillTrigger,
        recheck: bool = True,
        wait: bool = False,
    ) -> Optional[BackfillRunSummary]:
        """Drain the backfill queue.

        If a drain is already in flight the call is coalesced into it and
        returns None, unless ``wait`` is set: then the in-flight drain is woken
        from its idle wait and this call runs right after it.
        """
        if self._lock.locked():
            if not wait:
                logger.info("Backfill already running; %s trigger coalesced", trigger.value)
                return None
            self._wake.set()

        async with self._lock:
            self._wake.clear()
            self.state = BackfillState.RUNNING
            summary = BackfillRunSummary(trigger=trigger, started_at=datetime.now(timezone.utc))
            try:
                await self._drain(summary, recheck)
            except ConfigurationMissingError as e:
                logger.error("Backfill aborted, tax configuration missing: %s", e)
                summary.error = str(e)
                summary.error_code = e.code
            except PersistenceError as e:
                logger.exception("Backfill aborted by storage failure; next trigger will retry")
                summary.error = str(e)
                summary.error_code = e.code
            finally:
                summary.finished_at = datetime.now(timezone.utc)
                self.state = BackfillState.IDLE
                self.last_run = summary

        logger.info(
            "Backfill (%s) finished: %d batches, %d placeholders",
            trigger.value, summary.batches, summary.inserted,
        )
        return summary

    async def _drain(self, summary: BackfillRunSummary, recheck: bool) -> None:
        rechecked = False
        for _ in range(self._max_iterations):
            if self._stopping.is_set():
                return
            if await self._engine.run_once():
                summary.batches += 1
                summary.inserted += self._engine.last_inserted
                rechecked = False
                continue
            if not recheck or rechecked:
                return
            rechecked = True
            if await self._idle_wait():
                return
        logger.warning("Backfill stopped after %d iterations with work possibly remaining", self._max_iterations)

    async def _idle_wait(self) -> bool:
        """Sleep before the re-check. Returns True if shutdown was requested."""
        stop = asyncio.ensure_future(self._stopping.wait())
        wake = asyncio.ensure_future(self._wake.wait())
        try:
            await asyncio.wait({stop, wake}, timeout=self._idle_seconds, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop.cancel()
            wake.cancel()
        self._wake.clear()
        return self._stopping.is_set()

    def stop(self) -> None:
        """Interrupt any idle wait and prevent further batches."""
        self._stopping.set()

    def reset(self) -> None:
        self._stopping.clear()
