import asyncio
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from commercetax.db.models.filing import Filing
from commercetax.db.repos.filing_repo import FilingRepo
from commercetax.db.repos.notification_repo import NotificationRepo
from commercetax.domain.enums import BackfillState, BackfillTrigger, FilingEvent
from commercetax.domain.models.period import Period
from commercetax.events import EventBus
from commercetax.exceptions import ConfigurationMissingError, PersistenceError
from commercetax.filing.backfill import BackfillCoordinator, BackfillEngine, placeholder_description

AFTER_DEADLINE = date(2025, 3, 16)


def _engine(session_factory, bus=None, batch_size=10, today=AFTER_DEADLINE):
    return BackfillEngine(session_factory, bus or EventBus(), batch_size=batch_size, clock=lambda: today)


async def _count_filings(session):
    return (await session.execute(select(func.count()).select_from(Filing))).scalar()


class TestPlaceholderDescription:
    def test_names_previous_month(self):
        assert placeholder_description(Period(year=2025, month=3)) == (
            "Filing generated by the system. Must rectify the month of February"
        )

    def test_january_names_december(self):
        assert placeholder_description(Period(year=2025, month=1)).endswith("month of December")


class TestBackfillEngine:
    async def test_batches_until_drained(self, session, session_factory, save_policy, make_trade):
        await save_policy(session)
        for _ in range(15):
            await make_trade(session)
        engine = _engine(session_factory)

        assert await engine.run_once() is True
        assert engine.last_inserted == 10
        assert await engine.run_once() is True
        assert engine.last_inserted == 5
        assert await engine.run_once() is False
        assert engine.last_inserted == 0

        assert await _count_filings(session) == 15

    async def test_placeholder_fields(self, session, session_factory, save_policy, make_trade):
        await save_policy(session)
        trade = await make_trade(session, good_taxpayer=True)
        bus = EventBus()
        events = []
        bus.subscribe(events.append)

        await _engine(session_factory, bus).run_once()

        filing = await FilingRepo(session).get_for_period(trade.taxpayer_id, trade.id, Period(year=2025, month=3))
        assert filing.amount == Decimal("9999")
        assert filing.computed_fee == Decimal("9999")
        assert filing.filed_on == AFTER_DEADLINE
        assert filing.filed_on_time is False
        assert filing.transmitted is False
        assert filing.rectified is False
        assert filing.description == "Filing generated by the system. Must rectify the month of February"
        assert [e.name for e in events] == [FilingEvent.FILING_BACKFILLED]
        assert events[0].payload["trade_id"] == trade.id

    async def test_notification_per_placeholder(self, session, session_factory, save_policy, make_trade):
        await save_policy(session)
        await make_trade(session, code="KIOSK-1")

        await _engine(session_factory).run_once()

        notes = await NotificationRepo(session).list_all()
        assert len(notes) == 1
        assert notes[0].trade_code == "KIOSK-1"
        assert notes[0].cuit.startswith("20-")
        assert notes[0].month == "February"
        assert notes[0].read is False

    async def test_idempotent(self, session, session_factory, save_policy, make_trade):
        await save_policy(session)
        for _ in range(3):
            await make_trade(session)
        engine = _engine(session_factory)

        while await engine.run_once():
            pass
        assert await engine.run_once() is False

        assert await _count_filings(session) == 3

    async def test_skips_filed_and_inactive_trades(self, session, session_factory, save_policy, make_trade):
        await save_policy(session)
        filed = await make_trade(session)
        await make_trade(session, active=False)
        unfiled = await make_trade(session)
        await FilingRepo(session).create(
            taxpayer_id=filed.taxpayer_id,
            trade_id=filed.id,
            amount=Decimal("50000"),
            description="own filing",
            filed_on_time=True,
            fee=Decimal("9999"),
            filed_on=date(2025, 3, 3),
        )
        await session.commit()
        engine = _engine(session_factory)

        assert await engine.run_once() is True
        assert engine.last_inserted == 1

        own = await FilingRepo(session).find_by_period(filed.taxpayer_id, filed.id, 2025, 3)
        assert own[0].amount == Decimal("50000")
        assert await FilingRepo(session).exists_for_period(unfiled.taxpayer_id, unfiled.id, 2025, 3)

    async def test_nothing_to_do(self, session, session_factory, save_policy):
        await save_policy(session)
        assert await _engine(session_factory).run_once() is False

    async def test_configuration_missing(self, session, session_factory, make_trade):
        await make_trade(session)
        with pytest.raises(ConfigurationMissingError):
            await _engine(session_factory).run_once()
        assert await _count_filings(session) == 0


class FakeEngine:
    """Scripted stand-in for BackfillEngine."""

    def __init__(self, results=(), default=False, gate=None, error=None):
        self._results = list(results)
        self._default = default
        self._gate = gate
        self._error = error
        self.calls = 0
        self.last_inserted = 0

    def today(self):
        return AFTER_DEADLINE

    async def run_once(self):
        self.calls += 1
        if self._gate is not None:
            await self._gate.wait()
        if self._error is not None:
            raise self._error
        result = self._results.pop(0) if self._results else self._default
        self.last_inserted = 2 if result else 0
        return result


class TestBackfillCoordinator:
    async def test_drains_then_rechecks_once(self):
        engine = FakeEngine(results=[True, True])
        coordinator = BackfillCoordinator(engine, idle_seconds=0)

        summary = await coordinator.run(BackfillTrigger.SCHEDULE)

        # two batches, one empty check, one re-check after the idle wait
        assert engine.calls == 4
        assert summary.batches == 2
        assert summary.inserted == 4
        assert summary.error is None
        assert summary.finished_at is not None
        assert coordinator.state == BackfillState.IDLE
        assert coordinator.last_run is summary

    async def test_no_recheck(self):
        engine = FakeEngine(results=[True])
        coordinator = BackfillCoordinator(engine, idle_seconds=30)

        summary = await asyncio.wait_for(coordinator.run(BackfillTrigger.ON_DEMAND, recheck=False), 1)

        assert engine.calls == 2
        assert summary.batches == 1

    async def test_overlapping_trigger_is_coalesced(self):
        gate = asyncio.Event()
        engine = FakeEngine(gate=gate)
        coordinator = BackfillCoordinator(engine, idle_seconds=0)

        first = asyncio.create_task(coordinator.run(BackfillTrigger.SCHEDULE))
        await asyncio.sleep(0.01)
        assert coordinator.running is True

        assert await coordinator.run(BackfillTrigger.STARTUP) is None

        gate.set()
        summary = await asyncio.wait_for(first, 1)
        assert summary.trigger == BackfillTrigger.SCHEDULE
        assert coordinator.running is False

    async def test_waiting_trigger_wakes_idle_run(self):
        engine = FakeEngine()
        coordinator = BackfillCoordinator(engine, idle_seconds=30)

        first = asyncio.create_task(coordinator.run(BackfillTrigger.SCHEDULE))
        await asyncio.sleep(0.01)
        assert engine.calls == 1

        second = await asyncio.wait_for(
            coordinator.run(BackfillTrigger.ON_DEMAND, recheck=False, wait=True), 1
        )

        assert second.trigger == BackfillTrigger.ON_DEMAND
        assert (await first).trigger == BackfillTrigger.SCHEDULE
        assert engine.calls == 3

    async def test_stop_interrupts_idle_wait(self):
        engine = FakeEngine()
        coordinator = BackfillCoordinator(engine, idle_seconds=30)

        task = asyncio.create_task(coordinator.run(BackfillTrigger.STARTUP))
        await asyncio.sleep(0.01)
        coordinator.stop()
        summary = await asyncio.wait_for(task, 1)

        assert engine.calls == 1
        assert summary.batches == 0

        coordinator.reset()
        engine_calls = engine.calls
        await coordinator.run(BackfillTrigger.ON_DEMAND, recheck=False)
        assert engine.calls == engine_calls + 1

    async def test_max_iterations_bounds_run(self):
        engine = FakeEngine(default=True)
        coordinator = BackfillCoordinator(engine, idle_seconds=0, max_iterations=3)

        summary = await coordinator.run(BackfillTrigger.WORKER)

        assert engine.calls == 3
        assert summary.batches == 3
        assert summary.inserted == 6

    @pytest.mark.parametrize("error", [ConfigurationMissingError(), PersistenceError("db down")])
    async def test_errors_end_run_and_are_recorded(self, error):
        coordinator = BackfillCoordinator(FakeEngine(error=error), idle_seconds=0)

        summary = await coordinator.run(BackfillTrigger.SCHEDULE)

        assert summary.error == str(error)
        assert coordinator.state == BackfillState.IDLE

    async def test_end_to_end_with_store(self, session, session_factory, save_policy, make_trade):
        await save_policy(session)
        for _ in range(25):
            await make_trade(session)
        coordinator = BackfillCoordinator(_engine(session_factory), idle_seconds=0)

        summary = await coordinator.run(BackfillTrigger.SCHEDULE)

        assert summary.batches == 3
        assert summary.inserted == 25
        assert await _count_filings(session) == 25
