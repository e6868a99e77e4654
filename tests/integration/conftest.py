from datetime import date
from types import SimpleNamespace

import pytest
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from commercetax.api.deps import (
    build_filing_service,
    get_backfill,
    get_db,
    get_event_bus,
    get_filing_locks,
    get_scheduler,
)
from commercetax.api.main import app
from commercetax.db.session import Base
from commercetax.events import EventBus
from commercetax.filing.backfill import BackfillCoordinator, BackfillEngine
from commercetax.filing.locks import KeyedLock
from commercetax.filing.service import FilingService
import commercetax.db.models  # noqa: F401


class FakeScheduler:
    def __init__(self, deadline_day=15):
        self.deadline_day = deadline_day
        self.rescheduled = []

    def reschedule(self, deadline_day):
        self.rescheduled.append(deadline_day)
        self.deadline_day = deadline_day

    def next_run_time(self):
        return None


@pytest.fixture()
async def api():
    """Everything the app resolves from the container, bound to an in-memory store."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    ctx = SimpleNamespace(
        factory=async_sessionmaker(engine, expire_on_commit=False),
        bus=EventBus(),
        locks=KeyedLock(),
        scheduler=FakeScheduler(),
        today=date(2025, 3, 10),
        events=[],
    )
    ctx.bus.subscribe(ctx.events.append)
    ctx.coordinator = BackfillCoordinator(
        BackfillEngine(ctx.factory, ctx.bus, batch_size=10, clock=lambda: ctx.today),
        idle_seconds=0,
    )
    yield ctx

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
async def client(api):
    async def override_get_db():
        async with api.factory() as session:
            yield session

    def override_service(
        db=Depends(get_db), event_bus=Depends(get_event_bus), locks=Depends(get_filing_locks),
    ):
        return FilingService(db, event_bus, locks, clock=lambda: api.today)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_bus] = lambda: api.bus
    app.dependency_overrides[get_filing_locks] = lambda: api.locks
    app.dependency_overrides[get_backfill] = lambda: api.coordinator
    app.dependency_overrides[get_scheduler] = lambda: api.scheduler
    app.dependency_overrides[build_filing_service] = override_service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture()
async def seeded(api, save_policy, make_trade):
    """Policy (deadline day 15) plus one regular and one good taxpayer trade."""
    async with api.factory() as session:
        await save_policy(session)
        regular = await make_trade(session)
        good = await make_trade(session, good_taxpayer=True)
        return SimpleNamespace(
            regular=(regular.taxpayer_id, regular.id),
            good=(good.taxpayer_id, good.id),
            regular_code=regular.code,
        )
