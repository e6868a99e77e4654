from __future__ import annotations

from typing import TYPE_CHECKING, AsyncGenerator, Optional

if TYPE_CHECKING:
    from commercetax.filing.service import FilingService

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from commercetax.container import Container
from commercetax.events import EventBus
from commercetax.filing.backfill import BackfillCoordinator
from commercetax.filing.locks import KeyedLock
from commercetax.workers.scheduler import BackfillScheduler


@inject
async def get_db(
    session_factory: async_sessionmaker[AsyncSession] = Depends(Provide[Container.session_factory]),
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@inject
def get_event_bus(event_bus: EventBus = Depends(Provide[Container.event_bus])) -> EventBus:
    return event_bus


@inject
def get_filing_locks(locks: KeyedLock = Depends(Provide[Container.filing_locks])) -> KeyedLock:
    return locks


@inject
def get_backfill(
    coordinator: BackfillCoordinator = Depends(Provide[Container.backfill_coordinator]),
) -> BackfillCoordinator:
    return coordinator


@inject
def get_scheduler(
    scheduler: BackfillScheduler = Depends(Provide[Container.scheduler]),
) -> Optional[BackfillScheduler]:
    return scheduler


def build_filing_service(
    db: AsyncSession = Depends(get_db),
    event_bus: EventBus = Depends(get_event_bus),
    locks: KeyedLock = Depends(get_filing_locks),
) -> "FilingService":
    from commercetax.filing.service import FilingService

    return FilingService(db, event_bus, locks)
