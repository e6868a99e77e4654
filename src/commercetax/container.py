from dependency_injector import containers, providers

from commercetax.config import Settings
from commercetax.db.session import build_engine, build_session_factory
from commercetax.events import EventBus
from commercetax.filing.backfill import BackfillCoordinator, BackfillEngine
from commercetax.filing.locks import KeyedLock
from commercetax.workers.scheduler import BackfillScheduler


class Container(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(modules=["commercetax.api.deps"])

    settings = providers.Singleton(Settings)

    engine = providers.Singleton(
        build_engine,
        database_url=settings.provided.database_url,
        echo=settings.provided.debug,
    )

    session_factory = providers.Singleton(
        build_session_factory,
        engine=engine,
    )

    event_bus = providers.Singleton(EventBus)

    filing_locks = providers.Singleton(KeyedLock)

    backfill_engine = providers.Singleton(
        BackfillEngine,
        session_factory=session_factory,
        event_bus=event_bus,
        batch_size=settings.provided.backfill_batch_size,
    )

    backfill_coordinator = providers.Singleton(
        BackfillCoordinator,
        engine=backfill_engine,
        idle_seconds=settings.provided.backfill_idle_seconds,
        max_iterations=settings.provided.backfill_max_iterations,
    )

    scheduler = providers.Singleton(
        BackfillScheduler,
        coordinator=backfill_coordinator,
        session_factory=session_factory,
        hour=settings.provided.backfill_hour,
        timezone=settings.provided.timezone,
    )
