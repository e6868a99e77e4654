"""Celery tasks for background processing."""

import asyncio
import logging
from datetime import date
from typing import Callable

from commercetax.exceptions import ConfigurationMissingError, PersistenceError
from commercetax.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="backfill_filings", max_retries=2, default_retry_delay=60)
def backfill_filings_task(self) -> dict:
    """Drain the placeholder backfill outside the API process.

    Bridges to async code via asyncio.run(); each invocation builds its own
    engine + session factory. Cross-process overlap with the API's drain is
    prevented by the advisory lock taken per batch. Storage failures are
    retried; a missing configuration is not.
    """
    result = asyncio.run(_backfill_async())
    if result["status"] == "error" and result.get("error") == PersistenceError.code:
        raise self.retry(exc=PersistenceError(result["message"]))
    return result


async def _backfill_async(
    session_factory=None,
    idle_seconds=None,
    clock: Callable[[], date] = date.today,
) -> dict:
    from sqlalchemy.exc import SQLAlchemyError

    from commercetax.config import settings
    from commercetax.db.repos.configuration_repo import ConfigurationRepo
    from commercetax.db.session import build_engine, build_session_factory
    from commercetax.domain.enums import BackfillTrigger
    from commercetax.events import EventBus
    from commercetax.filing.backfill import BackfillCoordinator, BackfillEngine
    from commercetax.filing.deadline import is_due

    engine = None
    if session_factory is None:
        engine = build_engine(settings.database_url, echo=False)
        session_factory = build_session_factory(engine)

    try:
        try:
            async with session_factory() as session:
                policy = await ConfigurationRepo(session).get_policy()
        except ConfigurationMissingError as e:
            logger.error("Backfill task aborted, tax configuration missing: %s", e)
            return {"status": "error", "error": e.code, "message": str(e)}
        except SQLAlchemyError as e:
            logger.exception("Backfill task could not read the tax configuration")
            return {"status": "error", "error": PersistenceError.code, "message": str(e)}

        today = clock()
        if not is_due(today, policy.deadline_day):
            logger.info("Backfill task skipped: deadline day %d not reached on %s", policy.deadline_day, today)
            return {"status": "skipped", "message": f"Deadline day {policy.deadline_day} not reached"}

        backfill = BackfillEngine(
            session_factory, EventBus(), batch_size=settings.backfill_batch_size, clock=clock,
        )
        coordinator = BackfillCoordinator(
            backfill,
            idle_seconds=settings.backfill_idle_seconds if idle_seconds is None else idle_seconds,
            max_iterations=settings.backfill_max_iterations,
        )
        summary = await coordinator.run(BackfillTrigger.WORKER)
    finally:
        if engine is not None:
            await engine.dispose()

    if summary.error:
        logger.error("Backfill task failed: %s", summary.error)
        return {"status": "error", "error": summary.error_code, "message": summary.error}
    logger.info("Backfill task inserted %d placeholder filings", summary.inserted)
    return {"status": "ok", "inserted": summary.inserted, "batches": summary.batches}
