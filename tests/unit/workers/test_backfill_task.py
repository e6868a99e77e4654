from datetime import date
from unittest.mock import AsyncMock, patch

from sqlalchemy import func, select

from commercetax.db.models.filing import Filing
from commercetax.workers.tasks import _backfill_async, backfill_filings_task

AFTER_DEADLINE = date(2025, 3, 16)
BEFORE_DEADLINE = date(2025, 3, 10)


async def _count_filings(session):
    return (await session.execute(select(func.count()).select_from(Filing))).scalar()


class TestBackfillTask:
    def test_task_registered_by_name(self):
        assert backfill_filings_task.name == "backfill_filings"

    async def test_drains_pending_trades_after_deadline(self, session, session_factory, save_policy, make_trade):
        await save_policy(session)
        for _ in range(3):
            await make_trade(session)

        result = await _backfill_async(session_factory, idle_seconds=0, clock=lambda: AFTER_DEADLINE)

        assert result["status"] == "ok"
        assert result["inserted"] == 3
        assert await _count_filings(session) == 3

    async def test_skipped_before_deadline(self, session, session_factory, save_policy, make_trade):
        await save_policy(session)
        await make_trade(session)

        result = await _backfill_async(session_factory, idle_seconds=0, clock=lambda: BEFORE_DEADLINE)

        assert result["status"] == "skipped"
        assert await _count_filings(session) == 0

    async def test_short_month_deadline_is_due_on_last_day(self, session, session_factory, save_policy, policy, make_trade):
        await save_policy(session, policy.model_copy(update={"deadline_day": 31}))
        await make_trade(session)

        result = await _backfill_async(session_factory, idle_seconds=0, clock=lambda: date(2025, 2, 28))

        assert result["status"] == "ok"
        assert result["inserted"] == 1

    async def test_missing_configuration_reported(self, session_factory):
        result = await _backfill_async(session_factory, idle_seconds=0, clock=lambda: AFTER_DEADLINE)

        assert result["status"] == "error"
        assert result["error"] == "configuration_missing"
        assert "configuration" in result["message"]


class TestBackfillTaskRetries:
    def test_storage_failure_is_retried(self):
        failure = {"status": "error", "error": "persistence", "message": "db down"}
        with patch("commercetax.workers.tasks._backfill_async", new=AsyncMock(return_value=failure)) as run:
            result = backfill_filings_task.apply()

        assert run.await_count > 1
        assert result.failed()

    def test_missing_configuration_is_not_retried(self):
        failure = {"status": "error", "error": "configuration_missing", "message": "not initialized"}
        with patch("commercetax.workers.tasks._backfill_async", new=AsyncMock(return_value=failure)) as run:
            result = backfill_filings_task.apply()

        assert run.await_count == 1
        assert result.get()["status"] == "error"
