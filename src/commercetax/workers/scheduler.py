"""Calendar triggers for the backfill: startup check and monthly cron job."""

import asyncio
import logging
from datetime import date
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from commercetax.db.repos.configuration_repo import ConfigurationRepo
from commercetax.domain.enums import BackfillTrigger
from commercetax.exceptions import ConfigurationMissingError
from commercetax.filing.backfill import BackfillCoordinator
from commercetax.filing.deadline import is_due

logger = logging.getLogger(__name__)

JOB_ID = "monthly-backfill"


def cron_day_expression(deadline_day: int) -> str:
    # Days past 28 do not exist in every month; "last" covers the short ones
    if deadline_day > 28:
        return f"{deadline_day},last"
    return str(deadline_day)


class BackfillScheduler:
    def __init__(
        self,
        coordinator: BackfillCoordinator,
        session_factory: async_sessionmaker[AsyncSession],
        hour: int = 0,
        timezone: str = "UTC",
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._coordinator = coordinator
        self._session_factory = session_factory
        self._hour = hour
        self._timezone = timezone
        self._clock = clock
        self._scheduler = AsyncIOScheduler(timezone=timezone)
        self._tasks: set[asyncio.Task] = set()
        self.deadline_day: Optional[int] = None

    async def start(self) -> None:
        """Register the monthly job and run immediately if the deadline already passed."""
        self._coordinator.reset()
        deadline_day = await self._read_deadline_day()
        self._scheduler.start()
        if deadline_day is None:
            return
        self.reschedule(deadline_day)
        if is_due(self._clock(), deadline_day):
            logger.info("Deadline day %d already reached this month; running startup backfill", deadline_day)
            self.spawn(BackfillTrigger.STARTUP)

    def reschedule(self, deadline_day: int) -> None:
        """(Re)register the monthly trigger for a new deadline day."""
        trigger = CronTrigger(day=cron_day_expression(deadline_day), hour=self._hour, timezone=self._timezone)
        self._scheduler.add_job(
            self._run_scheduled,
            trigger,
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if self.deadline_day != deadline_day:
            logger.info("Monthly backfill scheduled on day %d at %02d:00", deadline_day, self._hour)
        self.deadline_day = deadline_day

    def spawn(self, trigger: BackfillTrigger) -> asyncio.Task:
        task = asyncio.create_task(self._coordinator.run(trigger))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def shutdown(self) -> None:
        self._coordinator.stop()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def next_run_time(self):
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    async def _run_scheduled(self) -> None:
        deadline_day = await self._read_deadline_day()
        if deadline_day is None:
            return
        if deadline_day != self.deadline_day:
            # Configuration changed in another process; realign and wait for the new day
            self.reschedule(deadline_day)
        if not is_due(self._clock(), deadline_day):
            return
        await self._coordinator.run(BackfillTrigger.SCHEDULE)

    async def _read_deadline_day(self) -> Optional[int]:
        try:
            async with self._session_factory() as session:
                policy = await ConfigurationRepo(session).get_policy()
        except ConfigurationMissingError:
            logger.error("Tax configuration missing; monthly backfill not scheduled")
            return None
        except SQLAlchemyError:
            logger.exception("Could not read tax configuration for the backfill schedule")
            return None
        return policy.deadline_day
