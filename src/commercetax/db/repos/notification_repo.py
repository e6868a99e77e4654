from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from commercetax.db.models.notification import Notification


class NotificationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        notified_on: date,
        cuit: str,
        amount: Decimal,
        trade_code: str,
        month: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            read=False, notified_on=notified_on, cuit=cuit, amount=amount, trade_code=trade_code, month=month,
        )
        self._session.add(notification)
        await self._session.flush()
        return notification

    async def list_all(self, limit: int = 200, offset: int = 0) -> list[Notification]:
        """Unread first, newest first within each group."""
        result = await self._session.execute(
            select(Notification)
            .order_by(Notification.read.asc(), Notification.notified_on.desc(), Notification.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def mark_read(self, notification_id: int) -> int:
        result = await self._session.execute(
            update(Notification)
            .where(Notification.id == notification_id)
            .values(read=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0
