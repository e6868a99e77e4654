from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from commercetax.api.deps import get_db, get_event_bus
from commercetax.api.schemas.notifications import NotificationList, NotificationResponse
from commercetax.db.repos.notification_repo import NotificationRepo
from commercetax.domain.enums import FilingEvent
from commercetax.events import EventBus

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

DbDep = Annotated[AsyncSession, Depends(get_db)]


@router.get("", response_model=NotificationList)
async def list_notifications(
    db: DbDep,
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> NotificationList:
    rows = await NotificationRepo(db).list_all(limit=limit, offset=offset)
    return NotificationList(
        notifications=[NotificationResponse.model_validate(n) for n in rows],
        total=len(rows),
    )


@router.put("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int, db: DbDep, event_bus: EventBus = Depends(get_event_bus),
) -> dict:
    affected = await NotificationRepo(db).mark_read(notification_id)
    if affected == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    await db.commit()
    await event_bus.publish(FilingEvent.NOTIFICATION_READ, notification_id=notification_id)
    return {"status": "ok"}
