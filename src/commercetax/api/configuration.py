import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from commercetax.api.deps import get_db, get_event_bus, get_scheduler
from commercetax.api.schemas.configuration import ConfigurationResponse, ConfigurationUpdateRequest
from commercetax.db.repos.configuration_repo import ConfigurationRepo
from commercetax.domain.enums import FilingEvent
from commercetax.domain.models.policy import TaxPolicy
from commercetax.events import EventBus
from commercetax.workers.scheduler import BackfillScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/configuration", tags=["configuration"])

DbDep = Annotated[AsyncSession, Depends(get_db)]


@router.get("", response_model=ConfigurationResponse)
async def get_configuration(db: DbDep) -> ConfigurationResponse:
    row = await ConfigurationRepo(db).get()
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No configuration loaded")
    return ConfigurationResponse.model_validate(row)


@router.put("", response_model=ConfigurationResponse)
async def update_configuration(
    body: ConfigurationUpdateRequest,
    db: DbDep,
    event_bus: EventBus = Depends(get_event_bus),
    scheduler: Optional[BackfillScheduler] = Depends(get_scheduler),
) -> ConfigurationResponse:
    """Replace the tax policy. A new deadline day re-registers the monthly backfill."""
    repo = ConfigurationRepo(db)
    current = await repo.get()
    discount = body.good_taxpayer_discount
    if discount is None:
        discount = current.good_taxpayer_discount if current is not None else 0

    policy = TaxPolicy(
        deadline_day=body.deadline_day,
        current_rate=body.current_rate,
        default_amount=body.default_amount,
        good_taxpayer_discount=discount,
    )
    row = await repo.save(policy)
    await db.commit()
    logger.info(
        "Tax configuration updated: deadline_day=%d rate=%s default=%s discount=%s",
        policy.deadline_day, policy.current_rate, policy.default_amount, policy.good_taxpayer_discount,
    )

    if scheduler is not None and scheduler.deadline_day != policy.deadline_day:
        scheduler.reschedule(policy.deadline_day)

    await event_bus.publish(FilingEvent.CONFIGURATION_UPDATED, **policy.model_dump(mode="json"))
    return ConfigurationResponse.model_validate(row)
