"""Trade activation, the on-demand backfill trigger."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from commercetax.api.deps import get_backfill, get_db
from commercetax.api.schemas.backfill import BackfillRunResponse, TradeActivationResponse
from commercetax.db.repos.configuration_repo import ConfigurationRepo
from commercetax.db.repos.registry_repo import RegistryRepo
from commercetax.domain.enums import BackfillTrigger
from commercetax.filing.backfill import BackfillCoordinator
from commercetax.filing.deadline import is_due

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/trades", tags=["trades"])

DbDep = Annotated[AsyncSession, Depends(get_db)]


@router.put("/{trade_id}/activate", response_model=TradeActivationResponse)
async def activate_trade(
    trade_id: int,
    db: DbDep,
    coordinator: BackfillCoordinator = Depends(get_backfill),
) -> TradeActivationResponse:
    """Activate a trade; past the deadline, backfill before answering."""
    trade = await RegistryRepo(db).activate_trade(trade_id)
    if trade is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trade not found")
    # Without a policy the activation is not committed
    policy = await ConfigurationRepo(db).get_policy()
    await db.commit()

    summary = None
    if is_due(coordinator.today(), policy.deadline_day):
        logger.info("Trade %d activated past the deadline; running backfill", trade_id)
        summary = await coordinator.run(BackfillTrigger.ON_DEMAND, recheck=False, wait=True)

    return TradeActivationResponse(
        trade_id=trade_id,
        active=True,
        backfill=BackfillRunResponse(**summary.model_dump(mode="json")) if summary else None,
    )
