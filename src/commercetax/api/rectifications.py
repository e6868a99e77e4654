from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from commercetax.api.deps import build_filing_service, get_db
from commercetax.api.schemas.filings import TransmittedResponse
from commercetax.api.schemas.rectifications import (
    RectificationList,
    RectificationResponse,
    RectifyRequest,
)
from commercetax.db.repos.rectification_repo import RectificationRepo
from commercetax.domain.models.period import Period
from commercetax.filing.service import FilingService

router = APIRouter(prefix="/api/rectifications", tags=["rectifications"])

DbDep = Annotated[AsyncSession, Depends(get_db)]
ServiceDep = Annotated[FilingService, Depends(build_filing_service)]


@router.put("/{rectification_id}/transmitted", response_model=TransmittedResponse)
async def mark_rectification_transmitted(rectification_id: int, service: ServiceDep) -> TransmittedResponse:
    affected = await service.mark_rectification_transmitted(rectification_id)
    if affected == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rectification not found")
    return TransmittedResponse(message="Marked as transmitted, remember to load it into RAFAM", affected=affected)


@router.put("/{taxpayer_id}/{trade_id}/{year}/{month}", response_model=RectificationResponse)
async def rectify_filing(
    taxpayer_id: int,
    trade_id: int,
    body: RectifyRequest,
    service: ServiceDep,
    year: int = Path(ge=1900, le=9999),
    month: int = Path(ge=1, le=12),
) -> RectificationResponse:
    """Record a correction of the period's filing. 404 if there is nothing to rectify."""
    rectification = await service.rectify(
        taxpayer_id, trade_id, Period(year=year, month=month), body.amount, body.month,
    )
    return RectificationResponse.model_validate(rectification)


@router.get("/{taxpayer_id}/{trade_id}/{year}/{month}", response_model=RectificationList)
async def list_rectifications(
    taxpayer_id: int,
    trade_id: int,
    db: DbDep,
    year: int = Path(ge=1900, le=9999),
    month: int = Path(ge=1, le=12),
) -> RectificationList:
    rows = await RectificationRepo(db).list_for_filing(taxpayer_id, trade_id, Period(year=year, month=month))
    return RectificationList(
        rectifications=[RectificationResponse.model_validate(r) for r in rows],
        total=len(rows),
    )
