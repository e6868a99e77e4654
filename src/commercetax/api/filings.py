"""Filing API: submit, look up and mark as transmitted to RAFAM."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from commercetax.api.deps import build_filing_service, get_db
from commercetax.api.schemas.filings import (
    FilingCreateRequest,
    FilingList,
    FilingResponse,
    TransmittedResponse,
)
from commercetax.db.models.filing import Filing
from commercetax.db.repos.filing_repo import FilingRepo
from commercetax.domain.models.period import Period
from commercetax.filing.service import FilingService

router = APIRouter(prefix="/api/filings", tags=["filings"])

DbDep = Annotated[AsyncSession, Depends(get_db)]
ServiceDep = Annotated[FilingService, Depends(build_filing_service)]


def _to_response(f: Filing) -> FilingResponse:
    trade = f.trade
    return FilingResponse(
        id=f.id,
        taxpayer_id=f.taxpayer_id,
        trade_id=f.trade_id,
        cuit=trade.taxpayer.cuit if trade and trade.taxpayer else None,
        trade_code=trade.code if trade else None,
        filed_on=f.filed_on,
        period_year=f.period_year,
        period_month=f.period_month,
        amount=f.amount,
        description=f.description,
        filed_on_time=f.filed_on_time,
        computed_fee=f.computed_fee,
        transmitted=f.transmitted,
        rectified=f.rectified,
    )


@router.post("", response_model=FilingResponse, status_code=status.HTTP_201_CREATED)
async def submit_filing(body: FilingCreateRequest, service: ServiceDep) -> FilingResponse:
    """File this month's declaration. 409 if the period is already filed."""
    filing = await service.submit(body.taxpayer_id, body.trade_id, body.amount, body.description)
    return _to_response(filing)


async def _lookup(db: AsyncSession, taxpayer_id: int, trade_id: int, year: int, month: Optional[int]) -> FilingList:
    filings = await FilingRepo(db).find_by_period(taxpayer_id, trade_id, year, month)
    if not filings:
        detail = "No filings found" if month is None else f"No filings found for month {month}"
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return FilingList(filings=[_to_response(f) for f in filings], total=len(filings))


@router.get("/{taxpayer_id}/{trade_id}/{year}", response_model=FilingList)
async def list_filings_for_year(
    taxpayer_id: int, trade_id: int, db: DbDep, year: int = Path(ge=1900, le=9999),
) -> FilingList:
    return await _lookup(db, taxpayer_id, trade_id, year, None)


@router.get("/{taxpayer_id}/{trade_id}/{year}/{month}", response_model=FilingList)
async def list_filings_for_month(
    taxpayer_id: int,
    trade_id: int,
    db: DbDep,
    year: int = Path(ge=1900, le=9999),
    month: int = Path(ge=1, le=12),
) -> FilingList:
    return await _lookup(db, taxpayer_id, trade_id, year, month)


@router.put("/{taxpayer_id}/{trade_id}/{year}/{month}/transmitted", response_model=TransmittedResponse)
async def mark_filing_transmitted(
    taxpayer_id: int,
    trade_id: int,
    service: ServiceDep,
    year: int = Path(ge=1900, le=9999),
    month: int = Path(ge=1, le=12),
) -> TransmittedResponse:
    affected = await service.mark_filing_transmitted(taxpayer_id, trade_id, Period(year=year, month=month))
    if affected == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Filing not found")
    return TransmittedResponse(message="Marked as transmitted, remember to load it into RAFAM", affected=affected)
