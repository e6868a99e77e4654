from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from commercetax.db.models.registry import Taxpayer, Trade


class RegistryRepo:
    """Read access to taxpayer/trade facts, plus trade activation."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_taxpayer(self, taxpayer_id: int) -> Optional[Taxpayer]:
        result = await self._session.execute(select(Taxpayer).where(Taxpayer.id == taxpayer_id))
        return result.scalar_one_or_none()

    async def get_trade(self, trade_id: int) -> Optional[Trade]:
        result = await self._session.execute(select(Trade).where(Trade.id == trade_id))
        return result.scalar_one_or_none()

    async def is_good_taxpayer(self, taxpayer_id: int) -> bool:
        taxpayer = await self.get_taxpayer(taxpayer_id)
        return bool(taxpayer and taxpayer.good_taxpayer)

    async def create_taxpayer(self, cuit: str, name: str, good_taxpayer: bool = False) -> Taxpayer:
        taxpayer = Taxpayer(cuit=cuit, name=name, good_taxpayer=good_taxpayer)
        self._session.add(taxpayer)
        await self._session.flush()
        return taxpayer

    async def create_trade(
        self, taxpayer_id: int, code: str, name: Optional[str] = None, active: bool = True
    ) -> Trade:
        trade = Trade(taxpayer_id=taxpayer_id, code=code, name=name, active=active)
        self._session.add(trade)
        await self._session.flush()
        return trade

    async def activate_trade(self, trade_id: int) -> Optional[Trade]:
        trade = await self.get_trade(trade_id)
        if trade is None:
            return None
        trade.active = True
        await self._session.flush()
        return trade
