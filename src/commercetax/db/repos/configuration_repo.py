from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from commercetax.db.models.configuration import SINGLETON_ID, TaxConfiguration
from commercetax.domain.models.policy import TaxPolicy
from commercetax.exceptions import ConfigurationMissingError


class ConfigurationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self) -> Optional[TaxConfiguration]:
        result = await self._session.execute(
            select(TaxConfiguration).where(TaxConfiguration.id == SINGLETON_ID)
        )
        return result.scalar_one_or_none()

    async def get_policy(self) -> TaxPolicy:
        """Return the active policy, raising if the row was never created."""
        row = await self.get()
        if row is None:
            raise ConfigurationMissingError()
        return TaxPolicy.model_validate(row)

    async def save(self, policy: TaxPolicy) -> TaxConfiguration:
        """Upsert the singleton row with the given policy values."""
        row = await self.get()
        if row is None:
            row = TaxConfiguration(id=SINGLETON_ID)
            self._session.add(row)
        row.deadline_day = policy.deadline_day
        row.current_rate = policy.current_rate
        row.default_amount = policy.default_amount
        row.good_taxpayer_discount = policy.good_taxpayer_discount
        await self._session.flush()
        return row
