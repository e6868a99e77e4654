from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select

from commercetax.db.models.configuration import TaxConfiguration

from commercetax.db.repos.configuration_repo import ConfigurationRepo
from commercetax.domain.models.policy import TaxPolicy
from commercetax.exceptions import ConfigurationMissingError


class TestConfigurationRepo:
    async def test_get_policy_missing_raises(self, session):
        with pytest.raises(ConfigurationMissingError):
            await ConfigurationRepo(session).get_policy()

    async def test_save_creates_singleton(self, session, policy):
        repo = ConfigurationRepo(session)
        row = await repo.save(policy)
        await session.commit()

        assert row.id == 1
        loaded = await repo.get_policy()
        assert loaded.deadline_day == 15
        assert loaded.current_rate == Decimal("0.08")
        assert loaded.default_amount == Decimal("9999")
        assert loaded.good_taxpayer_discount == Decimal("0.10")

    async def test_save_twice_keeps_one_row(self, session, policy):
        repo = ConfigurationRepo(session)
        await repo.save(policy)
        await session.commit()
        await repo.save(policy.model_copy(update={"deadline_day": 20, "current_rate": Decimal("0.05")}))
        await session.commit()

        total = (await session.execute(select(func.count()).select_from(TaxConfiguration))).scalar()
        assert total == 1
        loaded = await repo.get_policy()
        assert loaded.deadline_day == 20
        assert loaded.current_rate == Decimal("0.05")

    def test_policy_is_frozen(self, policy):
        with pytest.raises(ValidationError):
            policy.deadline_day = 3

    def test_policy_rejects_out_of_range_deadline(self):
        with pytest.raises(ValidationError):
            TaxPolicy(deadline_day=32, current_rate=Decimal("0.08"), default_amount=Decimal("1"))
