from decimal import Decimal
from itertools import count

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from commercetax.db.repos.configuration_repo import ConfigurationRepo
from commercetax.db.repos.registry_repo import RegistryRepo
from commercetax.db.session import Base
from commercetax.domain.models.policy import TaxPolicy
import commercetax.db.models  # noqa: F401


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture()
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest.fixture()
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
async def session(session_factory) -> AsyncSession:
    async with session_factory() as sess:
        yield sess


@pytest.fixture()
async def file_session_factory(tmp_path):
    """File-backed SQLite so concurrent sessions get separate connections."""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'commercetax.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(eng, expire_on_commit=False)
    await eng.dispose()


@pytest.fixture()
def policy() -> TaxPolicy:
    return TaxPolicy(
        deadline_day=15,
        current_rate=Decimal("0.08"),
        default_amount=Decimal("9999"),
        good_taxpayer_discount=Decimal("0.10"),
    )


@pytest.fixture()
def save_policy(policy):
    async def _save(session: AsyncSession, p: TaxPolicy | None = None) -> TaxPolicy:
        p = p or policy
        await ConfigurationRepo(session).save(p)
        await session.commit()
        return p

    return _save


@pytest.fixture()
def make_trade():
    """Register a taxpayer with one trade and commit. Returns the Trade."""
    cuits = count(1)

    async def _make(session: AsyncSession, good_taxpayer: bool = False, active: bool = True, code: str | None = None):
        n = next(cuits)
        registry = RegistryRepo(session)
        taxpayer = await registry.create_taxpayer(f"20-{n:08d}-1", f"Taxpayer {n}", good_taxpayer)
        trade = await registry.create_trade(taxpayer.id, code or f"COM-{n:04d}", active=active)
        await session.commit()
        return trade

    return _make
