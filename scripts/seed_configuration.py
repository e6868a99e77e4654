"""Initialize the tax configuration singleton.

Usage:
    PYTHONPATH=src python scripts/seed_configuration.py [--demo]

Idempotent: an existing configuration row is left untouched. Without this row
every fee computation and backfill run fails with ConfigurationMissingError.
With --demo, also registers a couple of taxpayers and active trades.
"""

import asyncio
import logging
import sys
from decimal import Decimal

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-5s %(name)s - %(message)s")
logger = logging.getLogger("seed_configuration")
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

DEFAULT_POLICY = {
    "deadline_day": 15,
    "current_rate": Decimal("0.08"),
    "default_amount": Decimal("9999"),
    "good_taxpayer_discount": Decimal("0.10"),
}

DEMO_TAXPAYERS = [
    {"cuit": "20-12345678-3", "name": "Almacen Don Pedro", "good_taxpayer": True, "trades": ["COM-0001"]},
    {"cuit": "27-87654321-4", "name": "Kiosco La Esquina", "good_taxpayer": False, "trades": ["COM-0002", "COM-0003"]},
]


async def main() -> None:
    from commercetax.config import settings
    from commercetax.db.session import build_engine, build_session_factory

    print(f"Database: {settings.db_host}:{settings.db_port}/{settings.db_name}\n")

    engine = build_engine(settings.database_url, echo=False)
    session_factory = build_session_factory(engine)

    async with session_factory() as session:
        try:
            await seed(session, demo="--demo" in sys.argv[1:])
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Seeding failed")
            sys.exit(1)

    await engine.dispose()


async def seed(session, demo: bool = False) -> None:
    from sqlalchemy import select

    from commercetax.db.models.registry import Taxpayer
    from commercetax.db.repos.configuration_repo import ConfigurationRepo
    from commercetax.db.repos.registry_repo import RegistryRepo
    from commercetax.domain.models.policy import TaxPolicy

    config_repo = ConfigurationRepo(session)
    if await config_repo.get() is None:
        await config_repo.save(TaxPolicy(**DEFAULT_POLICY))
        print("Configuration: created", DEFAULT_POLICY)
    else:
        print("Configuration: existing row kept")

    if not demo:
        return

    registry = RegistryRepo(session)
    for entry in DEMO_TAXPAYERS:
        result = await session.execute(select(Taxpayer).where(Taxpayer.cuit == entry["cuit"]))
        if result.scalar_one_or_none() is not None:
            print(f"  [skipped] {entry['name']}")
            continue
        taxpayer = await registry.create_taxpayer(entry["cuit"], entry["name"], entry["good_taxpayer"])
        for code in entry["trades"]:
            await registry.create_trade(taxpayer.id, code, active=True)
        print(f"  [created] {entry['name']} with {len(entry['trades'])} trades")


if __name__ == "__main__":
    asyncio.run(main())
