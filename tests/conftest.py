"""Fixtures partagées / Shared fixtures."""

import itertools
import uuid
from datetime import datetime
from types import SimpleNamespace

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import coverdesk.models  # noqa: F401
from coverdesk.database import Base
from coverdesk.services import catalog
from coverdesk.services.lifecycle import LifecycleManager


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'coverdesk_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def ids():
    """Identifiants déterministes / Deterministic identifiers."""
    counter = itertools.count(1)
    return lambda: uuid.UUID(int=next(counter))


@pytest.fixture
def lifecycle(session_factory, ids):
    return LifecycleManager(session_factory, id_factory=ids, retry_backoff_ms=1)


@pytest.fixture
async def world(session_factory):
    """Un assuré, deux articles, trois offres / One holder, two items, three offers."""
    async with session_factory() as db:
        async with db.begin():
            await catalog.create_user(db, "alice", "s3cret", "Alice", "Martin")
            await catalog.create_user(db, "bob", "hunter2", "Bob", "Durand")
            phone = await catalog.create_item(db, {
                "brand": "Fairphone", "model": "5", "price": 700.0, "serial_no": "FP5-0001",
            })
            bike = await catalog.create_item(db, {
                "brand": "Brompton", "model": "C Line", "price": 1500.0, "serial_no": "BR-42",
            })
            basic = await catalog.create_contract_type(db, {
                "shop_type": "Electronics", "formula_per_day": "price * 0.002",
                "max_sum_insured": 500.0, "theft_insured": False,
                "min_duration_days": 7, "max_duration_days": 30,
            })
            theft = await catalog.create_contract_type(db, {
                "shop_type": "Bike shop", "formula_per_day": "price * 0.004",
                "max_sum_insured": 2000.0, "theft_insured": True,
                "min_duration_days": 1, "max_duration_days": 365,
            })
            retired = await catalog.create_contract_type(db, {
                "shop_type": "Electronics legacy", "formula_per_day": "1.5",
                "max_sum_insured": 100.0, "theft_insured": False, "active": False,
                "min_duration_days": 1, "max_duration_days": 10,
            })
    return SimpleNamespace(
        phone_id=phone.id,
        bike_id=bike.id,
        basic_id=basic.id,
        theft_id=theft.id,
        retired_id=retired.id,
        start=datetime(2024, 3, 1),
        end=datetime(2024, 3, 21),
    )
