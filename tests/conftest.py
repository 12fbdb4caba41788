# tests/conftest.py
from decimal import Decimal

import httpx
import pytest_asyncio
from sqlalchemy.future import select

from techshop.db.database import get_db, make_engine, make_session_factory
from techshop.db.init_db import init_db
from techshop.db.models import AccountType, Order, OrderItem, Product, RoleEnum
from techshop.db.products import create_product
from techshop.db.users import create_user
from techshop.main import app
from techshop.validators import CONTROL_LETTERS

PASSWORD = "Password123"


def dni_for(number: int) -> str:
    return f"{number:08d}{CONTROL_LETTERS[number % 23]}"


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'techshop.db'}", echo=False)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def add_product(db, name="Widget", price="10.00", stock=10, company_id=None) -> int:
    result = await create_product(db, name, Decimal(price), stock, company_id=company_id)
    assert result.success, result.message
    return result.value


async def add_buyer(db, username="buyer01", number=12345678, role=RoleEnum.common):
    result = await create_user(db, username, PASSWORD, f"{username}@example.com", "Calle Mayor 1, Madrid",
                               dni=dni_for(number), role=role)
    assert result.success, result.message
    return result.value


async def add_company(db, username="company01", nif="B12345674"):
    result = await create_user(db, username, PASSWORD, f"{username}@example.com", "Poligono 3, Valencia",
                               account_type=AccountType.company, nif=nif)
    assert result.success, result.message
    return result.value


# Reads go through a fresh session so they see committed state only

async def stock_of(session_factory, product_id: int) -> int:
    async with session_factory() as session:
        return (await session.execute(select(Product.stock).filter(Product.id == product_id))).scalar_one()


async def count_rows(session_factory, model) -> int:
    async with session_factory() as session:
        return len((await session.execute(select(model.id))).all())


async def order_counts(session_factory):
    return await count_rows(session_factory, Order), await count_rows(session_factory, OrderItem)
