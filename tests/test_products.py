# tests/test_products.py
from decimal import Decimal

import pytest

from techshop.db.models import Product
from techshop.db.orders import create_order
from techshop.db.products import (
    can_delete_product, check_stock, create_product, decrement_stock, delete_product, get_all_products,
    get_company_products, get_product_by_id, get_products_by_ids, update_product,
)
from techshop.db.results import PRODUCT_NOT_FOUND
from tests.conftest import add_buyer, add_company, add_product, count_rows, stock_of


@pytest.mark.parametrize("name, price, stock", [
    ("", "1.00", 1),
    ("   ", "1.00", 1),
    ("Cable", "-0.01", 1),
    ("Cable", "1.00", -1),
    ("Cable", "abc", 1),
    ("Cable", "1.00", 1.5),
    ("x" * 101, "1.00", 1),
])
async def test_create_rejects_bad_fields(db, session_factory, name, price, stock):
    result = await create_product(db, name, price, stock)
    assert not result.success
    assert await count_rows(session_factory, Product) == 0


async def test_create_stores_exact_price(db):
    result = await create_product(db, "  Cable  ", Decimal("3.10"), 7)
    assert result.success

    product = await get_product_by_id(db, result.value)
    assert product.name == "Cable"
    assert product.price == Decimal("3.10")
    assert product.stock == 7
    assert product.company_id is None


async def test_listing_search_and_paging(db):
    await add_product(db, name="USB Cable")
    await add_product(db, name="HDMI cable")
    await add_product(db, name="Monitor")

    assert [p.name for p in await get_all_products(db, "CABLE")] == ["USB Cable", "HDMI cable"]
    assert [p.name for p in await get_all_products(db, skip=1, limit=1)] == ["HDMI cable"]


async def test_resolve_cart_skips_missing(db):
    a = await add_product(db, name="A")
    pairs = await get_products_by_ids(db, {a: 2, 999: 1})
    assert [(p.id, qty) for p, qty in pairs] == [(a, 2)]
    assert await get_products_by_ids(db, {}) == []


async def test_check_stock(db):
    product_id = await add_product(db, stock=2)

    assert (await check_stock(db, product_id, 2)).success
    short = await check_stock(db, product_id, 3)
    assert not short.success
    assert short.message == "Insufficient stock. Available: 2, requested: 3"
    assert (await check_stock(db, 555, 1)).message == PRODUCT_NOT_FOUND


async def test_decrement_modes(db, session_factory):
    product_id = await add_product(db, stock=2)

    assert not await decrement_stock(db, product_id, 3, strict=True)
    await db.commit()
    assert await stock_of(session_factory, product_id) == 2

    assert await decrement_stock(db, product_id, 3)
    await db.commit()
    assert await stock_of(session_factory, product_id) == -1

    assert not await decrement_stock(db, 555, 1)


async def test_company_edits_only_its_products(db, session_factory):
    company = await add_company(db)
    rival = await add_company(db, username="company02", nif="B87654323")
    own = await add_product(db, name="Own", company_id=company.id)
    other = await add_product(db, name="Other", company_id=rival.id)

    assert (await update_product(db, own, "Own v2", "5.00", 3, company_id=company.id)).success
    denied = await update_product(db, other, "Stolen", "1.00", 1, company_id=company.id)
    assert denied.message == PRODUCT_NOT_FOUND
    assert not (await delete_product(db, other, company_id=company.id)).success

    assert [p.name for p in await get_company_products(db, company.id)] == ["Own v2"]
    assert await stock_of(session_factory, own) == 3


async def test_update_validates_fields(db):
    product_id = await add_product(db, name="Keep")
    assert not (await update_product(db, product_id, "", "1.00", 1)).success
    assert (await get_product_by_id(db, product_id)).name == "Keep"


async def test_product_with_sales_cannot_be_deleted(db, session_factory):
    buyer = await add_buyer(db)
    sold = await add_product(db, name="Sold", stock=10)
    unsold = await add_product(db, name="Unsold", stock=10)
    await create_order(db, {sold: 1}, buyer.id)
    await create_order(db, {sold: 1}, buyer.id)

    blocked = await can_delete_product(db, sold)
    assert not blocked.success
    assert "2 sale(s)" in blocked.message
    assert not (await delete_product(db, sold)).success

    assert (await delete_product(db, unsold)).success
    assert await count_rows(session_factory, Product) == 1
    assert (await delete_product(db, unsold)).message == PRODUCT_NOT_FOUND
