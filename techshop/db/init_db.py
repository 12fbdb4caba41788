# techshop/db/init_db.py
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.future import select

from techshop.db.database import engine as default_engine, make_session_factory, Base
from techshop.db.models import Product
from techshop.logging_config import get_logger

log = get_logger(__name__)

DEMO_PRODUCTS = [
    ("MacBook Pro 14\"", Decimal("1999.00"), 15),
    ("iPhone 15 Pro", Decimal("1199.00"), 25),
    ("iPad Air", Decimal("649.00"), 30),
    ("Apple Watch Series 9", Decimal("429.00"), 40),
    ("AirPods Pro", Decimal("279.00"), 50),
    ("Magic Keyboard", Decimal("349.00"), 20),
    ("Sony WH-1000XM5", Decimal("399.00"), 18),
    ("Samsung Galaxy S24", Decimal("899.00"), 22),
    ("Dell XPS 13", Decimal("1299.00"), 12),
    ("Logitech MX Master 3", Decimal("99.00"), 35),
]


async def init_db(engine=None):
    async with (engine or default_engine).begin() as conn:
        # Create all tables
        await conn.run_sync(Base.metadata.create_all)


async def seed_demo_catalog(engine=None) -> int:
    """Insert the demo products into an empty catalog; returns how many were added."""
    session_factory = make_session_factory(engine or default_engine)
    async with session_factory() as db:
        existing = (await db.execute(select(func.count(Product.id)))).scalar_one()
        if existing:
            return 0
        db.add_all([Product(name=name, price=price, stock=stock) for name, price, stock in DEMO_PRODUCTS])
        await db.commit()

    log.info("Seeded %d demo products", len(DEMO_PRODUCTS))
    return len(DEMO_PRODUCTS)
