# techshop/db/database.py
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from techshop.config import DATABASE_URL, SQL_ECHO


def make_engine(url: str = DATABASE_URL, echo: bool = SQL_ECHO):
    return create_async_engine(url, echo=echo)


def make_session_factory(bind):
    return sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False
    )


# Async engine and session factory for the configured database
engine = make_engine()
SessionLocal = make_session_factory(engine)

# Base class for the models
Base = declarative_base()


# Session per request
async def get_db():
    async with SessionLocal() as session:
        yield session
