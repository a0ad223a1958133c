"""
Stockgate — Async SQLAlchemy engine and sessions

Two session factories: ``AsyncSessionLocal`` for request handlers and
``LedgerSessionLocal`` for the batch decrementer, which may run under a
separate, privileged database role.
"""
from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from stockgate.core.config import get_settings

settings = get_settings()


class Base(DeclarativeBase):
    pass


engine = create_async_engine(settings.database_url, pool_pre_ping=True, echo=settings.DEBUG)

if settings.ledger_database_url == settings.database_url:
    ledger_engine = engine
else:
    ledger_engine = create_async_engine(settings.ledger_database_url, pool_pre_ping=True)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)
LedgerSessionLocal = async_sessionmaker(ledger_engine, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session


def get_ledger_sessions() -> async_sessionmaker[AsyncSession]:
    return LedgerSessionLocal
