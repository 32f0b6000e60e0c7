"""Async database engine, session factory and request-scoped sessions."""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def create_engine_from_url(database_url: str) -> AsyncEngine:
    """Build the async engine once per process (called from the app lifespan)."""
    return create_async_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        class_=AsyncSession,
    )


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Provide a single async DB session per request."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session
