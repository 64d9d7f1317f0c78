"""
Database layer — async PostgreSQL via SQLAlchemy 2.0 + asyncpg.

Provides:
    • Async engine and session factory, owned by a Database instance
    • Bounded connection pool with connect timeout and recycle
    • Liveness probe and blocking startup wait
    • Schema creation (and optional demo seed) on boot
    • Base model for ORM entities

Usage:
    from storedemo.app.core.database import Database

    db = Database.from_settings(settings)
    async with db.session() as session:
        await session.get(Item, item_id)
"""

from __future__ import annotations

import asyncio
import logging
import ssl
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from storedemo.app.core.config import Settings

logger = logging.getLogger(__name__)


# ── ORM Base ──
class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


def _ssl_context(mode: str) -> Optional[ssl.SSLContext]:
    """DB_SSL=required encrypts without verifying the server certificate."""
    if mode != "required":
        return None
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def build_engine(config: Settings) -> AsyncEngine:
    """Create the process-wide async engine from settings."""
    connect_args: Dict[str, Any] = {"timeout": config.DB_CONNECT_TIMEOUT}
    ssl_ctx = _ssl_context(config.DB_SSL)
    if ssl_ctx is not None:
        connect_args["ssl"] = ssl_ctx

    return create_async_engine(
        config.database_url,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=0,
        pool_timeout=config.DB_CONNECT_TIMEOUT,
        pool_recycle=config.DB_IDLE_TIMEOUT,
        pool_pre_ping=True,
        echo=config.DB_ECHO,
        connect_args=connect_args,
    )


class Database:
    """Engine + session factory pair; one per process."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, config: Settings) -> "Database":
        return cls(build_engine(config))

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session; roll back on error."""
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        """SELECT 1 against the pool. Never raises."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1 AS ok"))
            return True
        except Exception as e:
            logger.debug("Database ping failed: %s", e)
            return False

    async def wait_until_ready(self, attempts: int, delay: float) -> bool:
        """Poll ping() up to `attempts` times with a fixed delay."""
        for attempt in range(1, attempts + 1):
            if await self.ping():
                return True
            logger.debug(
                "[startup] waiting for Postgres attempt=%d/%d", attempt, attempts,
                extra={"attempt": attempt},
            )
            if attempt < attempts:
                await asyncio.sleep(delay)
        return False

    async def init_schema(self, seed: bool = False) -> None:
        """Create tables if absent; optionally insert the demo row."""
        async with self.engine.begin() as conn:
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS pgcrypto"))
            await conn.run_sync(Base.metadata.create_all)
            if seed:
                await conn.execute(text(
                    "INSERT INTO items (id, name, value) VALUES "
                    "(gen_random_uuid(), 'banana', '{\"tasty\": true}') "
                    "ON CONFLICT DO NOTHING"
                ))
        logger.info("Database schema ready (seed=%s)", seed)

    async def close(self) -> None:
        """Dispose engine connections."""
        await self.engine.dispose()
        logger.info("Database connections closed")
