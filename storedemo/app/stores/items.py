"""
Relational store — CRUD over the `items` table.

Rows are returned as plain dicts ({id, name, value, created_at}) so the
HTTP layer and the self-test never hold ORM instances outside a session.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from storedemo.app.core.database import Database
from storedemo.app.core.errors import ConflictError, translate_errors
from storedemo.app.stores.models import Item

logger = logging.getLogger(__name__)

_DB_ERRORS = (SQLAlchemyError, OSError)


class ItemRepository:
    """Items table access through a shared Database pool."""

    def __init__(self, database: Database):
        self.database = database

    async def ping(self) -> bool:
        return await self.database.ping()

    async def wait_until_ready(self, attempts: int, delay: float) -> bool:
        return await self.database.wait_until_ready(attempts, delay)

    async def migrate(self, seed: bool = False) -> None:
        await self.database.init_schema(seed=seed)

    @translate_errors("db", "list", _DB_ERRORS)
    async def list_items(self) -> List[Dict[str, Any]]:
        async with self.database.session() as session:
            rows = await session.scalars(select(Item).order_by(Item.created_at.desc()))
            return [row.to_dict() for row in rows]

    @translate_errors("db", "get", _DB_ERRORS)
    async def get(self, item_id: uuid.UUID) -> Optional[Dict[str, Any]]:
        async with self.database.session() as session:
            item = await session.get(Item, item_id)
            return item.to_dict() if item else None

    @translate_errors("db", "create", _DB_ERRORS)
    async def create(self, item_id: uuid.UUID, name: str, value: Any) -> Dict[str, Any]:
        async with self.database.session() as session:
            item = Item(id=item_id, name=name, value=value)
            session.add(item)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ConflictError("Item", id=str(item_id))
            # created_at is assigned by the server
            await session.refresh(item)
            return item.to_dict()

    @translate_errors("db", "update", _DB_ERRORS)
    async def update(self, item_id: uuid.UUID, name: str, value: Any) -> Optional[Dict[str, Any]]:
        async with self.database.session() as session:
            item = await session.get(Item, item_id)
            if item is None:
                return None
            item.name = name
            item.value = value
            await session.commit()
            return item.to_dict()

    @translate_errors("db", "delete", _DB_ERRORS)
    async def delete(self, item_id: uuid.UUID) -> bool:
        async with self.database.session() as session:
            result = await session.execute(delete(Item).where(Item.id == item_id))
            await session.commit()
            return (result.rowcount or 0) > 0

    async def close(self) -> None:
        await self.database.close()
