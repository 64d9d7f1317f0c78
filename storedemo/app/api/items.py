"""
FastAPI route: relational CRUD over the `items` table.

    POST   /db/items        — create (id, name and value all optional)
    GET    /db/items        — list, newest first
    GET    /db/items/{id}   — read one (404 on miss)
    PUT    /db/items/{id}   — replace name/value (404 on miss)
    DELETE /db/items/{id}   — {"ok": true} if a row was removed, else false
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends

from storedemo.app.api.dependencies import get_current_user, get_item_repository
from storedemo.app.api.schemas import ItemCreate, ItemUpdate, OkResponse
from storedemo.app.core.auth import Identity
from storedemo.app.core.errors import NotFoundError
from storedemo.app.stores.items import ItemRepository

router = APIRouter(prefix="/db/items", tags=["db"])


def _default_name(user: Identity) -> str:
    return f"banana-by-{user.username}"


@router.post("")
async def create_item(
    payload: Optional[ItemCreate] = None,
    items: ItemRepository = Depends(get_item_repository),
    user: Identity = Depends(get_current_user),
):
    payload = payload or ItemCreate()
    value = payload.value if payload.value is not None else {"by": user.username, "fun": True}
    return await items.create(
        payload.id or uuid.uuid4(),
        payload.name or _default_name(user),
        value,
    )


@router.get("")
async def list_items(items: ItemRepository = Depends(get_item_repository)):
    return await items.list_items()


@router.get("/{item_id}")
async def get_item(item_id: uuid.UUID, items: ItemRepository = Depends(get_item_repository)):
    item = await items.get(item_id)
    if item is None:
        raise NotFoundError("Item", id=str(item_id))
    return item


@router.put("/{item_id}")
async def update_item(
    item_id: uuid.UUID,
    payload: Optional[ItemUpdate] = None,
    items: ItemRepository = Depends(get_item_repository),
    user: Identity = Depends(get_current_user),
):
    payload = payload or ItemUpdate()
    value = payload.value if payload.value is not None else {"updatedBy": user.username}
    item = await items.update(item_id, payload.name or _default_name(user), value)
    if item is None:
        raise NotFoundError("Item", id=str(item_id))
    return item


@router.delete("/{item_id}", response_model=OkResponse)
async def delete_item(item_id: uuid.UUID, items: ItemRepository = Depends(get_item_repository)):
    return OkResponse(ok=await items.delete(item_id))
