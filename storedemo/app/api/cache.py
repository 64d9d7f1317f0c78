"""
FastAPI route: Redis key/value CRUD.

    POST|PUT /cache/{key}  — set (body.value if a string, else the JSON body)
    GET      /cache/{key}  — text/plain value (404 on miss)
    DELETE   /cache/{key}  — {"ok": true} if the key existed
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import PlainTextResponse

from storedemo.app.api.dependencies import get_cache_store
from storedemo.app.api.schemas import OkResponse, text_from_body
from storedemo.app.core.errors import NotFoundError
from storedemo.app.stores.cache import CacheStore

router = APIRouter(prefix="/cache", tags=["cache"])


@router.post("/{key}", response_model=OkResponse)
async def set_value(
    key: str,
    body: Any = Body(default=None),
    cache: CacheStore = Depends(get_cache_store),
):
    await cache.set(key, text_from_body(body, "value", {"from": "storedemo"}))
    return OkResponse(ok=True)


@router.put("/{key}", response_model=OkResponse)
async def replace_value(
    key: str,
    body: Any = Body(default=None),
    cache: CacheStore = Depends(get_cache_store),
):
    await cache.set(key, text_from_body(body, "value", {"updatedBy": "storedemo"}))
    return OkResponse(ok=True)


@router.get("/{key}", response_class=PlainTextResponse)
async def get_value(key: str, cache: CacheStore = Depends(get_cache_store)):
    value = await cache.get(key)
    if value is None:
        raise NotFoundError("Cache key", key=key)
    return PlainTextResponse(value)


@router.delete("/{key}", response_model=OkResponse)
async def delete_value(key: str, cache: CacheStore = Depends(get_cache_store)):
    return OkResponse(ok=await cache.delete(key))
