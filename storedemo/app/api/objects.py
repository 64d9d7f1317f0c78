"""
FastAPI route: S3 object CRUD.

    POST   /s3/{id}   — store text (body.text, else the JSON body) at app/<id>.txt
    GET    /s3/{id}   — read it back as text/plain
    DELETE /s3/{id}   — remove it

All three answer 400 when S3_BUCKET is not configured.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import PlainTextResponse

from storedemo.app.api.dependencies import get_object_store
from storedemo.app.api.schemas import ObjectPutResponse, OkResponse, text_from_body
from storedemo.app.core.errors import NotFoundError
from storedemo.app.stores.objects import ObjectStore, object_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/s3", tags=["s3"])


@router.post("/{object_id}", response_model=ObjectPutResponse)
async def put_object(
    object_id: str,
    body: Any = Body(default=None),
    store: ObjectStore = Depends(get_object_store),
):
    key = object_key(object_id)
    text = text_from_body(body, "text", {"message": "hello from storedemo"})
    await store.put_text(key, text)
    logger.debug("[s3] put %s/%s (%d chars)", store.bucket, key, len(text))
    return ObjectPutResponse(bucket=store.bucket, key=key)


@router.get("/{object_id}", response_class=PlainTextResponse)
async def get_object(object_id: str, store: ObjectStore = Depends(get_object_store)):
    key = object_key(object_id)
    content = await store.get_text(key)
    if content is None:
        raise NotFoundError("Object", key=key)
    return PlainTextResponse(content)


@router.delete("/{object_id}", response_model=OkResponse)
async def delete_object(object_id: str, store: ObjectStore = Depends(get_object_store)):
    await store.delete(object_key(object_id))
    return OkResponse(ok=True)
