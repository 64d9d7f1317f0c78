"""
Pydantic schemas for the HTTP surface.

Separated from the route handlers so they are reusable across
the codebase (routes, tests).
"""

from __future__ import annotations

import json
import uuid
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class ItemCreate(BaseModel):
    """Body for POST /db/items. Every field is optional."""
    id: Optional[uuid.UUID] = Field(
        default=None,
        description="Item id; generated when omitted",
    )
    name: Optional[str] = Field(default=None, examples=["banana"])
    value: Any = Field(default=None, examples=[{"tasty": True}])


class ItemUpdate(BaseModel):
    """Body for PUT /db/items/{id}."""
    name: Optional[str] = Field(default=None, examples=["banana-updated"])
    value: Any = Field(default=None, examples=[{"tasty": False}])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OkResponse(BaseModel):
    ok: bool


class ObjectPutResponse(BaseModel):
    ok: bool = True
    bucket: str
    key: str


class ReadinessOut(BaseModel):
    status: str = Field(..., examples=["ready"])
    version: str
    env: str
    services: Dict[str, bool]


# ---------------------------------------------------------------------------
# Free-form bodies (S3 / cache)
# ---------------------------------------------------------------------------

def text_from_body(body: Any, field: str, default: Dict[str, Any]) -> str:
    """
    `body[field]` when it is a string; otherwise the whole JSON body
    (or `default` when there is none), compactly serialised.

    A non-JSON request body arrives as raw bytes and counts as no body.
    """
    if isinstance(body, (bytes, bytearray)):
        body = None
    if isinstance(body, dict) and isinstance(body.get(field), str):
        return body[field]
    return json.dumps(body if body is not None else default, separators=(",", ":"))
