"""
FastAPI dependencies — hand the process-level stores and settings to routes.
"""

from __future__ import annotations

from fastapi import Depends, Request

from storedemo.app.core.auth import Identity
from storedemo.app.core.config import Settings
from storedemo.app.core.errors import ConfigurationError
from storedemo.app.selftest.service import S3_NOT_CONFIGURED
from storedemo.app.stores.cache import CacheStore
from storedemo.app.stores.container import Stores
from storedemo.app.stores.items import ItemRepository
from storedemo.app.stores.objects import ObjectStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_stores(request: Request) -> Stores:
    return request.app.state.stores


def get_object_store(stores: Stores = Depends(get_stores)) -> ObjectStore:
    """The object store, or 400 when no bucket is configured."""
    if not stores.objects.configured:
        raise ConfigurationError(S3_NOT_CONFIGURED, setting="S3_BUCKET")
    return stores.objects


def get_item_repository(stores: Stores = Depends(get_stores)) -> ItemRepository:
    return stores.items


def get_cache_store(stores: Stores = Depends(get_stores)) -> CacheStore:
    return stores.cache


def get_current_user(request: Request) -> Identity:
    # The auth gate sets this for protected paths
    return getattr(request.state, "user", None) or Identity()
