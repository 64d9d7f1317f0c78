"""
Stores — the three backing-store clients, built once per process.

`create_app` owns the instance and exposes it on `app.state.stores`;
handlers reach it through `storedemo.app.api.dependencies.get_stores`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from storedemo.app.core.config import Settings
from storedemo.app.core.database import Database
from storedemo.app.stores.cache import CacheStore
from storedemo.app.stores.items import ItemRepository
from storedemo.app.stores.objects import ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class Stores:
    objects: ObjectStore
    items: ItemRepository
    cache: CacheStore

    @classmethod
    def from_settings(cls, config: Settings) -> "Stores":
        return cls(
            objects=ObjectStore.from_settings(config),
            items=ItemRepository(Database.from_settings(config)),
            cache=CacheStore.from_settings(config),
        )

    async def close(self) -> None:
        """Release every client; errors are logged so the others still close."""
        for name, store in (("s3", self.objects), ("db", self.items), ("redis", self.cache)):
            try:
                await store.close()
            except Exception as e:
                logger.warning("Error closing %s client: %s", name, e)
