"""
Shared fixtures: in-memory stand-ins for the three backing stores and an
app wired to them through create_app(settings, stores).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from storedemo.app.core.config import Settings
from storedemo.app.core.errors import BackingStoreError, ConflictError
from storedemo.app.factory import create_app
from storedemo.app.stores.container import Stores


AUTH_SECRET = "test-secret"


# ═══════════════════════════════════════════════════════════════════════════
# Fake stores
# ═══════════════════════════════════════════════════════════════════════════

class FakeObjectStore:
    """Dict-backed ObjectStore. `down=True` makes every call fail."""

    def __init__(self, bucket: str = "demo-bucket", down: bool = False):
        self.bucket = bucket
        self.down = down
        self.objects: Dict[str, str] = {}
        self.calls: List[str] = []
        self.closed = False
        self.corrupt_reads = False

    @property
    def configured(self) -> bool:
        return bool(self.bucket)

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if self.down:
            raise BackingStoreError("s3", operation, "connection refused")

    async def ping(self) -> bool:
        self.calls.append("ping")
        return self.configured and not self.down

    async def wait_until_ready(self, attempts: int, delay: float) -> bool:
        return await self.ping()

    async def put_text(self, key: str, text: str) -> None:
        self._check("put")
        self.objects[key] = text

    async def get_text(self, key: str) -> Optional[str]:
        self._check("get")
        text = self.objects.get(key)
        if text is not None and self.corrupt_reads:
            return text + "!"
        return text

    async def delete(self, key: str) -> None:
        self._check("delete")
        self.objects.pop(key, None)

    async def close(self) -> None:
        self.closed = True


class FakeItemRepository:
    """Dict-backed ItemRepository."""

    def __init__(self, down: bool = False):
        self.down = down
        self.rows: Dict[uuid.UUID, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self.migrated = False
        self.closed = False
        self.lose_writes = False
        self.ping_results: List[bool] = []

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if self.down:
            raise BackingStoreError("db", operation, "could not connect to server")

    async def ping(self) -> bool:
        if self.ping_results:
            return self.ping_results.pop(0)
        return not self.down

    async def wait_until_ready(self, attempts: int, delay: float) -> bool:
        for _ in range(attempts):
            if await self.ping():
                return True
        return False

    async def migrate(self, seed: bool = False) -> None:
        self._check("migrate")
        self.migrated = True

    async def list_items(self) -> List[Dict[str, Any]]:
        self._check("list")
        # insertion order stands in for created_at
        return [dict(row) for row in reversed(list(self.rows.values()))]

    async def get(self, item_id: uuid.UUID) -> Optional[Dict[str, Any]]:
        self._check("get")
        row = self.rows.get(item_id)
        return dict(row) if row else None

    async def create(self, item_id: uuid.UUID, name: str, value: Any) -> Dict[str, Any]:
        self._check("create")
        if item_id in self.rows:
            raise ConflictError("Item", id=str(item_id))
        row = {
            "id": str(item_id),
            "name": name,
            "value": value,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        if not self.lose_writes:
            self.rows[item_id] = row
        return dict(row)

    async def update(self, item_id: uuid.UUID, name: str, value: Any) -> Optional[Dict[str, Any]]:
        self._check("update")
        row = self.rows.get(item_id)
        if row is None:
            return None
        row.update(name=name, value=value)
        return dict(row)

    async def delete(self, item_id: uuid.UUID) -> bool:
        self._check("delete")
        return self.rows.pop(item_id, None) is not None

    async def close(self) -> None:
        self.closed = True


class FakeCacheStore:
    """Dict-backed CacheStore."""

    def __init__(self, down: bool = False):
        self.down = down
        self.values: Dict[str, str] = {}
        self.calls: List[str] = []
        self.closed = False

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if self.down:
            raise BackingStoreError("redis", operation, "Connection refused")

    async def ping(self) -> bool:
        return not self.down

    async def set(self, key: str, value: str) -> None:
        self._check("set")
        self.values[key] = value

    async def get(self, key: str) -> Optional[str]:
        self._check("get")
        return self.values.get(key)

    async def delete(self, key: str) -> bool:
        self._check("delete")
        return self.values.pop(key, None) is not None

    async def close(self) -> None:
        self.closed = True


# ═══════════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════════

def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = dict(
        APP_ENV="test",
        APP_AUTH_SECRET=AUTH_SECRET,
        S3_BUCKET="demo-bucket",
        SELF_TEST_ON_BOOT=False,
        TRACING_ENABLED=False,
        DB_STARTUP_ATTEMPTS=3,
        DB_STARTUP_DELAY=0.0,
    )
    values.update(overrides)
    return Settings(**values)


def make_stores(
    *,
    bucket: str = "demo-bucket",
    s3_down: bool = False,
    db_down: bool = False,
    redis_down: bool = False,
) -> Stores:
    return Stores(
        objects=FakeObjectStore(bucket=bucket, down=s3_down),
        items=FakeItemRepository(down=db_down),
        cache=FakeCacheStore(down=redis_down),
    )


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def stores() -> Stores:
    return make_stores()


@pytest.fixture
def app(settings: Settings, stores: Stores):
    return create_app(settings, stores)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
