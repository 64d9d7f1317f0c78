"""
test_stores.py — Store adapters against stubbed SDK clients.

Covers:
    • ObjectStore over a botocore Stubber (put, get, miss, failures, ping)
    • CacheStore over a mocked redis.asyncio client (lazy connect,
      reconnect after connection loss, error translation, ping)
    • Database probes and ItemRepository over a mocked AsyncSession

Run with:
    pytest tests/test_stores.py -v
"""

from __future__ import annotations

import io
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import ANY, Stubber
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError
from sqlalchemy.exc import IntegrityError, OperationalError

from storedemo.app.core.database import Database
from storedemo.app.core.errors import BackingStoreError, ConflictError
from storedemo.app.stores.cache import CacheStore
from storedemo.app.stores.items import ItemRepository
from storedemo.app.stores.objects import ObjectStore, object_key


# ═══════════════════════════════════════════════════════════════════════════
# Section 1: ObjectStore
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def _body(text: str) -> StreamingBody:
    raw = text.encode("utf-8")
    return StreamingBody(io.BytesIO(raw), len(raw))


class TestObjectKey:

    def test_prefix_and_suffix(self):
        assert object_key("abc") == "app/abc.txt"


class TestObjectStore:

    @pytest.mark.asyncio
    async def test_put_sends_text(self, s3_client):
        store = ObjectStore("demo-bucket", s3_client)
        with Stubber(s3_client) as stub:
            stub.add_response(
                "put_object",
                {},
                {
                    "Bucket": "demo-bucket",
                    "Key": "app/a.txt",
                    "Body": b"hello",
                    "ContentType": ANY,
                },
            )
            await store.put_text("app/a.txt", "hello")
            stub.assert_no_pending_responses()

    @pytest.mark.asyncio
    async def test_get_returns_text(self, s3_client):
        store = ObjectStore("demo-bucket", s3_client)
        with Stubber(s3_client) as stub:
            stub.add_response("get_object", {"Body": _body("héllo")})
            assert await store.get_text("app/a.txt") == "héllo"

    @pytest.mark.asyncio
    async def test_get_missing_is_none(self, s3_client):
        store = ObjectStore("demo-bucket", s3_client)
        with Stubber(s3_client) as stub:
            stub.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
            assert await store.get_text("app/ghost.txt") is None

    @pytest.mark.asyncio
    async def test_get_access_denied_translated(self, s3_client):
        store = ObjectStore("demo-bucket", s3_client)
        with Stubber(s3_client) as stub:
            stub.add_client_error("get_object", service_error_code="AccessDenied", http_status_code=403)
            with pytest.raises(BackingStoreError) as exc:
                await store.get_text("app/a.txt")
        assert exc.value.store == "s3"
        assert exc.value.operation == "get"

    @pytest.mark.asyncio
    async def test_delete_failure_translated(self, s3_client):
        store = ObjectStore("demo-bucket", s3_client)
        with Stubber(s3_client) as stub:
            stub.add_client_error("delete_object", service_error_code="InternalError", http_status_code=500)
            with pytest.raises(BackingStoreError, match="s3 delete failed"):
                await store.delete("app/a.txt")

    @pytest.mark.asyncio
    async def test_ping(self, s3_client):
        store = ObjectStore("demo-bucket", s3_client)
        with Stubber(s3_client) as stub:
            stub.add_response("head_bucket", {}, {"Bucket": "demo-bucket"})
            stub.add_client_error("head_bucket", service_error_code="404", http_status_code=404)
            assert await store.ping() is True
            assert await store.ping() is False

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        store = ObjectStore("", None)
        assert store.configured is False
        assert await store.ping() is False
        await store.close()

    @pytest.mark.asyncio
    async def test_wait_until_ready_gives_up(self, s3_client):
        store = ObjectStore("demo-bucket", s3_client)
        with Stubber(s3_client) as stub:
            for _ in range(2):
                stub.add_client_error("head_bucket", service_error_code="404", http_status_code=404)
            assert await store.wait_until_ready(attempts=2, delay=0) is False


# ═══════════════════════════════════════════════════════════════════════════
# Section 2: CacheStore
# ═══════════════════════════════════════════════════════════════════════════

def _cache_with(client: AsyncMock):
    factory = MagicMock(return_value=client)
    return CacheStore(factory), factory


class TestCacheStore:

    @pytest.mark.asyncio
    async def test_client_created_lazily_once(self):
        client = AsyncMock()
        client.get.return_value = "hello"
        cache, factory = _cache_with(client)

        assert cache.connected is False
        factory.assert_not_called()

        await cache.set("greeting", "hello")
        assert await cache.get("greeting") == "hello"
        factory.assert_called_once()
        client.set.assert_awaited_once_with("greeting", "hello")

    @pytest.mark.asyncio
    async def test_delete_reports_existence(self):
        client = AsyncMock()
        client.delete.side_effect = [1, 0]
        cache, _ = _cache_with(client)
        assert await cache.delete("k") is True
        assert await cache.delete("k") is False

    @pytest.mark.asyncio
    async def test_connection_loss_drops_client(self):
        broken, healthy = AsyncMock(), AsyncMock()
        broken.get.side_effect = RedisConnectionError("Connection refused")
        healthy.get.return_value = "v"
        factory = MagicMock(side_effect=[broken, healthy])
        cache = CacheStore(factory)

        with pytest.raises(BackingStoreError, match="redis get failed"):
            await cache.get("k")
        assert cache.connected is False
        broken.aclose.assert_awaited_once()

        assert await cache.get("k") == "v"
        assert factory.call_count == 2

    @pytest.mark.asyncio
    async def test_command_error_keeps_client(self):
        client = AsyncMock()
        client.set.side_effect = ResponseError("WRONGTYPE")
        cache, factory = _cache_with(client)

        with pytest.raises(BackingStoreError) as exc:
            await cache.set("k", "v")
        assert exc.value.operation == "set"
        assert cache.connected is True
        factory.assert_called_once()

    @pytest.mark.asyncio
    async def test_ping_never_raises(self):
        client = AsyncMock()
        client.ping.side_effect = RedisConnectionError("down")
        cache, _ = _cache_with(client)
        assert await cache.ping() is False

    @pytest.mark.asyncio
    async def test_ping_ok(self):
        client = AsyncMock()
        client.ping.return_value = True
        cache, _ = _cache_with(client)
        assert await cache.ping() is True

    @pytest.mark.asyncio
    async def test_close(self):
        client = AsyncMock()
        cache, _ = _cache_with(client)
        await cache.set("k", "v")
        await cache.close()
        client.aclose.assert_awaited_once()
        assert cache.connected is False


# ═══════════════════════════════════════════════════════════════════════════
# Section 3: Database / ItemRepository
# ═══════════════════════════════════════════════════════════════════════════

class TestDatabase:

    @pytest.mark.asyncio
    async def test_ping_never_raises(self):
        engine = MagicMock()
        engine.connect.side_effect = OSError("connection refused")
        assert await Database(engine).ping() is False

    @pytest.mark.asyncio
    async def test_wait_until_ready_bounded(self):
        engine = MagicMock()
        engine.connect.side_effect = OSError("connection refused")
        assert await Database(engine).wait_until_ready(attempts=3, delay=0) is False
        assert engine.connect.call_count == 3

    @pytest.mark.asyncio
    async def test_repository_translates_driver_errors(self):
        database = MagicMock()
        database.session.side_effect = OperationalError("SELECT", {}, Exception("server closed"))
        with pytest.raises(BackingStoreError) as exc:
            await ItemRepository(database).list_items()
        assert exc.value.store == "db"
        assert exc.value.operation == "list"

    @pytest.mark.asyncio
    async def test_no_sleep_after_last_attempt(self):
        engine = MagicMock()
        engine.connect.side_effect = OSError("connection refused")
        with patch("storedemo.app.core.database.asyncio.sleep", new_callable=AsyncMock) as sleep:
            assert await Database(engine).wait_until_ready(attempts=3, delay=1.5) is False
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_bucket_wait_no_sleep_after_last_attempt(self, s3_client):
        store = ObjectStore("demo-bucket", s3_client)
        with Stubber(s3_client) as stub, patch(
            "storedemo.app.stores.objects.asyncio.sleep", new_callable=AsyncMock,
        ) as sleep:
            for _ in range(3):
                stub.add_client_error("head_bucket", service_error_code="404", http_status_code=404)
            assert await store.wait_until_ready(attempts=3, delay=1.5) is False
        assert sleep.await_count == 2


def _repository_with(session: AsyncMock) -> ItemRepository:
    database = MagicMock()

    @asynccontextmanager
    async def _session():
        yield session

    database.session = _session
    return ItemRepository(database)


def _mock_session() -> AsyncMock:
    session = AsyncMock()
    session.add = MagicMock()
    return session


class TestItemRepository:

    @pytest.mark.asyncio
    async def test_create_refreshes_server_timestamp(self):
        session = _mock_session()
        created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        session.refresh.side_effect = lambda item: setattr(item, "created_at", created)
        item_id = uuid.uuid4()

        row = await _repository_with(session).create(item_id, "banana", {"tasty": True})

        assert row == {
            "id": str(item_id),
            "name": "banana",
            "value": {"tasty": True},
            "created_at": created.isoformat(),
        }
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_duplicate_id_is_conflict(self):
        session = _mock_session()
        session.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

        with pytest.raises(ConflictError):
            await _repository_with(session).create(uuid.uuid4(), "banana", {})
        session.rollback.assert_awaited_once()
        session.refresh.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_rowcount_to_bool(self):
        session = _mock_session()
        session.execute.side_effect = [MagicMock(rowcount=1), MagicMock(rowcount=0)]
        repository = _repository_with(session)

        assert await repository.delete(uuid.uuid4()) is True
        assert await repository.delete(uuid.uuid4()) is False

    @pytest.mark.asyncio
    async def test_update_missing_row(self):
        session = _mock_session()
        session.get.return_value = None

        assert await _repository_with(session).update(uuid.uuid4(), "x", {}) is None
        session.commit.assert_not_awaited()
