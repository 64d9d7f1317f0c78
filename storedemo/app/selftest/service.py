"""
service.py — Self-test orchestration across the three backing stores.

Runs, strictly one after another:

    1. S3        put → get → compare → delete
    2. Postgres  create → read → update → delete
    3. Redis     set → get → compare → delete

Each sequence runs inside its own failure boundary (`_run_isolated`): the
outcome is captured into that store's slot and never propagates, so a dead
Redis cannot hide a healthy Postgres. Every step is logged with a
`[selftest][<store>]` tag.

The result is handed back unchanged; callers (the /selftest endpoint and
the boot-time run) decide what a failed slot means.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, TYPE_CHECKING, Union

from storedemo.app.core.errors import SelfTestMismatchError
from storedemo.app.selftest.models import DbCheck, RedisCheck, S3Check, SelfTestResult
from storedemo.app.stores.objects import object_key

if TYPE_CHECKING:
    from storedemo.app.stores.cache import CacheStore
    from storedemo.app.stores.container import Stores
    from storedemo.app.stores.items import ItemRepository
    from storedemo.app.stores.objects import ObjectStore

logger = logging.getLogger(__name__)

S3_NOT_CONFIGURED = "S3_BUCKET not configured"

Slot = Union[S3Check, DbCheck, RedisCheck]


def _now_ms() -> int:
    return int(time.time() * 1000)


async def _run_isolated(
    tag: str, slot: Slot, sequence: Callable[[Slot], Awaitable[None]],
) -> None:
    """Run one store's sequence, capturing success or error into its slot."""
    try:
        await sequence(slot)
    except Exception as e:
        slot.ok = False
        slot.error = str(e) or type(e).__name__
        logger.error("[selftest][%s] failed: %s", tag, slot.error, exc_info=True)
    else:
        slot.ok = True
        slot.error = None


async def _s3_sequence(store: "ObjectStore", slot: S3Check) -> None:
    key = object_key(f"selftest-{_now_ms()}")
    slot.bucket, slot.key = store.bucket, key
    body = f"hello from storedemo selftest {datetime.now(timezone.utc).isoformat()}"

    logger.info("[selftest][s3] put %s/%s", store.bucket, key, extra={"store": "s3", "key": key})
    await store.put_text(key, body)

    logger.info("[selftest][s3] get %s/%s", store.bucket, key, extra={"store": "s3", "key": key})
    got = await store.get_text(key)
    if got != body:
        raise SelfTestMismatchError("s3 content mismatch")

    logger.info("[selftest][s3] delete %s/%s", store.bucket, key, extra={"store": "s3", "key": key})
    await store.delete(key)


async def _db_sequence(items: "ItemRepository", slot: DbCheck) -> None:
    item_id = uuid.uuid4()
    slot.id = str(item_id)
    name = f"selftest-{slot.id[:8]}"
    value = {"hello": "storedemo", "ts": _now_ms()}

    logger.info("[selftest][db] create %s", item_id, extra={"store": "db", "item_id": slot.id})
    await items.create(item_id, name, value)

    logger.info("[selftest][db] get %s", item_id, extra={"store": "db", "item_id": slot.id})
    if not await items.get(item_id):
        raise LookupError("db read failed")

    logger.info("[selftest][db] update %s", item_id, extra={"store": "db", "item_id": slot.id})
    await items.update(item_id, f"{name}-updated", {**value, "updated": True})

    logger.info("[selftest][db] delete %s", item_id, extra={"store": "db", "item_id": slot.id})
    if not await items.delete(item_id):
        raise LookupError("db delete failed")


async def _redis_sequence(cache: "CacheStore", slot: RedisCheck) -> None:
    key = f"selftest:{uuid.uuid4()}"
    slot.key = key
    value = f"hi-{_now_ms()}"

    logger.info("[selftest][redis] set %s", key, extra={"store": "redis", "key": key})
    await cache.set(key, value)

    logger.info("[selftest][redis] get %s", key, extra={"store": "redis", "key": key})
    if await cache.get(key) != value:
        raise SelfTestMismatchError("redis value mismatch")

    logger.info("[selftest][redis] del %s", key, extra={"store": "redis", "key": key})
    await cache.delete(key)


async def run_self_test(stores: "Stores") -> SelfTestResult:
    """End-to-end CRUD across S3, Postgres and Redis."""
    result = SelfTestResult()

    if stores.objects.configured:
        await _run_isolated("s3", result.s3, lambda slot: _s3_sequence(stores.objects, slot))
    else:
        result.s3 = S3Check(ok=False, error=S3_NOT_CONFIGURED)

    await _run_isolated("db", result.db, lambda slot: _db_sequence(stores.items, slot))
    await _run_isolated("redis", result.redis, lambda slot: _redis_sequence(stores.cache, slot))

    return result


async def run_and_log_self_test(stores: "Stores") -> None:
    """Boot-time variant: run once and log the summary line (WARNING if any slot failed)."""
    try:
        result = await run_self_test(stores)
    except Exception:
        logger.exception("[selftest] error")
        return
    level = logging.INFO if result.all_ok else logging.WARNING
    logger.log(level, "[selftest] summary: %s", json.dumps(result.to_dict()))
