"""
Readiness aggregation — point-in-time probe of the three backing stores.

Verdict rules:
    • Postgres is mandatory: db down → degraded, whatever else is up
    • Redis down → degraded
    • S3 down → degraded, but only when S3_BUCKET is configured;
      an unconfigured bucket is not probed and does not count

Intended to be polled externally (load balancer, Kubernetes); no retries.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, TYPE_CHECKING

from storedemo.app.core.config import Settings

if TYPE_CHECKING:
    from storedemo.app.stores.container import Stores

logger = logging.getLogger(__name__)


class ReadinessStatus(str, Enum):
    READY = "ready"
    DEGRADED = "degraded"


@dataclass
class ReadinessReport:
    status: ReadinessStatus
    version: str
    environment: str
    services: Dict[str, bool] = field(default_factory=dict)
    duration_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "version": self.version,
            "env": self.environment,
            "services": dict(self.services),
        }


def compute_verdict(
    *, s3_ok: bool, db_ok: bool, redis_ok: bool, s3_configured: bool,
) -> ReadinessStatus:
    if db_ok and redis_ok and (not s3_configured or s3_ok):
        return ReadinessStatus.READY
    return ReadinessStatus.DEGRADED


async def _probe(name: str, check: Callable[[], Awaitable[bool]]) -> bool:
    """Run a liveness probe; any exception counts as down."""
    try:
        return bool(await check())
    except Exception as e:
        logger.warning("[readyz] %s probe raised: %s", name, e)
        return False


async def run_readiness_check(stores: "Stores", config: Settings) -> ReadinessReport:
    """Probe S3 (if configured), Postgres and Redis in turn and aggregate."""
    start = time.monotonic()

    s3_configured = stores.objects.configured
    s3_ok = await _probe("s3", stores.objects.ping) if s3_configured else False
    db_ok = await _probe("db", stores.items.ping)
    redis_ok = await _probe("redis", stores.cache.ping)

    status = compute_verdict(
        s3_ok=s3_ok, db_ok=db_ok, redis_ok=redis_ok, s3_configured=s3_configured,
    )
    duration_ms = (time.monotonic() - start) * 1000

    logger.info(
        "[readyz] status=%s s3=%s db=%s redis=%s durationMs=%d",
        status.value, s3_ok, db_ok, redis_ok, duration_ms,
        extra={"duration_ms": duration_ms},
    )
    return ReadinessReport(
        status=status,
        version=config.APP_VERSION,
        environment=config.APP_ENV,
        services={"s3": s3_ok, "db": db_ok, "redis": redis_ok},
        duration_ms=duration_ms,
    )
