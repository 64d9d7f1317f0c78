"""
models.py — Self-test result structures.

One slot per backing store. A slot is written only by its own sequence,
so one store's failure never touches another slot's fields.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


@dataclass
class S3Check:
    ok: bool = False
    bucket: Optional[str] = None
    key: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact(asdict(self))


@dataclass
class DbCheck:
    ok: bool = False
    id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact(asdict(self))


@dataclass
class RedisCheck:
    ok: bool = False
    key: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact(asdict(self))


@dataclass
class SelfTestResult:
    s3: S3Check = field(default_factory=S3Check)
    db: DbCheck = field(default_factory=DbCheck)
    redis: RedisCheck = field(default_factory=RedisCheck)

    @property
    def all_ok(self) -> bool:
        return self.s3.ok and self.db.ok and self.redis.ok

    def to_dict(self) -> Dict[str, Any]:
        return {
            "s3": self.s3.to_dict(),
            "db": self.db.to_dict(),
            "redis": self.redis.to_dict(),
        }
