"""
stores — Adapters over the three backing stores.

Sub-modules:
    objects    — S3 object storage (boto3)
    items      — Postgres `items` table (SQLAlchemy async)
    cache      — Redis key/value (redis-py asyncio)
    models     — ORM entities
    container  — Stores: the per-process bundle injected into handlers
"""
