"""
selftest — End-to-end CRUD check across S3, Postgres and Redis.

Sub-modules:
    models   — Per-store results and the aggregated SelfTestResult
    service  — Sequencing with one isolated failure boundary per store
"""
