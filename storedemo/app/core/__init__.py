"""
Core package — cross-cutting concerns.

Modules:
    config          — environment variables & settings
    logging_config  — structured JSON / pretty logging
    errors          — exception hierarchy & handlers
    health          — readiness aggregation
    database        — async PostgreSQL engine, pool, schema
    auth            — demo authentication gate
    middleware      — request logging & correlation IDs
    platform        — ECS / EKS runtime detection
    telemetry       — OpenTelemetry tracing
"""
