"""
Runtime platform detection (ECS / EKS / unknown) for startup diagnostics.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Mapping, Optional

SERVICE_ACCOUNT_NAMESPACE = Path("/var/run/secrets/kubernetes.io/serviceaccount/namespace")


def detect_runtime_platform(
    override: str = "",
    environ: Optional[Mapping[str, str]] = None,
    service_account_file: Path = SERVICE_ACCOUNT_NAMESPACE,
) -> str:
    """
    Explicit override wins, whatever its value; otherwise infer from the
    Kubernetes and ECS signals in the environment.
    """
    if override:
        return override.lower()

    env = os.environ if environ is None else environ

    if env.get("KUBERNETES_SERVICE_HOST") or service_account_file.exists():
        return "eks"

    if (
        env.get("ECS_CONTAINER_METADATA_URI_V4")
        or env.get("ECS_CONTAINER_METADATA_URI")
        or "ECS" in env.get("AWS_EXECUTION_ENV", "").upper()
    ):
        return "ecs"

    return "unknown"


def platform_signals(environ: Optional[Mapping[str, str]] = None) -> Dict[str, object]:
    env = os.environ if environ is None else environ
    return {
        "k8s": bool(env.get("KUBERNETES_SERVICE_HOST")),
        "ecs_meta": bool(env.get("ECS_CONTAINER_METADATA_URI_V4") or env.get("ECS_CONTAINER_METADATA_URI")),
        "exec_env": env.get("AWS_EXECUTION_ENV") or "(unset)",
    }


def describe_platform(override: str = "", environ: Optional[Mapping[str, str]] = None) -> str:
    """One-line summary used by the startup and overview log lines."""
    signals = platform_signals(environ)
    return (
        f"platform={detect_runtime_platform(override, environ)} "
        f"override={override or '(none)'} "
        f"signals{{k8s={signals['k8s']},ecs_meta={signals['ecs_meta']},exec_env={signals['exec_env']}}}"
    )
