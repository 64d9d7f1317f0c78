"""
Demo authentication gate.

NOT a security boundary. This reproduces the deliberately permissive
behaviour of the demo deployment:

    • public paths skip the gate entirely
    • a request carrying no credential at all is let through as the
      default identity
    • a presented credential must match the single shared secret
      (APP_AUTH_SECRET) or the fixed demo bearer token, otherwise 401

Accepted credential forms:
    ?token=<secret>
    Authorization: Bearer <secret | demo-token>
    Authorization: Basic base64(<user>:<secret>)
    Authorization: <user>:<secret>
"""

from __future__ import annotations

import base64
import binascii
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

DEFAULT_USERNAME = "demo"
DEMO_TOKEN = "demo-token"

PUBLIC_PATHS = frozenset({"/healthz", "/robots.txt", "/favicon.ico"})


@dataclass(frozen=True)
class Identity:
    username: str = DEFAULT_USERNAME


def is_public_path(method: str, path: str, readyz_public: bool) -> bool:
    if path in PUBLIC_PATHS:
        return True
    if readyz_public and path == "/readyz":
        return True
    return method == "GET" and path == "/"


def _matches(candidate: str, secret: str) -> bool:
    return hmac.compare_digest(candidate.encode("utf-8"), secret.encode("utf-8"))


def _split_user_secret(raw: str) -> Optional[tuple]:
    if ":" not in raw:
        return None
    user, _, secret = raw.rpartition(":")
    return user, secret


def resolve_identity(
    authorization: Optional[str],
    query_token: Optional[str],
    secret: str,
) -> Optional[Identity]:
    """
    Identity for a protected request, or None when a presented credential
    is wrong.
    """
    if not authorization and not query_token:
        return Identity()

    if query_token and _matches(query_token, secret):
        return Identity()

    if authorization:
        if authorization.startswith("Bearer "):
            bearer = authorization[len("Bearer "):].strip()
            if _matches(bearer, secret) or _matches(bearer, DEMO_TOKEN):
                return Identity()
            return None

        raw = authorization
        if authorization.startswith("Basic "):
            try:
                raw = base64.b64decode(authorization[len("Basic "):].strip(), validate=True).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError):
                return None

        parts = _split_user_secret(raw)
        if parts and _matches(parts[1], secret):
            return Identity(username=parts[0] or DEFAULT_USERNAME)

    return None


class DemoAuthMiddleware(BaseHTTPMiddleware):
    """Attach `request.state.user` or reject with 401."""

    def __init__(self, app, *, secret: str, readyz_public: bool = False):
        super().__init__(app)
        self.secret = secret
        self.readyz_public = readyz_public

    async def dispatch(self, request: Request, call_next) -> Response:
        if is_public_path(request.method, request.url.path, self.readyz_public):
            return await call_next(request)

        identity = resolve_identity(
            request.headers.get("authorization"),
            request.query_params.get("token"),
            self.secret,
        )
        if identity is None:
            url = request.url.path + (f"?{request.url.query}" if request.url.query else "")
            logger.warning("[auth] unauthorized %s %s", request.method, url)
            return JSONResponse(status_code=401, content={"error": "unauthorized", "code": "UNAUTHORIZED"})

        request.state.user = identity
        return await call_next(request)
