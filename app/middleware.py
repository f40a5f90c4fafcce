"""Request filtering that turns away scrapers and blocked addresses."""

from __future__ import annotations

import logging
from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

from .utils import first_forwarded_value

logger = logging.getLogger(__name__)

EXEMPT_PATHS: tuple[str, ...] = ("/favicon.ico", "/healthz")


class BotBlockerMiddleware(BaseHTTPMiddleware):
    """Reject requests without a user agent, from known bots or blocked IPs."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        blocked_user_agents: Iterable[str] = (),
        blocked_ips: Iterable[str] = (),
        exempt_paths: Iterable[str] = EXEMPT_PATHS,
    ):
        super().__init__(app)
        self._patterns = tuple(pattern.lower() for pattern in blocked_user_agents)
        self._blocked_ips = frozenset(blocked_ips)
        self._exempt_paths = tuple(exempt_paths)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self._exempt_paths:
            return await call_next(request)

        user_agent = request.headers.get("user-agent") or ""
        if not user_agent.strip():
            return self._reject(request, "Blocked: Missing User-Agent")

        lowered = user_agent.lower()
        if any(pattern in lowered for pattern in self._patterns):
            return self._reject(request, "Blocked: Bot detected")

        if self._blocked_ips and any(
            address in self._blocked_ips for address in candidate_ips(request)
        ):
            return self._reject(request, "Blocked: IP not allowed")

        return await call_next(request)

    @staticmethod
    def _reject(request: Request, reason: str) -> Response:
        logger.warning(
            "%s (path=%s ip=%s agent=%r)",
            reason,
            request.url.path,
            client_ip(request),
            request.headers.get("user-agent"),
        )
        return PlainTextResponse(reason, status_code=403)


def candidate_ips(request: Request) -> list[str]:
    """Return the socket peer first, then the first forwarded address.

    The forwarded header is client-controlled, so it can only add a match,
    never hide a blocked peer.
    """

    addresses: list[str] = []
    if request.client is not None and request.client.host:
        addresses.append(request.client.host)
    forwarded = first_forwarded_value(request.headers.get("x-forwarded-for"))
    if forwarded and forwarded not in addresses:
        addresses.append(forwarded)
    return addresses


def client_ip(request: Request) -> str:
    addresses = candidate_ips(request)
    return addresses[0] if addresses else "unknown"
