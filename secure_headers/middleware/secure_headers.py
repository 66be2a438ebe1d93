"""Security headers injection middleware for Starlette applications."""

from __future__ import annotations

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from secure_headers.headers import secure_cookie
from secure_headers.overrides import SECURE_HEADERS_CONFIG, HeaderRequest, header_hash_for
from secure_headers.registry import DEFAULT_CONFIG, ConfigurationRegistry

logger = structlog.get_logger()

_STATE_ATTR = "secure_headers"


def header_request(request: Request) -> HeaderRequest:
    """Return the ``HeaderRequest`` for a Starlette request, creating it once.

    Route handlers pass the result to the helpers in ``secure_headers.overrides``.
    """
    existing = getattr(request.state, _STATE_ATTR, None)
    if existing is None:
        existing = HeaderRequest(scheme=request.url.scheme, user_agent=request.headers.get("user-agent"))
        setattr(request.state, _STATE_ATTR, existing)
    return existing


class SecureHeadersMiddleware(BaseHTTPMiddleware):
    """Set the security headers of the request's configuration on every response.

    - Enforced and report-only CSP, specialized for the browser family
    - HSTS and HPKP on HTTPS requests only
    - Configured cookie attributes added to Set-Cookie headers
    """

    def __init__(self, app: ASGIApp, registry: ConfigurationRegistry) -> None:
        super().__init__(app)
        self.registry = registry

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        descriptor = header_request(request)
        response = await call_next(request)

        headers = header_hash_for(descriptor, self.registry)
        for name, value in headers.items():
            response.headers[name] = value

        config = descriptor.state.get(SECURE_HEADERS_CONFIG) or self.registry.lookup(DEFAULT_CONFIG)
        self._secure_cookies(response, config.cookies)
        return response

    def _secure_cookies(self, response: Response, cookies_config) -> None:
        if not cookies_config:
            return
        cookies = response.headers.getlist("set-cookie")
        if not cookies:
            return
        del response.headers["set-cookie"]
        for cookie in cookies:
            response.headers.append("set-cookie", secure_cookie(cookie, cookies_config))
