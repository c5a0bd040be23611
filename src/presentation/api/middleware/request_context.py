"""Request context middleware.

Every request gets a request id: the caller's ``X-Request-ID`` header when
present, otherwise a freshly generated UUIDv7 (time-ordered, sortable).

The request id flows through:
- Request context (request.state.request_id)
- Structured logging (structlog context)
- Response headers (X-Request-ID)
"""

from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from uuid_extension import uuid7


REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware binding a request id and client address to each request.

    The middleware ensures request_id is available in:
    - request.state.request_id (for handlers)
    - structlog context (for logging)
    - X-Request-ID response header (for clients)
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Extract/generate the request id and bind it to the request context."""
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid7())
        client_ip = self._extract_client_ip(request)

        # Bind to structlog context (appears in all logs)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            client_ip=client_ip,
            method=request.method,
            path=request.url.path,
        )

        # Store in request state (accessible in handlers)
        request.state.request_id = request_id
        request.state.client_ip = client_ip

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    def _extract_client_ip(self, request: Request) -> str:
        """Extract client IP address with proper priority.

        Priority:
        1. X-Forwarded-For (first IP, most trusted proxy)
        2. X-Real-IP (nginx/other reverse proxy)
        3. request.client.host (direct connection)
        """
        if x_forwarded_for := request.headers.get("X-Forwarded-For"):
            # Format: "client, proxy1, proxy2"
            return x_forwarded_for.split(",")[0].strip()

        if x_real_ip := request.headers.get("X-Real-IP"):
            return x_real_ip

        if request.client and request.client.host:
            return request.client.host

        return "unknown"
