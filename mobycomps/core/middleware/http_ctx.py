from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from mobycomps.core.ctx import ROUTE_CTX, CLIENT_IP_CTX, REDIS_CTX


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


class HttpContextMiddleware(BaseHTTPMiddleware):
    """Expose route, client ip and the app's Redis client to audit spans through contextvars."""

    async def dispatch(self, request: Request, call_next):
        bindings = [(ROUTE_CTX, f"{request.method} {request.url.path}"), (CLIENT_IP_CTX, _client_ip(request))]
        redis_client = getattr(request.app.state, "redis", None)
        if redis_client is not None:
            bindings.append((REDIS_CTX, redis_client))

        tokens = [(var, var.set(value)) for var, value in bindings]
        try:
            return await call_next(request)
        finally:
            for var, token in reversed(tokens):
                var.reset(token)
