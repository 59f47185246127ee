import re
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from mobycomps.core.ctx import REQUEST_ID_CTX

REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


def _request_id(incoming: str | None) -> str:
    if incoming and REQUEST_ID_RE.match(incoming):
        return incoming
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Trace id for logs, audit events and problem responses; client ids are kept only when well-formed."""

    def __init__(self, app, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next):
        token = REQUEST_ID_CTX.set(_request_id(request.headers.get(self.header_name)))
        try:
            response = await call_next(request)
            response.headers[self.header_name] = REQUEST_ID_CTX.get()
            return response
        finally:
            REQUEST_ID_CTX.reset(token)
