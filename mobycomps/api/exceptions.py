from http import HTTPStatus
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from mobycomps.core.ctx import get_request_id
from mobycomps.domain.exceptions import AppError, NotFound, Conflict, Unprocessable, Unauthorized, InvalidInput, \
    Forbidden, PaymentRequired, InternalError, AlreadyHeld

PROBLEM_JSON = "application/problem+json"

# most specific base wins, walked along the MRO
_HTTP_STATUS: dict[type[AppError], HTTPStatus] = {
    NotFound: HTTPStatus.NOT_FOUND,
    Unauthorized: HTTPStatus.UNAUTHORIZED,
    Forbidden: HTTPStatus.FORBIDDEN,
    Conflict: HTTPStatus.CONFLICT,
    InvalidInput: HTTPStatus.BAD_REQUEST,
    Unprocessable: HTTPStatus.UNPROCESSABLE_ENTITY,
    PaymentRequired: HTTPStatus.PAYMENT_REQUIRED,
    InternalError: HTTPStatus.INTERNAL_SERVER_ERROR,
}


def http_status_for(exc: AppError) -> HTTPStatus:
    for cls in type(exc).__mro__:
        if cls in _HTTP_STATUS:
            return _HTTP_STATUS[cls]
    return HTTPStatus.BAD_REQUEST


def _bearer_challenge(description: str | None) -> str:
    challenge = 'Bearer realm="api", error="invalid_token"'
    if description:
        challenge += f', error_description="{description}"'
    return challenge


def problem_body(request: Request, exc: AppError) -> dict:
    http_status = http_status_for(exc)
    body = {
        "status": int(http_status),
        "title": http_status.phrase,
        "detail": str(exc) or None,
        "instance": str(request.url),
    }
    trace_id = get_request_id()
    if trace_id:
        body["trace_id"] = trace_id
    if exc.ctx:
        body["context"] = exc.ctx
    # clients re-render the number grid from this list
    if isinstance(exc, AlreadyHeld):
        body["unavailable"] = exc.unavailable
    return body


def register_error_handler(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError):
        body = problem_body(request, exc)
        headers = {}
        if isinstance(exc, Unauthorized):
            headers["WWW-Authenticate"] = _bearer_challenge(body["detail"])
        return JSONResponse(status_code=body["status"], content=body, media_type=PROBLEM_JSON, headers=headers)
