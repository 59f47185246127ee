import json
import logging
import time
from datetime import timezone, datetime
from typing import Any, Mapping
from fastapi import HTTPException
from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError
from mobycomps.core.config import AUDIT_STREAM
from mobycomps.core.ctx import get_redis, get_request_id, get_route, get_actor_id, get_actor_roles, get_client_ip, \
    get_holder_ref
from mobycomps.domain.exceptions import AppError

logger = logging.getLogger("mobycomps.audit")

SUCCESS = "SUCCESS"
FAIL = "FAIL"


def _request_fields() -> dict[str, Any]:
    return {
        "request_id": get_request_id(),
        "route": get_route(),
        "actor_user_id": get_actor_id(),
        "actor_roles": list(get_actor_roles() or []),
        "actor_ip": get_client_ip(),
        "holder_ref": get_holder_ref(),
    }


async def audit_emit(
    *,
    scope: str,
    action: str,
    status: str,
    object_type: str | None = None,
    object_id: int | None = None,
    competition_id: int | None = None,
    payment_id: int | None = None,
    reason: str | None = None,
    meta: Mapping[str, Any] | None = None
) -> str | None:
    """Append one event to the audit stream. Without a Redis client (workers, tests) nothing is sent."""
    r = get_redis()
    if not r:
        return None

    event = {
        **_request_fields(),
        "scope": scope,
        "action": action,
        "status": status,
        "object_type": object_type,
        "object_id": object_id,
        "competition_id": competition_id,
        "payment_id": payment_id,
        "reason": reason,
        "meta": dict(meta or {}),
    }
    try:
        return await r.xadd(AUDIT_STREAM, {"json": json.dumps(event, default=str)})
    except RedisError:
        logger.warning("Audit emit failed scope=%s action=%s", scope, action, exc_info=True)
        return None


def failure_reason(exc: BaseException | None) -> str | None:
    if exc is None:
        return None
    if isinstance(exc, AppError):
        return f"{type(exc).__name__}: {exc}"
    if isinstance(exc, HTTPException):
        return str(exc.detail)
    if isinstance(exc, IntegrityError):
        return "Integrity error"
    return str(exc)


class AuditSpan:
    """
    Wraps one business operation. Callers fill in object_id, competition_id, payment_id and meta
    while the operation runs; one event is emitted on exit, FAIL when an exception escapes.
    """

    def __init__(self, *, scope: str, action: str,
                 object_type: str | None = None, object_id: int | None = None,
                 competition_id: int | None = None, payment_id: int | None = None,
                 meta: Mapping[str, Any] | None = None):
        self.scope = scope
        self.action = action
        self.object_type = object_type
        self.object_id = object_id
        self.competition_id = competition_id
        self.payment_id = payment_id
        self.meta = dict(meta or {})
        self._started = 0.0

    async def __aenter__(self):
        self._started = time.perf_counter()
        self.meta.setdefault("occurred_at", datetime.now(timezone.utc).isoformat(timespec="milliseconds"))
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.meta["duration_ms"] = round((time.perf_counter() - self._started) * 1000)
        await audit_emit(
            scope=self.scope,
            action=self.action,
            status=FAIL if exc else SUCCESS,
            object_type=self.object_type,
            object_id=self.object_id,
            competition_id=self.competition_id,
            payment_id=self.payment_id,
            reason=failure_reason(exc),
            meta=self.meta
        )
        return False
