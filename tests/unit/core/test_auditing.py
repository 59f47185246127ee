import json
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from mobycomps.core.auditing import AuditSpan, audit_emit
from mobycomps.core.ctx import REDIS_CTX, HOLDER_REF_CTX
from mobycomps.domain.exceptions import AlreadyHeld


@pytest.fixture
def redis_mock(mocker):
    r = mocker.Mock()
    r.xadd = mocker.AsyncMock(return_value="1-0")
    token = REDIS_CTX.set(r)
    yield r
    REDIS_CTX.reset(token)


def _emitted(r) -> dict:
    return json.loads(r.xadd.await_args.args[1]["json"])


@pytest.mark.asyncio
async def test_audit_emit_without_redis_is_skipped():
    assert await audit_emit(scope="CART", action="CLEAR", status="SUCCESS") is None


@pytest.mark.asyncio
async def test_audit_span_emits_success_with_holder_and_competition(redis_mock):
    HOLDER_REF_CTX.set("session:abcdefgh")

    async with AuditSpan(scope="RESERVATION", action="RESERVE", competition_id=3, meta={"requested": 2}) as span:
        span.meta.update({"reserved": [1, 2]})

    payload = _emitted(redis_mock)
    assert payload["status"] == "SUCCESS"
    assert payload["holder_ref"] == "session:abcdefgh"
    assert payload["competition_id"] == 3
    assert payload["meta"]["reserved"] == [1, 2]
    assert "duration_ms" in payload["meta"]


@pytest.mark.asyncio
async def test_audit_span_emits_fail_and_reraises(redis_mock):
    with pytest.raises(AlreadyHeld):
        async with AuditSpan(scope="RESERVATION", action="RESERVE"):
            raise AlreadyHeld("Some ticket numbers are no longer available", unavailable=[4])

    payload = _emitted(redis_mock)
    assert payload["status"] == "FAIL"
    assert payload["reason"] == "AlreadyHeld: Some ticket numbers are no longer available"


@pytest.mark.asyncio
async def test_audit_emit_swallows_redis_outage(redis_mock):
    redis_mock.xadd.side_effect = RedisConnectionError("down")

    assert await audit_emit(scope="CART", action="CLEAR", status="SUCCESS") is None
