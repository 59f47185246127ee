import re
from typing import Annotated, NamedTuple
from fastapi import Depends, Header
from mobycomps.core.config import SESSION_HEADER
from mobycomps.core.ctx import HOLDER_REF_CTX
from mobycomps.core.dependencies.auth import get_optional_user
from mobycomps.domain.exceptions import Unauthorized, InvalidInput
from mobycomps.domain.users.models import User

SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{8,128}$")


class Holder(NamedTuple):
    ref: str
    user: User | None


def holder_ref_for(session_id: str | None, user: User | None) -> str:
    if session_id:
        session_id = session_id.strip()
        if not SESSION_ID_RE.match(session_id):
            raise InvalidInput("Malformed shopper session id", ctx={"header": SESSION_HEADER})
        return f"session:{session_id}"
    if user is not None:
        return f"user:{user.id}"
    raise Unauthorized("Shopper session or login required", ctx={"header": SESSION_HEADER})


async def get_holder(
        user: Annotated[User | None, Depends(get_optional_user)],
        session_id: Annotated[str | None, Header(alias=SESSION_HEADER)] = None,
) -> Holder:
    ref = holder_ref_for(session_id, user)
    HOLDER_REF_CTX.set(ref)
    return Holder(ref=ref, user=user)
