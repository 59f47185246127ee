from typing import Annotated
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.config import SECRET_KEY, ALGORITHM, JWT_ISSUER, JWT_AUDIENCE
from mobycomps.core.ctx import AUTH_ROLES_CTX, AUTH_USER_ID_CTX
from mobycomps.core.database import get_db
from mobycomps.domain.exceptions import Unauthorized, Forbidden
from mobycomps.domain.users.models import User
from mobycomps.domain.users.schemas import TokenPayload

oauth2_bearer = OAuth2PasswordBearer(tokenUrl="/auth/login")
optional_oauth2_bearer = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def decode_access_token(token: str) -> TokenPayload:
    try:
        raw_payload = jwt.decode(
            token,
            SECRET_KEY,
            algorithms=[ALGORITHM],
            issuer=JWT_ISSUER,
            audience=JWT_AUDIENCE,
            options={"verify_aud": True, "leeway": 5}
        )
        if raw_payload.get("typ") != "access":
            raise Unauthorized("Invalid token type", ctx={"reason": "invalid_type"})
        return TokenPayload.model_validate(raw_payload)
    except (JWTError, ValidationError):
        raise Unauthorized("Invalid authentication credentials", ctx={"reason": "invalid_token"})


async def get_token_payload(token: Annotated[str, Depends(oauth2_bearer)]) -> TokenPayload:
    return decode_access_token(token)


async def _load_active_user(db: AsyncSession, payload: TokenPayload) -> User:
    user = await db.scalar(select(User).where(User.id == int(payload.sub), User.is_active.is_(True)))
    if not user:
        raise Unauthorized("User not found", ctx={"user_id": payload.sub})

    AUTH_ROLES_CTX.set(tuple(sorted(r.name for r in user.roles)))
    AUTH_USER_ID_CTX.set(user.id)
    return user


def get_current_user_with_roles(*allowed_roles: str):
    allowed = set(allowed_roles)

    async def _inner(payload: Annotated[TokenPayload, Depends(get_token_payload)],
                     db: Annotated[AsyncSession, Depends(get_db)]) -> User:
        user = await _load_active_user(db, payload)

        roles = {r.name for r in user.roles}
        if allowed and roles.isdisjoint(allowed):
            raise Forbidden("Permission denied", ctx={"required": list(allowed_roles), "user_roles": list(roles)})
        return user
    return _inner


async def get_optional_user(
        token: Annotated[str | None, Depends(optional_oauth2_bearer)],
        db: Annotated[AsyncSession, Depends(get_db)]
) -> User | None:
    if not token:
        return None
    return await _load_active_user(db, decode_access_token(token))
