from anyio import to_thread
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.auditing import AuditSpan
from mobycomps.core.config import ACCESS_TOKEN_EXPIRE_MINUTES
from mobycomps.core.security import hash_password, verify_password, create_access_token, password_needs_rehash
from mobycomps.domain.exceptions import InternalError, Conflict, Unauthorized, Forbidden
from mobycomps.domain.users.crud import get_role_by_name, get_user_by_email
from mobycomps.domain.users.models import User
from mobycomps.domain.users.schemas import UserCreateDTO, Token


async def create_user(model: UserCreateDTO, db: AsyncSession) -> User:
    payload = model.model_dump(exclude_none=True, exclude={'password'})
    payload["email"] = payload["email"].strip().lower()

    async with AuditSpan(scope="AUTH", action="REGISTER", object_type="user") as span:
        hashed_password = await to_thread.run_sync(hash_password, model.password.get_secret_value())
        user = User(**payload)
        user.password_hash = hashed_password

        role = await get_role_by_name(db, 'CUSTOMER')
        if not role:
            raise InternalError("Role CUSTOMER not found")

        user.roles.append(role)
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            raise Conflict("User already exists", ctx={"email": payload["email"]}) from e

        span.object_id = user.id
        return user


async def authenticate_user(email: str, password: str, db: AsyncSession) -> User:
    user = await get_user_by_email(db, email)
    ok = False
    if user:
        ok = await to_thread.run_sync(verify_password, password, user.password_hash)
    if not user or not ok:
        raise Unauthorized("Incorrect email or password", ctx={"reason": "bad_credentials"})
    if not user.is_active:
        raise Forbidden("Account is inactive", ctx={"reason": "inactive"})
    if password_needs_rehash(user.password_hash):
        user.password_hash = await to_thread.run_sync(hash_password, password)
        await db.flush()
    return user


async def login_user(email: str, password: str, db: AsyncSession) -> Token:
    async with AuditSpan(scope="AUTH", action="LOGIN", object_type="user") as span:
        user = await authenticate_user(email, password, db)
        span.object_id = user.id
        return Token(
            access_token=create_access_token(subject=user.id),
            token_type="bearer",
            expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60
        )
