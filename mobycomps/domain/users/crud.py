from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from mobycomps.core.pagination import paginate
from .models import Role, User


def _users():
    return select(User).options(selectinload(User.roles))


async def get_role_by_name(db: AsyncSession, name: str) -> Role | None:
    return await db.scalar(select(Role).where(Role.name == name))


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    return await db.scalar(_users().where(func.lower(User.email) == email.strip().lower()))


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    return await db.scalar(_users().where(User.id == user_id))


async def list_all_users(
    db: AsyncSession,
    page: int,
    page_size: int,
    *,
    email: str | None = None,
    is_active: bool | None = None,
) -> tuple[list[User], int]:
    where = []
    if email:
        where.append(func.lower(User.email).contains(email.strip().lower(), autoescape=True))
    if is_active is not None:
        where.append(User.is_active.is_(is_active))

    return await paginate(
        db,
        base_stmt=_users(),
        page=page,
        page_size=page_size,
        where=where,
        order_by=[User.created_at.desc(), User.id],
    )
