from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.auditing import AuditSpan
from mobycomps.core.pagination import PageDTO
from mobycomps.domain.exceptions import NotFound, Forbidden
from mobycomps.domain.users import crud
from mobycomps.domain.users.models import User
from mobycomps.domain.users.schemas import AdminUsersQueryDTO, AdminUserListItemDTO, UserActiveUpdateDTO


async def list_users_admin(db: AsyncSession, query: AdminUsersQueryDTO) -> PageDTO[AdminUserListItemDTO]:
    users, total = await crud.list_all_users(
        db,
        page=query.page,
        page_size=query.page_size,
        email=query.email,
        is_active=query.is_active,
    )

    items = [AdminUserListItemDTO.model_validate(u, from_attributes=True) for u in users]

    return PageDTO[AdminUserListItemDTO](items=items, total=total, page=query.page, page_size=query.page_size)


async def set_user_active(db: AsyncSession, admin: User, user_id: int, schema: UserActiveUpdateDTO) -> User:
    async with AuditSpan(
            scope="USERS",
            action="SET_ACTIVE",
            object_type="user",
            object_id=user_id,
            meta={"is_active": schema.is_active}
    ):
        if user_id == admin.id and not schema.is_active:
            raise Forbidden("Cannot deactivate your own account", ctx={"user_id": user_id})

        user = await crud.get_user_by_id(db, user_id)
        if not user:
            raise NotFound("User not found", ctx={"user_id": user_id})

        user.is_active = schema.is_active
        await db.flush()
        await db.refresh(user)
        return user
