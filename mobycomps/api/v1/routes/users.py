from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.database import get_db
from mobycomps.core.dependencies.auth import get_current_user_with_roles
from mobycomps.core.pagination import PageDTO
from mobycomps.domain.entries.schemas import EntryReadDTO, EntriesQueryDTO
from mobycomps.domain.users.models import User
from mobycomps.domain.users.schemas import UserReadDTO, AdminUsersQueryDTO, AdminUserListItemDTO, UserActiveUpdateDTO
from mobycomps.services import users_service, entries_service

router = APIRouter(tags=["users"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]
me_dependency = Annotated[User, Depends(get_current_user_with_roles("CUSTOMER", "ADMIN"))]
admin_dependency = Annotated[User, Depends(get_current_user_with_roles("ADMIN"))]


@router.get(
    "/users/me",
    status_code=status.HTTP_200_OK,
    response_model=UserReadDTO,
    response_model_exclude_none=True
)
async def get_me(user: me_dependency):
    return user


@router.get(
    "/users/me/entries",
    status_code=status.HTTP_200_OK,
    response_model=PageDTO[EntryReadDTO]
)
async def list_my_entries(db: db_dependency, user: me_dependency, query: Annotated[EntriesQueryDTO, Depends()]):
    return await entries_service.list_my_entries(db, user, query)


@router.get(
    "/admin/users",
    status_code=status.HTTP_200_OK,
    response_model=PageDTO[AdminUserListItemDTO],
    dependencies=[Depends(get_current_user_with_roles("ADMIN"))]
)
async def list_admin_users(db: db_dependency, query: Annotated[AdminUsersQueryDTO, Depends()]):
    return await users_service.list_users_admin(db, query)


@router.patch(
    "/admin/users/{user_id}",
    status_code=status.HTTP_200_OK,
    response_model=AdminUserListItemDTO
)
async def set_user_active(user_id: int, schema: UserActiveUpdateDTO, db: db_dependency, admin: admin_dependency):
    return await users_service.set_user_active(db, admin, user_id, schema)
