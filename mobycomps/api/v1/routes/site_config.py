from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.database import get_db
from mobycomps.core.dependencies.auth import get_current_user_with_roles
from mobycomps.domain.site_config.schemas import SiteConfigReadDTO, SiteConfigUpsertDTO
from mobycomps.domain.users.models import User
from mobycomps.services import site_config_service

router = APIRouter(tags=["site-config"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.get(
    "/site-config/{key}",
    status_code=status.HTTP_200_OK,
    response_model=SiteConfigReadDTO
)
async def get_site_config(key: str, db: db_dependency):
    return await site_config_service.get_site_config(db, key)


@router.put(
    "/admin/site-config/{key}",
    status_code=status.HTTP_200_OK,
    response_model=SiteConfigReadDTO
)
async def put_site_config(
        key: str,
        schema: SiteConfigUpsertDTO,
        db: db_dependency,
        admin: Annotated[User, Depends(get_current_user_with_roles("ADMIN"))]
):
    return await site_config_service.put_site_config(db, key, schema, admin)
