from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.database import get_db
from mobycomps.core.dependencies.auth import get_current_user_with_roles
from mobycomps.domain.competitions.schemas import CategoryReadDTO, CategoryCreateDTO
from mobycomps.services import competition_service

router = APIRouter(tags=["categories"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.get(
    "/categories",
    status_code=status.HTTP_200_OK,
    response_model=list[CategoryReadDTO]
)
async def list_categories(db: db_dependency):
    return await competition_service.list_categories(db)


@router.post(
    "/admin/categories",
    status_code=status.HTTP_201_CREATED,
    response_model=CategoryReadDTO,
    dependencies=[Depends(get_current_user_with_roles("ADMIN"))]
)
async def create_category(schema: CategoryCreateDTO, db: db_dependency):
    return await competition_service.create_category(db, schema)
