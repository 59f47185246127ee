from typing import Annotated
from fastapi import APIRouter, Depends, status, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.config import SWEEP_BATCH
from mobycomps.core.database import get_db
from mobycomps.core.dependencies.auth import get_current_user_with_roles
from mobycomps.services.sweeper_service import sweep_expired_reservations


class SweepStatsDTO(BaseModel):
    tickets_released: int
    cart_items_removed: int


router = APIRouter(prefix="/admin/maintenance", tags=["admin-maintenance"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.post(
    "/sweep-expired",
    status_code=status.HTTP_200_OK,
    response_model=SweepStatsDTO,
    dependencies=[Depends(get_current_user_with_roles("ADMIN"))]
)
async def sweep_expired(db: db_dependency, limit: int = Query(SWEEP_BATCH, ge=1, le=50_000)):
    return await sweep_expired_reservations(db, limit=limit)
