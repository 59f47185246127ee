from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.database import get_db
from mobycomps.core.dependencies.holder import Holder, get_holder
from mobycomps.domain.tickets.schemas import TicketNumbersDTO, ReservationReadDTO
from mobycomps.services import cart_service, ticket_service

router = APIRouter(prefix="/tickets", tags=["tickets"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]
holder_dependency = Annotated[Holder, Depends(get_holder)]


@router.post(
    "/{competition_id}/reserve",
    status_code=status.HTTP_201_CREATED,
    response_model=ReservationReadDTO
)
async def reserve(competition_id: int, schema: TicketNumbersDTO, db: db_dependency, holder: holder_dependency):
    _, reserved, expires_at = await cart_service.add_item(db, competition_id, schema.numbers, holder.ref)
    return ReservationReadDTO(reserved=reserved, expires_at=expires_at)


@router.post(
    "/{competition_id}/release",
    status_code=status.HTTP_204_NO_CONTENT
)
async def release(competition_id: int, schema: TicketNumbersDTO, db: db_dependency, holder: holder_dependency):
    await ticket_service.release_numbers(db, competition_id, schema.numbers, holder.ref)
