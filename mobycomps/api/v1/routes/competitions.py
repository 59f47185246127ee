from typing import Annotated
from fastapi import APIRouter, Depends, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.database import get_db
from mobycomps.core.dependencies.auth import get_current_user_with_roles
from mobycomps.core.pagination import PageDTO
from mobycomps.domain.competitions.schemas import CompetitionReadDTO, CompetitionAdminReadDTO, CompetitionCreateDTO, \
    CompetitionUpdateDTO, CompetitionStatusDTO, PublicCompetitionsQueryDTO, AdminCompetitionsQueryDTO, QuizAnswerDTO, \
    QuizResultDTO
from mobycomps.domain.tickets.schemas import TicketReadDTO, TicketStatusSummaryDTO, TicketsQueryDTO
from mobycomps.services import competition_service, ticket_service

router = APIRouter(tags=["competitions"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.get(
    "/competitions",
    status_code=status.HTTP_200_OK,
    response_model=PageDTO[CompetitionReadDTO]
)
async def list_competitions(db: db_dependency, query: Annotated[PublicCompetitionsQueryDTO, Depends()]):
    return await competition_service.list_public_competitions(db, query)


@router.get(
    "/competitions/{competition_id}",
    status_code=status.HTTP_200_OK,
    response_model=CompetitionReadDTO
)
async def get_competition(competition_id: int, db: db_dependency):
    return await competition_service.get_public_competition(db, competition_id)


@router.get(
    "/competitions/{competition_id}/tickets",
    status_code=status.HTTP_200_OK,
    response_model=list[TicketReadDTO]
)
async def list_tickets(competition_id: int, db: db_dependency, query: Annotated[TicketsQueryDTO, Depends()]):
    rows = await ticket_service.list_tickets(db, competition_id, query.status)
    return [TicketReadDTO(number=number, status=status_) for number, status_ in rows]


@router.get(
    "/competitions/{competition_id}/tickets/summary",
    status_code=status.HTTP_200_OK,
    response_model=TicketStatusSummaryDTO
)
async def get_ticket_summary(competition_id: int, db: db_dependency):
    return await ticket_service.get_status_summary(db, competition_id)


@router.post(
    "/competitions/{competition_id}/quiz",
    status_code=status.HTTP_200_OK,
    response_model=QuizResultDTO
)
async def check_quiz_answer(competition_id: int, schema: QuizAnswerDTO, db: db_dependency):
    correct = await competition_service.check_quiz_answer(db, competition_id, schema.answer)
    return QuizResultDTO(correct=correct)


@router.get(
    "/admin/competitions",
    status_code=status.HTTP_200_OK,
    response_model=PageDTO[CompetitionAdminReadDTO],
    dependencies=[Depends(get_current_user_with_roles("ADMIN"))]
)
async def list_admin_competitions(db: db_dependency, query: Annotated[AdminCompetitionsQueryDTO, Depends()]):
    return await competition_service.list_competitions_for_admin(db, query)


@router.get(
    "/admin/competitions/{competition_id}",
    status_code=status.HTTP_200_OK,
    response_model=CompetitionAdminReadDTO,
    dependencies=[Depends(get_current_user_with_roles("ADMIN"))]
)
async def get_admin_competition(competition_id: int, db: db_dependency):
    return await competition_service.get_competition(db, competition_id)


@router.post(
    "/admin/competitions",
    status_code=status.HTTP_201_CREATED,
    response_model=CompetitionAdminReadDTO,
    dependencies=[Depends(get_current_user_with_roles("ADMIN"))]
)
async def create_competition(schema: CompetitionCreateDTO, db: db_dependency, response: Response):
    competition = await competition_service.create_competition(db, schema)
    response.headers["Location"] = f"/admin/competitions/{competition.id}"
    return competition


@router.patch(
    "/admin/competitions/{competition_id}",
    status_code=status.HTTP_200_OK,
    response_model=CompetitionAdminReadDTO,
    dependencies=[Depends(get_current_user_with_roles("ADMIN"))]
)
async def update_competition(competition_id: int, schema: CompetitionUpdateDTO, db: db_dependency):
    return await competition_service.update_competition(db, competition_id, schema)


@router.patch(
    "/admin/competitions/{competition_id}/status",
    status_code=status.HTTP_200_OK,
    response_model=CompetitionAdminReadDTO,
    dependencies=[Depends(get_current_user_with_roles("ADMIN"))]
)
async def update_competition_status(competition_id: int, schema: CompetitionStatusDTO, db: db_dependency):
    return await competition_service.update_competition_status(db, competition_id, schema.status)
