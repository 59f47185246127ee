from datetime import datetime, timezone
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.auditing import AuditSpan
from mobycomps.core.db_utils import retry_read_once
from mobycomps.core.pagination import PageDTO
from mobycomps.core.utils.text_utils import slugify
from mobycomps.domain.competitions import crud
from mobycomps.domain.competitions.models import Competition, CompetitionStatus, Category
from mobycomps.domain.competitions.schemas import CompetitionCreateDTO, CompetitionUpdateDTO, CompetitionReadDTO, \
    CompetitionAdminReadDTO, PublicCompetitionsQueryDTO, AdminCompetitionsQueryDTO, CategoryCreateDTO
from mobycomps.domain.exceptions import NotFound, InvalidInput, Conflict
from mobycomps.domain.tickets import crud as ticket_crud

PUBLIC_STATUSES = {CompetitionStatus.LIVE, CompetitionStatus.COMPLETED}
CLOSED_STATUSES = {CompetitionStatus.COMPLETED, CompetitionStatus.CANCELLED}

ALLOWED_TRANSITIONS = {
    CompetitionStatus.DRAFT: {CompetitionStatus.LIVE, CompetitionStatus.CANCELLED},
    CompetitionStatus.LIVE: {CompetitionStatus.COMPLETED, CompetitionStatus.CANCELLED},
}


def _require_future_draw(draw_date: datetime) -> None:
    if draw_date <= datetime.now(timezone.utc):
        raise InvalidInput("draw_date must be in the future", ctx={"draw_date": draw_date.isoformat()})


def _require_quiz_consistent(question: str | None, answers: list[str], correct: str | None) -> None:
    if question and not correct:
        raise InvalidInput("Quiz question requires a correct answer")
    if answers and correct not in answers:
        raise InvalidInput("Correct answer must be one of the quiz answers", ctx={"answers": answers})


def _normalize_answer(value: str) -> str:
    return " ".join(value.split()).lower()


def _answers_match(given: str, expected: str) -> bool:
    given, expected = _normalize_answer(given), _normalize_answer(expected)
    try:
        return float(given) == float(expected)
    except ValueError:
        return given == expected


async def _require_category(db: AsyncSession, category_id: int) -> Category:
    category = await crud.get_category_by_id(db, category_id)
    if not category:
        raise NotFound("Category not found", ctx={"category_id": category_id})
    return category


async def get_competition(db: AsyncSession, competition_id: int, *, for_update: bool = False) -> Competition:
    competition = await crud.get_competition_by_id(db, competition_id, for_update=for_update)
    if not competition:
        raise NotFound("Competition not found", ctx={"competition_id": competition_id})
    return competition


@retry_read_once
async def get_public_competition(db: AsyncSession, competition_id: int) -> Competition:
    competition = await crud.get_competition_by_id(db, competition_id)
    if not competition or competition.status not in PUBLIC_STATUSES:
        raise NotFound("Competition not found", ctx={"competition_id": competition_id})
    return competition


@retry_read_once
async def list_public_competitions(db: AsyncSession, query: PublicCompetitionsQueryDTO) -> PageDTO[CompetitionReadDTO]:
    competitions, total = await crud.list_competitions(
        db,
        page=query.page,
        page_size=query.page_size,
        statuses={CompetitionStatus.LIVE},
        featured=query.featured,
        category_slug=query.category,
        search=query.search
    )

    items = [CompetitionReadDTO.model_validate(c) for c in competitions]

    return PageDTO(items=items, total=total, page=query.page, page_size=query.page_size)


async def list_competitions_for_admin(
        db: AsyncSession,
        query: AdminCompetitionsQueryDTO
) -> PageDTO[CompetitionAdminReadDTO]:
    statuses = [query.status] if query.status is not None else None

    competitions, total = await crud.list_competitions(
        db,
        page=query.page,
        page_size=query.page_size,
        statuses=statuses,
        featured=query.featured,
        category_slug=query.category,
        search=query.search
    )

    items = [CompetitionAdminReadDTO.model_validate(c) for c in competitions]

    return PageDTO(items=items, total=total, page=query.page, page_size=query.page_size)


async def create_competition(db: AsyncSession, schema: CompetitionCreateDTO) -> Competition:
    """
    Create a DRAFT competition together with its ticket rows 1..max_tickets, all AVAILABLE.
    """
    async with AuditSpan(
        scope="COMPETITIONS",
        action="CREATE",
        object_type="competition",
        meta={"max_tickets": schema.max_tickets, "ticket_price": schema.ticket_price}
    ) as span:
        _require_future_draw(schema.draw_date)
        if schema.category_id is not None:
            await _require_category(db, schema.category_id)

        competition = await crud.create_competition(db, schema.model_dump(exclude_none=True))
        await db.flush()

        inserted = await ticket_crud.insert_ticket_range(db, competition.id, 1, competition.max_tickets)
        await db.refresh(competition)

        span.object_id = competition.id
        span.competition_id = competition.id
        span.meta.update({"tickets_inserted": inserted})
        return competition


async def update_competition(db: AsyncSession, competition_id: int, schema: CompetitionUpdateDTO) -> Competition:
    data = schema.model_dump(exclude_none=True)
    async with AuditSpan(
        scope="COMPETITIONS",
        action="UPDATE",
        object_type="competition",
        object_id=competition_id,
        competition_id=competition_id,
        meta={"fields": sorted(data)}
    ) as span:
        competition = await get_competition(db, competition_id, for_update=True)
        if competition.status in CLOSED_STATUSES:
            raise Conflict(
                "Competition is closed",
                ctx={"competition_id": competition_id, "status": competition.status.value}
            )

        if "draw_date" in data:
            _require_future_draw(data["draw_date"])
        if data.get("category_id") is not None:
            await _require_category(db, data["category_id"])
        _require_quiz_consistent(
            data.get("quiz_question", competition.quiz_question),
            data.get("quiz_answers", competition.quiz_answers),
            data.get("quiz_correct_answer", competition.quiz_correct_answer)
        )

        previous_max = competition.max_tickets
        new_max = data.get("max_tickets", previous_max)
        if new_max < previous_max:
            raise InvalidInput(
                "max_tickets can only grow",
                ctx={"competition_id": competition_id, "current": previous_max, "requested": new_max}
            )

        competition = await crud.update_competition(competition, data)
        await db.flush()

        if new_max > previous_max:
            inserted = await ticket_crud.insert_ticket_range(db, competition_id, previous_max + 1, new_max)
            span.meta.update({"tickets_inserted": inserted})

        await db.refresh(competition)
        return competition


async def update_competition_status(db: AsyncSession, competition_id: int, new_status: CompetitionStatus) -> Competition:
    async with AuditSpan(
        scope="COMPETITIONS",
        action="SET_STATUS",
        object_type="competition",
        object_id=competition_id,
        competition_id=competition_id
    ) as span:
        competition = await get_competition(db, competition_id, for_update=True)

        current = competition.status
        if new_status == current:
            raise InvalidInput(
                "Status is already set",
                ctx={"competition_id": competition_id, "status": current.name}
            )

        allowed = ALLOWED_TRANSITIONS.get(current, set())
        if new_status not in allowed:
            raise Conflict(
                "Invalid status transition",
                ctx={"competition_id": competition_id, "from": current.name, "to": new_status.name}
            )

        if new_status == CompetitionStatus.LIVE:
            _require_future_draw(competition.draw_date)

        competition.status = new_status
        if new_status in CLOSED_STATUSES:
            span.meta.update({"holds_released": await ticket_crud.release_competition_holds(db, competition_id)})

        await db.flush()
        await db.refresh(competition)
        span.meta.update({"from": current.name, "to": new_status.name})
        return competition


async def check_quiz_answer(db: AsyncSession, competition_id: int, answer: str) -> bool:
    competition = await get_public_competition(db, competition_id)
    if not competition.quiz_correct_answer:
        raise InvalidInput("Competition has no quiz", ctx={"competition_id": competition_id})
    return _answers_match(answer, competition.quiz_correct_answer)


async def list_categories(db: AsyncSession) -> list[Category]:
    return await crud.list_categories(db)


async def create_category(db: AsyncSession, schema: CategoryCreateDTO) -> Category:
    async with AuditSpan(scope="CATEGORIES", action="CREATE", object_type="category") as span:
        data = schema.model_dump(exclude_none=True)
        data.setdefault("slug", slugify(schema.name))
        if not data["slug"]:
            raise InvalidInput("Category slug cannot be empty", ctx={"name": schema.name})

        category = await crud.create_category(db, data)
        try:
            await db.flush()
        except IntegrityError as e:
            raise Conflict("Category already exists", ctx={"slug": data["slug"]}) from e

        span.object_id = category.id
        return category
