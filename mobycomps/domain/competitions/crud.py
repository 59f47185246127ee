from typing import Iterable
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.pagination import paginate
from .models import Competition, CompetitionStatus, Category


async def get_competition_by_id(db: AsyncSession, competition_id: int, *, for_update: bool = False) -> Competition | None:
    stmt = select(Competition).where(Competition.id == competition_id)
    if for_update:
        stmt = stmt.with_for_update()
    return await db.scalar(stmt)


async def list_competitions(
        db: AsyncSession,
        page: int,
        page_size: int,
        *,
        statuses: Iterable[CompetitionStatus] | None = None,
        featured: bool | None = None,
        category_slug: str | None = None,
        search: str | None = None,
) -> tuple[list[Competition], int]:
    stmt = select(Competition)
    where = []

    if statuses is not None:
        where.append(Competition.status.in_(list(statuses)))
    if featured is not None:
        where.append(Competition.is_featured.is_(featured))
    if category_slug:
        stmt = stmt.join(Category, Competition.category_id == Category.id)
        where.append(Category.slug == category_slug)
    if search:
        where.append(Competition.title.ilike(f"%{search}%"))

    return await paginate(
        db,
        base_stmt=stmt,
        page=page,
        page_size=page_size,
        where=where,
        order_by=[Competition.is_featured.desc(), Competition.draw_date, Competition.id],
    )


async def create_competition(db: AsyncSession, data: dict) -> Competition:
    competition = Competition(**data)
    db.add(competition)
    return competition


async def update_competition(competition: Competition, data: dict) -> Competition:
    for k, v in data.items():
        setattr(competition, k, v)
    return competition


async def get_category_by_id(db: AsyncSession, category_id: int) -> Category | None:
    return await db.scalar(select(Category).where(Category.id == category_id))


async def list_categories(db: AsyncSession) -> list[Category]:
    result = await db.scalars(select(Category).order_by(Category.name))
    return list(result.all())


async def create_category(db: AsyncSession, data: dict) -> Category:
    category = Category(**data)
    db.add(category)
    return category
