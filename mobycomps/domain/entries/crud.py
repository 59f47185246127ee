from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.pagination import paginate
from .models import Entry, EntryStatus


async def list_user_entries(
        db: AsyncSession,
        user_id: int,
        page: int,
        page_size: int,
        *,
        status: EntryStatus | None = None
) -> tuple[list[Entry], int]:
    where = [Entry.user_id == user_id]
    if status is not None:
        where.append(Entry.status == status)

    return await paginate(
        db,
        base_stmt=select(Entry),
        page=page,
        page_size=page_size,
        where=where,
        order_by=[Entry.created_at.desc(), Entry.id.desc()],
    )
