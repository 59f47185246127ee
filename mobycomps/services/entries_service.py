from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.pagination import PageDTO
from mobycomps.domain.entries import crud
from mobycomps.domain.entries.schemas import EntryReadDTO, EntriesQueryDTO
from mobycomps.domain.users.models import User


async def list_my_entries(db: AsyncSession, user: User, query: EntriesQueryDTO) -> PageDTO[EntryReadDTO]:
    entries, total = await crud.list_user_entries(
        db,
        user.id,
        page=query.page,
        page_size=query.page_size,
        status=query.status
    )

    items = [EntryReadDTO.model_validate(e) for e in entries]

    return PageDTO[EntryReadDTO](items=items, total=total, page=query.page, page_size=query.page_size)
