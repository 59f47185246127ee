from sqlalchemy import select, func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from .models import SiteConfig


async def get_by_key(db: AsyncSession, key: str) -> SiteConfig | None:
    return await db.scalar(select(SiteConfig).where(SiteConfig.key == key))


async def upsert(db: AsyncSession, key: str, value: str, updated_by: int | None) -> SiteConfig:
    stmt = insert(SiteConfig).values(key=key, value=value, updated_by=updated_by)
    stmt = stmt.on_conflict_do_update(
        index_elements=[SiteConfig.key],
        set_={"value": stmt.excluded.value, "updated_by": stmt.excluded.updated_by, "updated_at": func.now()},
    ).returning(SiteConfig)
    return await db.scalar(stmt, execution_options={"populate_existing": True})
