from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.auditing import AuditSpan
from mobycomps.domain.exceptions import NotFound
from mobycomps.domain.site_config import crud
from mobycomps.domain.site_config.models import SiteConfig
from mobycomps.domain.site_config.schemas import SITE_CONFIG_KEYS, SiteConfigUpsertDTO
from mobycomps.domain.users.models import User


def _require_known_key(key: str) -> None:
    if key not in SITE_CONFIG_KEYS:
        raise NotFound("Unknown site config key", ctx={"key": key, "known": sorted(SITE_CONFIG_KEYS)})


async def get_site_config(db: AsyncSession, key: str) -> SiteConfig:
    _require_known_key(key)
    config = await crud.get_by_key(db, key)
    if not config:
        raise NotFound("Site config not set", ctx={"key": key})
    return config


async def put_site_config(db: AsyncSession, key: str, schema: SiteConfigUpsertDTO, admin: User) -> SiteConfig:
    async with AuditSpan(scope="SITE_CONFIG", action="PUT", object_type="site_config", meta={"key": key}) as span:
        _require_known_key(key)
        config = await crud.upsert(db, key, schema.value, admin.id)
        span.object_id = config.id
        return config
