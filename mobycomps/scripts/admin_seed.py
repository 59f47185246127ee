import asyncio
import logging
from anyio import to_thread
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.config import ADMIN_EMAIL, ADMIN_PASSWORD, LOG_FORMAT, LOG_LEVEL
from mobycomps.core.database import AsyncSessionLocal
from mobycomps.core.security import hash_password
from mobycomps.domain.users.crud import get_role_by_name, get_user_by_email
from mobycomps.domain.users.models import User

logger = logging.getLogger("mobycomps.seed")

ADMIN_ROLES = ("ADMIN", "CUSTOMER")


async def seed_admin_user(db: AsyncSession) -> User | None:
    """Create the back-office account, or top up its roles when it already exists."""
    if not ADMIN_PASSWORD or not ADMIN_EMAIL:
        logger.warning("ADMIN_EMAIL or admin_password not set; skipping admin seed")
        return None

    email = ADMIN_EMAIL.strip().lower()
    user = await get_user_by_email(db, email)
    if not user:
        user = User(
            first_name="Moby",
            last_name="Admin",
            email=email,
            password_hash=await to_thread.run_sync(hash_password, ADMIN_PASSWORD)
        )
        db.add(user)
        have = set()
    else:
        have = {r.name for r in user.roles}

    for name in ADMIN_ROLES:
        if name in have:
            continue
        role = await get_role_by_name(db, name)
        if role:
            user.roles.append(role)

    await db.flush()
    return user


async def main():
    async with AsyncSessionLocal() as db:
        user = await seed_admin_user(db)
        await db.commit()
        if user:
            logger.info("Admin OK: %s", user.email)


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    asyncio.run(main())
