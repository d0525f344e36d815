"""Schema creation and seed data.

Learn: Runs at API startup (lifespan) and from `todoapp init-db`.
Idempotent — roles and the admin account are only created when missing.
"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from todoapp.auth.password import hash_password
from todoapp.db.models import ADMIN_ROLE, DEFAULT_ROLES, Base, Role, User

logger = structlog.get_logger()


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed(
    session: AsyncSession,
    admin_email: str,
    admin_password: Optional[str],
) -> None:
    """Ensure default roles exist and the admin account is provisioned."""
    result = await session.execute(select(Role))
    existing = {r.name: r for r in result.scalars().all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            role = Role(name=name)
            session.add(role)
            existing[name] = role
    await session.flush()

    if admin_password:
        email = admin_email.lower()
        result = await session.execute(select(User).where(User.email == email))
        if not result.scalars().first():
            admin = User(
                email=email,
                first_name="Admin",
                last_name="User",
                password_hash=hash_password(admin_password),
                is_active=True,
                roles=[existing[ADMIN_ROLE]],
            )
            session.add(admin)
            logger.info("db.admin_seeded", email=email)

    await session.commit()


async def init_db(
    engine: AsyncEngine,
    admin_email: str,
    admin_password: Optional[str],
) -> None:
    """Create tables, then seed roles and the admin account."""
    await create_schema(engine)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await seed(session, admin_email, admin_password)
    logger.info("db.initialized")
