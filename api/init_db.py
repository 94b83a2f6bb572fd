"""
Initialize database schema from models and seed the admin account
"""
import asyncio

from config.database import db_manager, get_db_context
from models.database.account import Account  # noqa: F401
from services.bootstrap.seed_admin import seed_admin
from utils.logging import get_logger

logger = get_logger("init_db")


async def init_db():
    """Initialize database schema"""
    await db_manager.initialize()

    logger.info("Creating database schema...")
    await db_manager.create_tables()

    async with get_db_context() as session:
        admin_id = await seed_admin(session)

    logger.info(f"Database schema initialized (admin: {admin_id or 'not configured'})")
    await db_manager.close()


if __name__ == "__main__":
    asyncio.run(init_db())
