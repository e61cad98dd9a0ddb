import logging
import os

import asyncpg

from config import DATABASE_URL

logger = logging.getLogger(__name__)

SCHEMA_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "models.sql")


async def get_db(dsn: str = DATABASE_URL) -> asyncpg.Pool:
    # autocommit: every statement on a pooled connection is its own transaction
    pool = await asyncpg.create_pool(dsn, min_size=1, max_size=10)
    logger.info("Connected to database")
    return pool


async def init_db(pool: asyncpg.Pool) -> None:
    with open(SCHEMA_FILE, "r", encoding="utf-8") as f:
        await pool.execute(f.read())
    logger.info("Schema applied from %s", SCHEMA_FILE)
