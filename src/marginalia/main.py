"""
Marginalia Backend Application

FastAPI application entrypoint with async lifespan management.
Handles startup checks (database, Redis) and graceful shutdown.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from marginalia.api.v1.ask import router as ask_router
from marginalia.api.v1.books import router as books_router
from marginalia.api.v1.notes import router as notes_router
from marginalia.core.config import settings
from marginalia.core.database import dispose_engine, get_engine
from marginalia.core.logging import setup_logging
from marginalia.services.concept_cache import configure_concept_cache, get_concept_cache

# Initialize logging before any log statements
setup_logging()
logger = logging.getLogger(__name__)


async def wait_for_db(retries: int = 10, delay: int = 1) -> bool:
    """
    Wait for PostgreSQL to become available.

    Useful in containerized environments where the database may start
    after the application.

    Args:
        retries: Maximum connection attempts.
        delay: Seconds between attempts.

    Returns:
        True if connection established, False if all retries exhausted.
    """
    engine = get_engine()
    for i in range(retries):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Postgres connection established")
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Waiting for Postgres (%d/%d)... Error: %s", i + 1, retries, e)
            await asyncio.sleep(delay)
    return False


async def check_redis() -> redis.Redis | None:
    """
    Connect to Redis for the concept cache.

    Non-blocking check: the application runs without the cache when Redis
    is unavailable.

    Returns:
        A connected client, or None.
    """
    client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.error("Redis connection error: %s", e)
        await client.aclose()
        return None
    logger.info("Redis connection established (%s)", settings.REDIS_HOST)
    return client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Validates database connectivity (required, blocks startup on failure)
        - Connects the concept cache to Redis (optional)

    Shutdown:
        - Closes Redis and disposes the database engine
    """
    logger.info("Starting Marginalia...")
    logger.info("Log Level: %s", settings.LOG_LEVEL)
    if settings.openai_mock_mode:
        logger.warning("OPENAI_API_KEY not set, using mock embeddings and answers")

    if not await wait_for_db():
        logger.critical("Could not connect to Postgres. Shutting down.")
        raise RuntimeError("Database connection failed")

    redis_client = await check_redis()
    if redis_client is None:
        logger.warning("Redis not reachable - concept cache disabled")
    configure_concept_cache(redis_client)

    yield  # Application runs here

    logger.info("Shutting down Marginalia...")
    configure_concept_cache(None)
    if redis_client is not None:
        await redis_client.aclose()
    await dispose_engine()


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.include_router(books_router, prefix="/api/v1/books", tags=["Books"])
app.include_router(notes_router, prefix="/api/v1/notes", tags=["Notes"])
app.include_router(ask_router, prefix="/api/v1", tags=["Search"])


@app.get("/health")
async def health_check():
    """
    Health check endpoint for load balancers and orchestrators.

    Returns:
        Service status; "redis" reports whether the concept cache is active.
    """
    return {
        "status": "ok",
        "service": "marginalia",
        "environment": os.getenv("ENVIRONMENT", "unknown"),
        "db": "connected",
        "redis": "connected" if get_concept_cache().enabled else "disabled",
    }
