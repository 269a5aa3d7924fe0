import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from academy.api.v1.router import api_router
from academy.config import get_settings
from academy.db.session import init_db, close_db
from academy.dependencies.services import get_redis_client
from academy.schemas.generic import HealthResponse
from academy.utils.exception_handlers import register_exception_handlers
from academy.utils.log import setup_logging

setup_logging()
logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator:
    """Lifecycle events"""
    # STARTUP
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    await init_db()

    try:
        redis_client = await get_redis_client()
        if redis_client.is_available() and not await redis_client.ping():
            logger.warning("Redis client ping failed")
    except Exception as e:
        logger.warning(f"Failed to initialize Redis client: {e}")

    yield

    # SHUTDOWN
    logger.info(f"Shutting down {settings.app_name}")
    await close_db()

    try:
        redis_client = await get_redis_client()
        await redis_client.disconnect()
    except Exception as e:
        logger.warning(f"Failed to disconnect Redis client: {e}")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Course progression and assessment service",
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )


app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "academy.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.environment == "development",
    )
