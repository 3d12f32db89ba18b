"""PodFlow API"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis.asyncio import Redis

from podflow.config import Settings
from podflow.exceptions import PersistenceError
from podflow.utils.logging_setup import setup_logging
from routes.health import router as health_router
from routes.projects import router as projects_router

settings = Settings()
setup_logging(settings, component="api")
logger = logging.getLogger("podflow.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.redis = Redis.from_url(settings.redis_url, decode_responses=True)
    app.state.settings = settings
    logger.info("API starting (redis=%s)", settings.redis_url)
    try:
        yield
    finally:
        await app.state.redis.aclose()
        logger.info("API stopped")


app = FastAPI(
    title="PodFlow API",
    description="Podcast audio in, transcript and generated content out",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(projects_router)
app.include_router(health_router)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("store unavailable (path=%s, error=%s)", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Project store unavailable, try again"})
