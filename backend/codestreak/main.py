from __future__ import annotations
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from codestreak.config import settings
from codestreak.db import engine
from codestreak.logging_setup import configure_logging
from codestreak.routes.system import router as system_router
from codestreak.routes.dashboard import router as dashboard_router
from codestreak.services.cache import CacheManager
from codestreak.services.fallback_store import FallbackStore
from codestreak.services.redis_client import RedisCacheClient
import structlog

configure_logging()
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info("startup", env=settings.environment, version=settings.app_version, git_sha=settings.git_sha)
    redis_client = RedisCacheClient(
        settings.redis_url,
        max_attempts=settings.redis_connect_max_attempts,
        retry_step=settings.redis_retry_step_ms / 1000,
        retry_cap=settings.redis_retry_cap_ms / 1000,
        socket_timeout=settings.redis_socket_timeout_seconds,
    )
    redis_client.start()  # background; requests are served from the fallback tier until Redis is up
    app.state.cache = CacheManager(FallbackStore(), redis_client, default_ttl=settings.leaderboard_cache_ttl_seconds)
    yield
    # Shutdown
    await redis_client.close()
    await engine.dispose()
    log.info("shutdown")

app = FastAPI(
    title=f"{settings.app_display_name} API",
    version=settings.app_version,
    lifespan=lifespan,
    description=f"{settings.app_display_name} API for coding-practice challenge dashboards and leaderboards"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "dev" else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(system_router)
app.include_router(dashboard_router)

@app.exception_handler(SQLAlchemyError)
async def data_store_error(request: Request, exc: SQLAlchemyError):
    # No fallback exists for source-of-truth data; tell the client to retry later.
    log.error("data_store_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"detail": "Data store unavailable"})

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid)
    try:
        response: Response = await call_next(request)
    finally:
        structlog.contextvars.clear_contextvars()
    response.headers["X-Request-ID"] = rid
    return response
