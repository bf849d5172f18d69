"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.routes import router as auth_router
from app.auth.sessions import SessionDirectory
from app.cache import connect_redis, redis_alive
from app.config import get_settings
from app.db.session import Database, get_db
from app.errors import StoreUnavailableError
from app.files.blobs import BlobStore
from app.files.routes import router as files_router
from app.files.service import count_files
from app.jobs.models import thumbnail_queue, welcome_queue
from app.limiter import limiter
from app.logs import setup_logging
from app.users.routes import router as users_router
from app.users.service import count_users

log = logging.getLogger(__name__)

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database and Redis handles; close them on shutdown."""
    settings = get_settings()
    log.info("Startup: initializing database and Redis")
    db = Database(settings.db_path)
    await db.init()
    client = connect_redis(settings.redis_url)
    app.state.db = db
    app.state.redis = client
    app.state.sessions = SessionDirectory(client, settings.session_ttl_seconds)
    app.state.blobs = BlobStore(settings.storage_base_path)
    app.state.thumbnail_queue = thumbnail_queue(client, settings)
    app.state.welcome_queue = welcome_queue(client, settings)
    log.info("Startup complete")
    try:
        yield
    finally:
        log.info("Shutdown")
        await client.aclose()
        await db.close()


app = FastAPI(title="Files Manager API", version="0.1.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    return response


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    """Infrastructure failure: generic 503, details only in the log."""
    log.error("Store unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Service unavailable"})


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Return generic 500 without leaking stack trace or internals."""
    if isinstance(exc, HTTPException):
        raise exc
    log.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(files_router)


@app.get("/health")
@limiter.exempt
def health() -> JSONResponse:
    """Health check for Docker. Exempt from rate limiting."""
    return JSONResponse(content={"status": "ok"})


@app.get("/status")
async def status(request: Request) -> dict:
    """Whether Redis and the database answer."""
    return {
        "redis": await redis_alive(request.app.state.redis),
        "db": await request.app.state.db.ping(),
    }


@app.get("/stats")
async def stats(session: Annotated[AsyncSession, Depends(get_db)]) -> dict:
    """Number of users and files."""
    return {"users": await count_users(session), "files": await count_files(session)}


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("app.main:app", host=settings.host, port=settings.port)
