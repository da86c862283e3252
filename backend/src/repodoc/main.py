"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Logging constants defined here (not in constants/) because logging.basicConfig()
# must run before any module imports that might create loggers.
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(
    format=LOG_FORMAT,
    datefmt=DATE_FORMAT,
    level=logging.INFO,
)

# Unify uvicorn loggers with app format
for uvicorn_logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
    uvicorn_logger = logging.getLogger(uvicorn_logger_name)
    uvicorn_logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    uvicorn_logger.addHandler(handler)

from repodoc import __version__  # noqa: E402
from repodoc.api.routers import cache, docs, estimates  # noqa: E402
from repodoc.config import ConfigError, load_settings  # noqa: E402
from repodoc.errors import RepoDocError  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan handler for startup and shutdown events.

    On startup, validates settings and creates the data directory.
    """
    try:
        settings = load_settings()
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        raise

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Data directory: {settings.data_dir}")
    logger.info(
        f"LLM: {settings.active_provider}/{settings.active_model}, "
        f"cache backend: {settings.cache.backend}"
    )
    logger.info("repodoc started")

    yield


app = FastAPI(
    title="repodoc",
    description="Architecture documentation generator for GitHub repositories",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RepoDocError)
async def repodoc_error_handler(request: Request, exc: RepoDocError) -> JSONResponse:
    """Render repodoc errors as RFC 7807 problem details."""
    problem = exc.to_problem_detail()
    problem.setdefault("instance", request.url.path)
    return JSONResponse(
        status_code=exc.status,
        content=problem,
        media_type="application/problem+json",
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
app.include_router(docs.router)
app.include_router(estimates.router)
app.include_router(cache.router)
