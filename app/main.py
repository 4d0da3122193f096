"""
Asset Tag Engine - Main Application Entry Point.

FastAPI application exposing asset creation with generated tags,
tag-group codes, barcodes, QR codes and printable code sheets.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import get_settings
from app.core.exceptions import AssetTagEngineException
from app.api.v1.router import api_router

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(f"Starting {settings.PROJECT_NAME}")
    logger.info(f"Storage backend: {settings.STORAGE_BACKEND}")
    logger.info(f"QR payload format: {settings.QR_PAYLOAD_FORMAT}")

    from app.db.session import engine, is_using_sqlite_fallback

    if is_using_sqlite_fallback():
        logger.warning("[DEV MODE] Using SQLite fallback database")
        logger.info("Creating SQLite development tables...")
        from app.db.base import Base
        # Import all models to register them
        from app.models import Asset, AssetCategory, Form  # noqa: F401
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Development database ready")
    else:
        logger.info("Database: PostgreSQL")

    yield

    logger.info(f"Shutting down {settings.PROJECT_NAME}")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
## Asset Tag Engine

Generates human-meaningful asset identifiers from per-form configuration
and renders them into printable codes.

### Features
- **Configurable tags**: field and sequence segments over dynamic form answers
- **Tag groups**: class-scoped group codes
- **Codes**: Code 128 barcode, QR code (text or JSON payload), code sheet
- **Lookup**: by asset tag, tag group code or barcode number
    """,
    version=__version__,
    openapi_tags=[
        {"name": "assets", "description": "Asset creation, update and codes"},
        {"name": "forms", "description": "Tag configuration and preview"},
    ],
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AssetTagEngineException)
async def engine_exception_handler(request: Request, exc: AssetTagEngineException) -> JSONResponse:
    """Serialize engine exceptions into the standard error body."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all exception handler for unexpected errors.
    Logs the full error but returns a sanitized response.
    """
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
        },
    )


app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/", include_in_schema=False)
async def root():
    return {
        "name": settings.PROJECT_NAME,
        "version": __version__,
        "docs": "/docs",
        "api": settings.API_V1_PREFIX,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
