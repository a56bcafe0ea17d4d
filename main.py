"""
Marketing Content Feed - FastAPI Backend
Main application entry point with health check and API routing.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings, validate_security_settings
from database import engine, Base
import models  # noqa: F401
from routers import (
    health,
    feed,
    likes,
    downloads,
    catalog,
)
from routers.responses import register_exception_handlers, success_response

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting Marketing Content Feed API...")
    validate_security_settings()
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print("🗄️ Database schema verified.")
        except Exception as e:
            print(f"⚠️ Database bootstrap skipped: {e}")
    print(
        "📰 Feed sources: timeout="
        f"{settings.FEED_SOURCE_TIMEOUT_SECONDS}s max_items={settings.FEED_SOURCE_MAX_ITEMS}"
    )
    yield
    # Shutdown
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="Marketing Content Feed API",
    description="Balanced, searchable feed of templates, videos, greetings and business images",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(feed.router, prefix="/feed", tags=["Feed"])
app.include_router(likes.router, prefix="/likes", tags=["Likes"])
app.include_router(downloads.router, prefix="/downloads", tags=["Downloads"])
app.include_router(catalog.router, prefix="/catalog", tags=["Catalog"])


@app.get("/")
async def root():
    """Root endpoint."""
    return success_response({
        "name": "Marketing Content Feed API",
        "version": "0.1.0",
        "status": "running"
    })
