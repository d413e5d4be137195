"""FastAPI application entry point."""

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from mealcart.config import settings
from mealcart.database import Base, engine
from mealcart.logging_config import clear_context, configure_logging, get_logger, set_context
from mealcart.routers import (
    categories_router,
    plans_router,
    recipes_router,
    shopping_router,
)

# Configure logging on module load
configure_logging(log_level=settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Starting Mealcart API")

    # Create database tables if they don't exist
    Base.metadata.create_all(engine)
    logger.info("Database tables initialized")

    yield

    logger.info("Shutting down Mealcart API")
    engine.dispose()


app = FastAPI(
    title="Mealcart API",
    description="Meal plans and aggregated shopping lists",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag log records of a request with its id and user."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
    set_context(request_id=request_id, user_id=request.headers.get("X-User-Id"))
    try:
        response = await call_next(request)
    finally:
        clear_context()
    response.headers["X-Request-ID"] = request_id
    return response


# Include routers
app.include_router(recipes_router)
app.include_router(plans_router)
app.include_router(shopping_router)
app.include_router(categories_router)


@app.get("/health")
async def health_check() -> dict:
    """Basic health check endpoint."""
    return {"status": "ok", "service": "mealcart-api"}


@app.get("/")
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "Mealcart API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
