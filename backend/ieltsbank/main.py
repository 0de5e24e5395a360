"""IELTS Test Bank - FastAPI Application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ieltsbank.config import settings
from ieltsbank.db import init_db
from ieltsbank.errors import PersistenceError
from ieltsbank.routers import tests_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Initializing database...")
    await init_db()
    logger.info("Startup complete.")
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.app_name,
    description="Crawled IELTS reading and listening tests with answer grading",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(tests_router)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    """Storage failures are reported without their cause."""
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "terms": ["reading", "listening"],
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
