"""
StockBox - Inventory Tracking API
FastAPI Application Entry Point
"""
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from contextlib import asynccontextmanager
import logging

from app.core import settings, dispose_engine
from app.core.errors import register_exception_handlers, utc_timestamp
from app.core.logging import setup_logging
from app.web.router import web_router
from app.api.router import api_router

setup_logging()
logger = logging.getLogger("stockbox")


# Lifespan for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.APP_NAME} starting on port {settings.APP_PORT}")
    logger.info(f"API available at http://localhost:{settings.APP_PORT}/api/{settings.API_VERSION}")

    yield

    # The pool is created lazily on the first procedure call
    dispose_engine()
    logger.info(f"{settings.APP_NAME} shutting down")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Stock movements, balances and history over SQL Server stored procedures",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1024)

register_exception_handlers(app)

# Include routers
app.include_router(web_router)
app.include_router(api_router, prefix="/api")


# Health check (not versioned)
@app.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": utc_timestamp(), "service": settings.APP_NAME}


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.APP_PORT,
        reload=settings.DEBUG
    )
