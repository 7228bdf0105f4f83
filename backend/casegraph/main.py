"""
FastAPI application entry point.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from casegraph.config import settings, validate_config
from casegraph.routers import network_router

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Casegraph API",
    description="Entity relationship network for investigation records",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(network_router, prefix=settings.api_prefix, tags=["Network"])


@app.on_event("startup")
async def startup_event():
    if validate_config():
        logger.info("configuration ok (storage=%s)", settings.storage_backend)
    else:
        logger.warning("configuration check failed, see warnings above")


@app.get("/")
async def root():
    return {
        "message": "Casegraph API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "storage": settings.storage_backend,
    }
