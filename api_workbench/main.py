"""
API Workbench - FastAPI Application Entry Point

An API-testing workbench: REST, GraphQL and WebSocket request templates
with layered variables, response extraction and multi-step flows.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import configure_logging
from .database import init_db
from .exceptions import register_exception_handlers
from .routers import collections, environments, execute, flows, history, requests, variables


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    configure_logging()
    init_db()
    logger.info("API Workbench started")
    yield


app = FastAPI(
    title="API Workbench",
    description="Build, run and chain REST, GraphQL and WebSocket requests",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

# Allow all origins for development; restrict in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/")
async def root():
    """Root endpoint returning API information."""
    return {
        "name": "API Workbench",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(environments.router)
app.include_router(collections.router)
app.include_router(requests.router)
app.include_router(execute.router)
app.include_router(variables.router)
app.include_router(flows.router)
app.include_router(history.router)
