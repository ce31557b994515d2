"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from landrecords.core.config import settings
from landrecords.core.middleware import setup_middleware
from landrecords.core.exceptions import (
    LandRecordsError, UnauthorizedError, TransactionFailureError,
)
from landrecords.db.immutability import register_immutability_listeners

from landrecords.api.auth import router as auth_router
from landrecords.api.roles import router as roles_router
from landrecords.api.users import router as users_router
from landrecords.api.properties import router as properties_router
from landrecords.api.approvals import router as approvals_router
from landrecords.api.audit import router as audit_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("landrecords")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s API", settings.APP_NAME)
    register_immutability_listeners()
    yield
    logger.info("Shutting down %s API", settings.APP_NAME)


app = FastAPI(
    title="Land Records API",
    description="Permission-gated approval workflows for land title records",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)


@app.exception_handler(LandRecordsError)
async def landrecords_exception_handler(request: Request, exc: LandRecordsError):
    # Store detail is only logged; auth failures never name the missing permission
    if isinstance(exc, UnauthorizedError):
        detail = UnauthorizedError().message
    elif isinstance(exc, TransactionFailureError):
        detail = TransactionFailureError().message
    else:
        detail = exc.message
    return JSONResponse(status_code=exc.status_code, content={"detail": detail})


# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(roles_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(properties_router, prefix="/api")
app.include_router(approvals_router, prefix="/api")
app.include_router(audit_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health():
    """Quick health check endpoint."""
    return {"status": "ok"}
