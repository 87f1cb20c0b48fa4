# pyright: reportMissingTypeStubs=false
"""
Dental Booking Backend API

A FastAPI application serving doctor slot availability and appointment
booking for the clinic receptionist app, the patient portal and follow-up
scheduling.

Features:
- Weekly availability templates and leave per doctor
- Composed slot availability per doctor and date
- Conflict-safe booking writes
- PostgreSQL database with SQLAlchemy ORM
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dental_booking import __version__
from dental_booking.api import appointments, doctors, leaves
from dental_booking.core.config import SLOT_BOUNDARY_POLICY
from dental_booking.core.constants import CORS_ORIGINS, SLOT_BOUNDARY_POLICIES
from dental_booking.core.exceptions import ConfigurationError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)
logger.info("🦷 Dental Booking API starting...")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("🚀 Starting Dental Booking Backend API")

    if SLOT_BOUNDARY_POLICY not in SLOT_BOUNDARY_POLICIES:
        raise ConfigurationError(
            f"SLOT_BOUNDARY_POLICY must be one of {', '.join(SLOT_BOUNDARY_POLICIES)}, got {SLOT_BOUNDARY_POLICY!r}"
        )
    logger.info(f"✅ Slot boundary policy: {SLOT_BOUNDARY_POLICY}")

    yield

    logger.info("🛑 Shutting down Dental Booking Backend API")


# Create FastAPI application
app = FastAPI(
    title="Dental Booking Backend",
    description="Appointment slot availability and booking for dental clinics",
    version=__version__,
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(
    doctors.router,
    prefix="/api/doctors",
    tags=["doctors"],
    responses={
        404: {"description": "Resource not found"},
        422: {"description": "Invalid schedule configuration"},
        500: {"description": "Internal server error"},
    },
)
app.include_router(
    leaves.router,
    prefix="/api/leaves",
    tags=["leaves"],
    responses={
        404: {"description": "Resource not found"},
        500: {"description": "Internal server error"},
    },
)
app.include_router(
    appointments.router,
    prefix="/api/appointments",
    tags=["appointments"],
    responses={
        400: {"description": "Bad request"},
        404: {"description": "Resource not found"},
        409: {"description": "Conflict"},
        500: {"description": "Internal server error"},
    },
)


@app.get(
    "/",
    summary="Root endpoint",
    description="Returns basic API information",
)
async def root() -> dict[str, str]:
    """Get API information."""
    return {
        "message": "Dental Booking Backend API",
        "version": __version__,
        "status": "running"
    }


@app.get(
    "/health",
    summary="Health check",
    description="Returns the health status of the API",
)
async def health_check() -> dict[str, str]:
    """Check if the API is healthy and responding."""
    return {"status": "healthy"}


# Global exception handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions globally."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "internal_error"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions."""
    logger.warning(f"ValueError: {exc}")
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "type": "validation_error"},
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Handle schedule configuration errors that escaped a route."""
    logger.error(f"Configuration error: {exc}")
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "type": "configuration_error"},
    )

