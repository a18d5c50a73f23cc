"""
Main FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lcf_auto.config import get_settings
from lcf_auto.database import dispose_db, init_db
from lcf_auto.exceptions import (
    AppointmentNotModifiableError,
    InsufficientPointsError,
    InvalidPeriodError,
    InvalidPointsError,
    LoyaltyError,
    RewardNotFoundError,
    RewardUnavailableError,
    SlotUnavailableError,
    StoreNotConfiguredError,
    UserNotFoundError,
    UserRewardNotFoundError,
)
from lcf_auto.routers import appointments, auth, loyalty, revenue, rewards

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    StoreNotConfiguredError: status.HTTP_503_SERVICE_UNAVAILABLE,
    UserNotFoundError: status.HTTP_404_NOT_FOUND,
    RewardNotFoundError: status.HTTP_404_NOT_FOUND,
    UserRewardNotFoundError: status.HTTP_404_NOT_FOUND,
    InsufficientPointsError: status.HTTP_400_BAD_REQUEST,
    RewardUnavailableError: status.HTTP_400_BAD_REQUEST,
    InvalidPointsError: status.HTTP_400_BAD_REQUEST,
    InvalidPeriodError: status.HTTP_400_BAD_REQUEST,
    AppointmentNotModifiableError: status.HTTP_400_BAD_REQUEST,
    SlotUnavailableError: status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for the application.
    Handles startup and shutdown events.
    """
    # Startup
    print("🚀 Starting LCF Auto Performance API...")
    print("📊 Initializing database...")
    await init_db()
    print("✅ Database initialized successfully")
    print(f"🌐 API available at: {settings.api_v1_prefix}")

    yield

    # Shutdown
    await dispose_db()
    print("👋 Shutting down LCF Auto Performance API...")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ## 🔧 LCF Auto Performance API

    Backend of the LCF Auto Performance garage: appointments, loyalty program and revenue reports.

    ### Entities:
    * **Users**: Customer accounts and administrators
    * **Appointments**: Workshop bookings; completing one earns loyalty points
    * **Loyalty**: Points ledger, balances and program settings
    * **Rewards**: Catalog of rewards bought with points
    * **Revenue**: Monthly, annual and fiscal-year revenue
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix=settings.api_v1_prefix)
app.include_router(loyalty.router, prefix=settings.api_v1_prefix)
app.include_router(rewards.router, prefix=settings.api_v1_prefix)
app.include_router(appointments.router, prefix=settings.api_v1_prefix)
app.include_router(revenue.router, prefix=settings.api_v1_prefix)


@app.exception_handler(LoyaltyError)
async def loyalty_error_handler(request: Request, exc: LoyaltyError):
    """Translate domain errors raised by the services."""
    status_code = ERROR_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to LCF Auto Performance API",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "lcf_auto.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
