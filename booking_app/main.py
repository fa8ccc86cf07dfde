# booking_app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from booking_app.core.config import get_settings
from booking_app.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from booking_app.models import user as _user_models  # noqa: F401
from booking_app.models import organization as _organization_models  # noqa: F401
from booking_app.models import profile as _profile_models  # noqa: F401
from booking_app.models import event_type as _event_type_models  # noqa: F401
from booking_app.models import redirect as _redirect_models  # noqa: F401


# Routers
from booking_app.routers.profiles import router as profiles_router
from booking_app.routers.user_page import router as user_page_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    logger.info("Startup: connecting to database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"Startup: DB connection FAILED: {e}")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME or "Booking Page API",
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "booking-page-backend"}


# Versioned API prefix, e.g. /api/v1
app.include_router(profiles_router, prefix=settings.API_V1_STR)

# Booking pages catch every single-segment path, so they go last
app.include_router(user_page_router)
