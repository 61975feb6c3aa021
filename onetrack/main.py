# onetrack/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from onetrack.core.config import get_settings
from onetrack.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from onetrack.models import role as _role_models  # noqa: F401
from onetrack.models import profile as _profile_models  # noqa: F401
from onetrack.models import customer as _customer_models  # noqa: F401
from onetrack.models import catalog as _catalog_models  # noqa: F401
from onetrack.models import job_request as _job_request_models  # noqa: F401


# Routers
from onetrack.routers.functions import router as functions_router
from onetrack.routers.profiles import router as profiles_router
from onetrack.routers.master_data import router as master_data_router
from onetrack.routers.requests import router as requests_router
from onetrack.routers.requests import uploads_router
from onetrack.routers.reports import router as reports_router
from onetrack.routers.session import router as session_router
from onetrack.routers.realtime import router as realtime_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
      - Warn when the admin functions cannot reach Supabase Auth.

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    logger.info("🔄 Startup: Connecting to Supabase Postgres...")
    try:
        create_db_and_tables()
        logger.info("✅ Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"❌ Startup: DB connection FAILED: {e}")
        raise
    if not settings.provider_configured:
        logger.warning("⚠️ Startup: Supabase env vars missing, admin functions will answer 500.")
    yield


app = FastAPI(
    title=settings.PROJECT_NAME or "OneTrack Backend",
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(session_router, prefix=settings.API_V1_STR)
app.include_router(profiles_router, prefix=settings.API_V1_STR)
app.include_router(master_data_router, prefix=settings.API_V1_STR)
app.include_router(requests_router, prefix=settings.API_V1_STR)
app.include_router(uploads_router, prefix=settings.API_V1_STR)
app.include_router(reports_router, prefix=settings.API_V1_STR)
app.include_router(realtime_router, prefix=settings.API_V1_STR)

# Admin provisioning functions, e.g. /functions/v1/admin-create-user
app.include_router(functions_router, prefix=settings.FUNCTIONS_PREFIX)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "onetrack-backend"}
