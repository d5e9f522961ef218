"""Carry My Words: posthumous message delivery service."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import create_db_and_tables
from app.core.scheduler import shutdown_scheduler, start_scheduler
from app.routes import audit, checkins, cron, media, verify

# Configure logging
log_dir = Path.home() / ".logs" / "carry-my-words"
log_dir.mkdir(parents=True, exist_ok=True)
log_file = log_dir / "latest.log"

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=str(log_file),
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    logger.info(f"Starting {settings.app_name} ({settings.environment})")
    if settings.is_production and not settings.cron_secret:
        logger.warning("CRON_SECRET is not set; cron endpoints will reject every request")
    create_db_and_tables()
    start_scheduler()
    yield
    shutdown_scheduler()
    logger.info(f"{settings.app_name} shut down")


app = FastAPI(
    title=settings.app_name,
    description="Delivers a user's messages to their recipients once trusted contacts confirm the user is gone",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for external access
origins = (
    ["*"]
    if settings.allowed_origins == "*"
    else [o.strip() for o in settings.allowed_origins.split(",")]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(checkins.router)
app.include_router(verify.router)
app.include_router(cron.router)
app.include_router(audit.router)
app.include_router(media.router)
app.add_exception_handler(RequestValidationError, verify.invalid_body_handler)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}
