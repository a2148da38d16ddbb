"""Garage UI - account and session API for the cluster dashboard."""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from garage_ui.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup: create tables, clear out expired rows, schedule the sweep
    from garage_ui.database import Base, engine
    from garage_ui.services.maintenance import build_sweep_scheduler, run_expiry_sweep

    # Import all models so they're registered with Base
    from garage_ui import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    run_expiry_sweep()

    scheduler = None
    if settings.session_sweep_interval_seconds > 0:
        scheduler = build_sweep_scheduler(settings.session_sweep_interval_seconds)
        scheduler.start()
        logger.info(f"Expiry sweep scheduled every {settings.session_sweep_interval_seconds} seconds")
    app.state.sweep_scheduler = scheduler

    yield

    # Shutdown: stop the scheduler
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)


app = FastAPI(
    title=settings.app_name,
    description="Accounts, sessions and refresh tokens for the Garage web UI",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}


# Import and include routers
from garage_ui.api import auth, sessions, user  # noqa: E402

app.include_router(auth.router, prefix="/api")
app.include_router(sessions.router, prefix="/api")
app.include_router(user.router, prefix="/api")
