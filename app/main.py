# app/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.core.config import settings
from app.core.db import init_db
from app.utils.logger import setup_app_logging, get_logger
# Local application imports - Routes
from app.envelopes.router import router as envelope_routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Method for creating the database tables on startup
    """
    init_db()
    yield


# Create the FastAPI app
envelope_app = FastAPI(
    title=f"Envelope Signing Service - {settings.environment}",
    description="Multi-party document signing envelopes",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure logging
if settings.environment.lower() != "production":
    setup_app_logging(
        envelope_app,
        log_level="INFO",
        use_json=False,
        log_file=settings.log_file,
        app_name="Envelope Signing Service",
        environment=settings.environment,
    )
else:
    setup_app_logging(
        envelope_app,
        log_level="INFO",
        use_json=True,
        log_file=settings.log_file,
        app_name="Envelope Signing Service",
        environment="production",
    )
logger = get_logger(__name__)

# Add CORS middleware
envelope_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# Serve the local blob store
def mount_storage(app: FastAPI) -> None:
    """
    Serve the local blob store under /storage. The directory is created by
    the store on first write, not here.
    """
    if settings.storage_backend.lower() != "local":
        return
    app.mount(
        "/storage", StaticFiles(directory=settings.storage_dir, check_dir=False), name="storage"
    )


mount_storage(envelope_app)

# Include routers
envelope_app.include_router(envelope_routes)


# Root API to check if the server is up
@envelope_app.get("/", tags=["Base"])
async def health_check():
    """
    Root API to check if the server is up
    """
    logger.info("Calling root API for testing")
    return {"status": "ok"}
