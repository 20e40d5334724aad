"""
Ticketflow - Main FastAPI Application

Entry point for the ticket workflow service: middleware, routes and
lifecycle handlers.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config.settings import settings
from .api.routes import api_router
from .api.middleware import CorrelationIdMiddleware, register_error_handlers
from .repositories.mongo_client import create_indexes, close_connection, health_check
from .scheduler.dev_scheduler import start_scheduler, stop_scheduler
from .utils.logger import setup_logging, get_logger

# Setup logging first
setup_logging()
logger = get_logger(__name__)


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup creates MongoDB indexes and, in development, starts the
    notification scheduler. Shutdown stops both.
    """
    logger.info("Starting Ticketflow...")
    
    try:
        create_indexes()
        logger.info("MongoDB indexes created")
    except Exception as e:
        logger.error(f"Failed to create indexes: {e}", exc_info=True)
    
    if settings.is_development:
        try:
            start_scheduler()
        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}", exc_info=True)
    
    logger.info("Application started successfully")
    
    yield
    
    logger.info("Shutting down...")
    stop_scheduler()
    close_connection()
    logger.info("Application shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    application = FastAPI(
        title="Ticketflow",
        description="Multi-tenant ticketing with configurable status workflows",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )
    
    _configure_middleware(application)
    register_error_handlers(application)
    _configure_routes(application)
    
    return application


def _configure_middleware(app: FastAPI) -> None:
    # allow_credentials must be False when allowing all origins
    allow_all = settings.cors_origins.strip() == "*"
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_origins_list,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-Id"],
    )
    app.add_middleware(CorrelationIdMiddleware)


def _configure_routes(app: FastAPI) -> None:
    app.include_router(api_router, prefix="/api/v1")
    
    @app.get("/health", tags=["Health"])
    async def health():
        """Application health including database connectivity (no auth)"""
        mongo_health = health_check()
        return {
            "status": "healthy" if mongo_health.get("status") == "healthy" else "degraded",
            "version": __version__,
            "environment": settings.environment,
            "mongo": mongo_health
        }
    
    @app.get("/", tags=["Health"])
    async def root():
        return {
            "name": "Ticketflow",
            "version": __version__,
            "docs": "/api/docs" if settings.debug else None
        }


app = create_app()
