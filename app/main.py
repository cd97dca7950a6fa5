from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.deps import get_email_service, get_rate_limiter
from app.api.routes import applications, consultation, contact, health, site
from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logging import setup_logging
from app.core.middleware import RequestIdMiddleware, SecurityHeadersMiddleware

# Setup logging
logger = setup_logging()


# =============================================================================
# OpenAPI Tags Metadata
# =============================================================================
tags_metadata = [
    {
        "name": "forms",
        "description": "**Lead capture** - Contact, consultation booking and careers application forms. Each submission is rate limited, validated, screened for bots and emailed to the firm.",
    },
    {
        "name": "site",
        "description": "**Site** - Public configuration consumed by the website frontend.",
    },
    {
        "name": "health",
        "description": "**Health** - Liveness and dependency status for monitoring.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    email_service = get_email_service()
    rate_limiter = get_rate_limiter()

    logger.info(
        "application_starting",
        project=settings.PROJECT_NAME,
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        debug=settings.DEBUG,
        email_configured=email_service.is_configured,
        email_simulated=email_service.simulates_delivery,
        rate_limiter_backend=rate_limiter.backend.name,
    )

    yield

    logger.info("application_shutting_down")
    email_service.close()


app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    version=settings.VERSION,
    description="""
## Carlora API

Backend for the **Carlora Strategic Innovation** website: public lead-capture
forms delivered to the firm's inbox as templated email notifications.
    """,
    openapi_tags=tags_metadata,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(SecurityHeadersMiddleware)

# Request ID Tracing
app.add_middleware(RequestIdMiddleware)

# Register submission and global exception handlers
register_exception_handlers(app)

# Include routers
app.include_router(contact.router, prefix=settings.API_PREFIX, tags=["forms"])
app.include_router(consultation.router, prefix=settings.API_PREFIX, tags=["forms"])
app.include_router(applications.router, prefix=settings.API_PREFIX, tags=["forms"])
app.include_router(site.router, prefix=settings.API_PREFIX, tags=["site"])
app.include_router(health.router, prefix=f"{settings.API_PREFIX}/health", tags=["health"])


# Root endpoint
@app.get(
    "/",
    summary="API root",
    description="Returns basic API metadata and links to documentation and health endpoints.",
)
async def root():
    """Root endpoint with API info"""
    return {
        "name": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "docs": "/docs",
        "health": f"{settings.API_PREFIX}/health/live",
    }
