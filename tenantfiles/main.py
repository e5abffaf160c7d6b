"""ASGI application for the tenant file services."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tenantfiles.api.errors import register_exception_handlers
from tenantfiles.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from tenantfiles.api.routes import accounts, contracts, metrics, resumes
from tenantfiles.core.config import Settings, get_settings

ENTITY_ROUTERS = (
    ("/api/accounts", accounts.router, "accounts"),
    ("/api/contracts", contracts.router, "contracts"),
    ("/api/resumes", resumes.router, "resumes"),
)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API with its middleware stack and entity routers."""
    settings = settings or get_settings()
    docs = settings.api_docs_enabled
    if docs is None:
        docs = settings.environment != "production"

    application = FastAPI(
        title="tenant-files API",
        description="Multi-tenant CRUD services with file, image and multi-file attachments",
        version="1.0.0",
        docs_url="/api/docs" if docs else None,
        redoc_url="/api/redoc" if docs else None,
        openapi_url="/api/openapi.json" if docs else None,
    )
    register_exception_handlers(application)

    # Added last, runs first: CORS, then security headers, then request logging.
    application.add_middleware(RequestLoggingMiddleware)
    application.add_middleware(SecurityHeadersMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    @application.get("/api/health", tags=["health"])
    async def health_check():
        return {"status": "ok"}

    for prefix, router, tag in ENTITY_ROUTERS:
        application.include_router(router, prefix=prefix, tags=[tag])
    application.include_router(metrics.router, prefix="/api", tags=["metrics"])
    return application


app = create_app()
