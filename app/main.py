"""FastAPI application factory and startup configuration.

Routers are protected with `dependencies=[RequireApiKey]` rather than a
global middleware so /health and /docs stay public.

Per request, a middleware assigns the trace id, the log correlation id and
the active UI language (`lang` query parameter, else Accept-Language, else
the configured default).
"""
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.core.exceptions import (
    AppException,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from app.core.locale import pick_language, set_language
from app.core.logging import setup_logging, get_logger, set_correlation_id
from app.api.v1.properties import router as properties_router
from app.api.deps import RequireApiKey
from app.api.responses import fail, ok

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    setup_logging()
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)

    if not settings.api_key:
        logger.warning("API_KEY not configured: /api/v1 endpoints are unprotected.")

    yield

    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Property search API: normalize, filter and sort marketplace listings.",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def add_request_context(request: Request, call_next):
        request.state.trace_id = str(uuid4())
        set_correlation_id(request.state.trace_id)
        request.state.language = set_language(
            pick_language(
                request.query_params.get("lang"),
                request.headers.get("accept-language"),
            )
        )
        response = await call_next(request)
        response.headers["X-Trace-Id"] = request.state.trace_id
        response.headers["Content-Language"] = request.state.language
        return response

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        trace_id = getattr(request.state, "trace_id", "")
        logger.exception("Unhandled exception [trace_id=%s]", trace_id, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=fail("Internal error", request, ["Internal server error"]),
        )

    @application.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=fail(str(exc), request))

    @application.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        errors = exc.detail if isinstance(exc.detail, list) else [str(exc)]
        return JSONResponse(status_code=422, content=fail(str(exc), request, errors))

    @application.exception_handler(UpstreamError)
    async def upstream_handler(request: Request, exc: UpstreamError):
        logger.warning(
            "Upstream failure: %s",
            exc.message,
            extra={"status": exc.status_code},
        )
        return JSONResponse(status_code=502, content=fail(str(exc), request))

    @application.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        return JSONResponse(status_code=400, content=fail(str(exc), request))

    _auth = [RequireApiKey]

    application.include_router(
        properties_router, prefix="/api/v1/properties", tags=["properties"], dependencies=_auth
    )

    @application.get("/health", tags=["system"])
    async def health_check(request: Request):
        return ok(
            {
                "status": "healthy",
                "version": settings.app_version,
                "languages": settings.supported_languages,
            },
            "Health check completed",
            request,
        )

    return application


app = create_app()
