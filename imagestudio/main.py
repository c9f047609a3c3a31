"""
ImageStudio - image generation with a prepaid credit ledger

FastAPI application entry point.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import observability modules
from imagestudio.config import Settings, settings as default_settings
from imagestudio.context import AppContext, build_context
from imagestudio.exceptions import GenerationError
from imagestudio.logging_config import get_logger
from imagestudio.sentry_config import configure_sentry
from imagestudio.middleware.logging import LoggingMiddleware
from imagestudio.routes.metrics import router as metrics_router

# Import route modules
from imagestudio.routes.credits import router as credits_router
from imagestudio.routes.generate import router as generate_router
from imagestudio.routes.payment import router as payment_router

logger = get_logger(component="app")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Invalid JSON in request body."
    message = str(first.get("msg", "Invalid request."))
    # pydantic prefixes messages raised from validators
    return message.removeprefix("Value error, ")


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report request validation failures as 400 in the API's error shape."""
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": _validation_message(exc)},
    )


async def generation_exception_handler(request: Request, exc: GenerationError):
    content = {"success": False, "error": exc.message}
    if exc.code:
        content["code"] = exc.code
    return JSONResponse(status_code=exc.status_code, content=content)


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Pass a prebuilt context to share resources with the caller (tests,
    scripts); otherwise one is built from settings and closed on shutdown.
    """
    if context is None:
        context = build_context(settings or default_settings)
    settings = context.settings

    # Initialize Sentry (if SENTRY_DSN is set)
    configure_sentry(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("app_startup", environment=settings.ENVIRONMENT)
        yield
        await context.aclose()
        logger.info("app_shutdown")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Image generation API with prepaid credits",
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(GenerationError, generation_exception_handler)

    # Request logging and HTTP metrics
    app.add_middleware(LoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include metrics endpoint FIRST (so it's always available)
    app.include_router(metrics_router)

    app.include_router(generate_router)
    app.include_router(credits_router)
    app.include_router(payment_router)

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running"
        }

    @app.get("/health")
    async def health():
        """Liveness check."""
        return {"status": "healthy"}

    return app


app = create_app()
