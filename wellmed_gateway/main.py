"""
FastAPI gateway for the Wellmed AI medical-coding assistant.

This gateway provides a REST API that analyzes uploaded PDFs and proxies chat
requests to the OpenAI chat completions API, restricted to medical coding.
"""
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger

from wellmed_gateway import __version__
from wellmed_gateway.config import Settings, get_settings
from wellmed_gateway.dependencies import get_policy
from wellmed_gateway.exceptions import GatewayError, InternalError
from wellmed_gateway.routers import chat, documents, health
from wellmed_gateway.services.openai_client import OpenAIClient

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(settings: Settings) -> None:
    """Configure loguru sinks: stderr plus an optional rotating file."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level, format=LOG_FORMAT)
    if settings.log_file_enabled:
        logger.add(
            settings.log_file_path,
            rotation="100 MB",
            retention="7 days",
            level=settings.log_level,
            format=LOG_FORMAT
        )


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    Opens the shared OpenAI client on startup and closes it on shutdown.

    Args:
        app_instance: FastAPI application instance
    """
    settings = get_settings()
    configure_logging(settings)
    policy = get_policy()

    logger.info("🚀 Wellmed AI Gateway starting up...")
    logger.info(f"   Version: {__version__}")
    logger.info(f"   Environment: {settings.environment}")
    logger.info(f"   CORS allowed from: {', '.join(settings.cors_origins_list)}")
    logger.info(
        f"   Topic gate: {'on' if settings.topic_gate_enabled else 'off'} "
        f"({settings.rejection_mode} reject, {len(policy.topic_keywords)} keywords)"
    )

    app_instance.state.openai_client = OpenAIClient(
        api_key=settings.openai_api_key.get_secret_value(),
        base_url=settings.openai_base_url,
        timeout=settings.upstream_timeout,
    )

    yield  # Application runs here

    await app_instance.state.openai_client.close()
    logger.info("👋 Wellmed AI Gateway shutting down...")


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """Render pipeline errors as ``{error, details}`` with their own status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error} - {exc.details}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.error} - {exc.details}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed request bodies in the gateway error envelope."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    details = "; ".join(problems) or "Invalid request"
    logger.warning(f"{request.method} {request.url.path} invalid request: {details}")
    return JSONResponse(
        status_code=422, content={"error": "Validation Error", "details": details}
    )


async def catch_unhandled_errors(request: Request, call_next) -> Response:
    """
    Log unexpected failures and answer with a generic 500.

    Runs inside CORSMiddleware so the error body carries CORS headers.
    """
    try:
        return await call_next(request)
    except Exception as exc:
        logger.opt(exception=exc).error(
            f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}"
        )
        error = InternalError()
        return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app() -> FastAPI:
    """
    Build the FastAPI application from the process settings.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    app_instance = FastAPI(
        title="Wellmed AI Gateway",
        description="REST API for medical-coding chat with optional PDF grounding",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )

    # Added first so it sits inside CORSMiddleware
    app_instance.middleware("http")(catch_unhandled_errors)

    app_instance.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"]
    )

    app_instance.add_exception_handler(GatewayError, gateway_error_handler)
    app_instance.add_exception_handler(RequestValidationError, request_validation_handler)

    app_instance.include_router(health.router)
    app_instance.include_router(documents.router)
    app_instance.include_router(chat.router)

    @app_instance.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "Wellmed AI Gateway",
            "version": __version__,
            "docs": "/docs",
            "health": "/api/health",
            "analyze_pdf": "/api/analyze-pdf",
            "chat": "/api/chat"
        }

    return app_instance


app = create_app()


def run() -> None:
    """Start the gateway with uvicorn on the configured host and port."""
    settings = get_settings()
    logger.info(f"🔍 Health check: http://localhost:{settings.port}/api/health")
    logger.info(f"📄 PDF Analysis endpoint: http://localhost:{settings.port}/api/analyze-pdf")
    uvicorn.run(app, host=settings.host, port=settings.port)
