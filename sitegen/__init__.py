"""
FastAPI application factory and configuration.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
import time

from config import load_settings
from sitegen.models.base import init_db, create_tables
from sitegen.routes import agent_routes, conversation_routes, generation_routes, deploy_routes, health_routes
from sitegen.utils.logger import setup_logging, get_logger, log_error_with_context
from sitegen.services.claude_service import BedrockException
from sitegen.services.errors import SiteGenError


def _error_body(error: str, message: str, details=None) -> dict:
    return {
        "success": False,
        "error": error,
        "message": message,
        "details": details or {}
    }


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    # Load settings
    settings = load_settings()

    # Setup logging
    setup_logging()
    logger = get_logger(__name__)

    # Create FastAPI app
    app = FastAPI(
        title="SiteGen API",
        description="Conversational AI website generator with versioning and Netlify deployment",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure this based on your frontend domain
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Initialize database
    engine = init_db()
    create_tables(engine)
    logger.info(f"Database initialized ({settings.app_env})")

    # Include routers
    app.include_router(agent_routes.router)
    app.include_router(conversation_routes.router)
    app.include_router(generation_routes.router)
    app.include_router(deploy_routes.router)
    app.include_router(health_routes.router)

    logger.info("Routes registered")

    # Global exception handlers

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors."""
        logger.warning(f"Validation error: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(
                "ValidationError",
                "Invalid request data",
                {"errors": jsonable_encoder(exc.errors())}
            )
        )

    @app.exception_handler(SiteGenError)
    async def sitegen_exception_handler(request: Request, exc: SiteGenError):
        """Handle domain errors (not found, forbidden, precondition, conflict)."""
        logger.warning(f"{exc.error_type} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_type, exc.message, exc.details)
        )

    @app.exception_handler(BedrockException)
    async def bedrock_exception_handler(request: Request, exc: BedrockException):
        """Handle AWS Bedrock service errors."""
        logger.error(f"Bedrock error: {exc}")

        # Check if rate limit error
        if "Rate limit" in str(exc) or "Throttling" in str(exc):
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=_error_body(
                    "RateLimitExceeded",
                    "Too many requests. Please wait a few seconds and try again.",
                    {"service": "AWS Bedrock"}
                )
            )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=_error_body(
                "GeneratorUnavailable",
                "Website generator is temporarily unavailable. Please try again.",
                {"service": "AWS Bedrock"}
            )
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all other unhandled exceptions."""
        log_error_with_context(logger, exc, {"method": request.method, "path": request.url.path})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                "InternalServerError",
                "An unexpected error occurred. Please try again or contact support."
            )
        )

    # Request/Response logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests and responses."""
        start_time = time.time()

        logger.info(f"Request: {request.method} {request.url.path}")

        response = await call_next(request)

        duration = time.time() - start_time
        logger.info(
            f"Response: {request.method} {request.url.path} | "
            f"Status: {response.status_code} | "
            f"Duration: {duration*1000:.0f}ms"
        )

        return response

    logger.info("FastAPI application created successfully")

    return app
