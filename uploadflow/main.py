"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import settings
from .config.database import init_db, close_db
from .core.exceptions import UploadError, ValidationError
from .middleware.rate_limit import limiter
from .routers import uploads
from .schemas.shared import ErrorResponse
from .utils.logger import configure_logging, get_logger

# Configure logging
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting application", version=settings.app_version)
    await init_db()
    yield
    # Shutdown
    logger.info("Shutting down application")
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Orchestrates chunked, parallel, direct-to-object-store uploads",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag"],
)


# Exception handlers
@app.exception_handler(UploadError)
async def upload_error_handler(request: Request, exc: UploadError):
    """Translate domain errors into HTTP responses."""
    if exc.status_code >= 500:
        logger.error(
            "Upload request failed",
            path=request.url.path,
            error_code=exc.error_code,
            error=exc.message,
        )
    else:
        logger.info(
            "Upload request rejected",
            path=request.url.path,
            error_code=exc.error_code,
            error=exc.message,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(detail=exc.message, error_code=exc.error_code).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are validation errors like any other."""
    detail = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'][1:])}: {error['msg']}"
        for error in exc.errors()
    )
    logger.info(
        "Upload request rejected",
        path=request.url.path,
        error_code=ValidationError.error_code,
        error=detail,
    )
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=ErrorResponse(detail=detail, error_code=ValidationError.error_code).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error("Unhandled exception", exc_info=exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.app_version}


# Include routers
app.include_router(uploads.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "uploadflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
