"""
FastAPI application entry point.
Wires the public gallery and CMS routers, rate limiting, CORS and the error
envelope shared by every endpoint.
"""
from fastapi import FastAPI, Request, status, Depends, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
import logging
import time

from app.config import settings
from app.database import get_db, init_db, close_db
from app.errors import AppError
from app.services.cloudinary_service import validate_cloudinary_config
from app.utils.rate_limit import limiter
from app.routes import gallery, cms

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,  # cms_token cookie
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log each request with its status and duration."""
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            f"{request.method} {request.url.path} failed after "
            f"{(time.perf_counter() - started) * 1000:.0f}ms: {type(e).__name__}: {str(e)}",
            exc_info=True
        )
        raise
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"({(time.perf_counter() - started) * 1000:.0f}ms)"
    )
    return response


app.include_router(gallery.router, prefix="/api", tags=["gallery"])
app.include_router(cms.router, prefix="/api", tags=["CMS"])


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """
    Render service errors as {success, error, message}.
    4xx when the input is at fault, 5xx when storage or the database failed.
    """
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"{type(exc).__name__} on {request.method} {request.url.path}: "
        f"{exc.status_code} {exc.message}"
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions (401, 404, 500 raised by routes)."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"HTTP {exc.status_code} on {request.method} {request.url.path}: {exc.detail}")

    if isinstance(exc.detail, dict):
        content = {"success": False, **exc.detail}
    else:
        content = {"success": False, "error": str(exc.detail), "message": str(exc.detail)}

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without the raw input (which may be file bytes)."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are client errors (400), like every other validation failure."""
    errors = jsonable_errors(exc)
    logger.warning(f"Validation error on {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "VALIDATION_ERROR",
            "message": "Invalid request",
            "detail": errors,
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}: {str(exc)}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "INTERNAL_SERVER_ERROR",
            "message": "An unexpected error occurred"
        }
    )


@app.get("/")
async def root():
    return {
        "message": settings.API_TITLE,
        "status": "healthy",
        "version": settings.API_VERSION
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/health/db")
async def health_check_db(db: AsyncSession = Depends(get_db)):
    """Run SELECT 1 against the configured database."""
    try:
        await db.execute(text("SELECT 1"))
        return {"database": "connected", "status": "healthy"}
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}", exc_info=True)
        return {
            "database": "error",
            "status": "unhealthy",
            "error": "Database connection failed"
        }


@app.get("/health/storage")
async def health_check_storage():
    """Report whether Cloudinary credentials are configured."""
    if validate_cloudinary_config():
        return {
            "storage": "configured",
            "status": "healthy",
            "cloud_name": settings.CLOUDINARY_CLOUD_NAME,
            "folder": settings.CLOUDINARY_FOLDER,
        }
    return {
        "storage": "not_configured",
        "status": "warning",
        "message": "Cloudinary credentials not set in environment variables"
    }


@app.on_event("startup")
async def startup_event():
    """
    Initialize the database on startup.
    The app keeps running if this fails; database-backed endpoints will error.
    """
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database on startup: {str(e)}")


@app.on_event("shutdown")
async def shutdown_event():
    try:
        await close_db()
    except Exception as e:
        logger.warning(f"Error during database shutdown: {str(e)}")
