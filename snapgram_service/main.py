"""
Snapgram API
FastAPI application for users, posts, comments, communities and notifications
"""
from contextlib import asynccontextmanager
from datetime import datetime
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .infrastructure.database.connection import mongodb
from .infrastructure.events import kafka_producer
from .infrastructure.storage import get_storage
from .schemas import ErrorResponse
from .api.routes import (
    auth_router,
    users_router,
    posts_router,
    comments_router,
    communities_router,
    notifications_router,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting Snapgram API...")

    await mongodb.connect()
    logger.info("Database connected")

    await run_in_threadpool(get_storage().ensure_bucket_exists)

    await kafka_producer.start()

    logger.info(f"Snapgram API started successfully on port {settings.PORT}")

    yield

    # Shutdown
    logger.info("Shutting down Snapgram API...")
    await kafka_producer.stop()
    await mongodb.disconnect()
    logger.info("Snapgram API shut down successfully")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Snapgram social network API - users, posts, comments and communities",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Business, auth and routing failures share the error envelope"""
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report the first schema violation"""
    errors = jsonable_encoder(exc.errors())
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", [])[1:])
        message = first.get("msg", "Invalid request.").removeprefix("Value error, ")
        if field:
            message = f"{field}: {message}"
    else:
        message = "Invalid request."
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, message)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error.")


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint"""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": settings.APP_NAME}


app.include_router(auth_router)
app.include_router(users_router)
app.include_router(posts_router)
app.include_router(comments_router)
app.include_router(communities_router)
app.include_router(notifications_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "snapgram_service.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
