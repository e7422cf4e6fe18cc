import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from livestock360.core.logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

from livestock360.api.router import router as api_router  # noqa: E402
from livestock360.core.config import settings  # noqa: E402
from livestock360.core.database import engine, init_db  # noqa: E402
from livestock360.schemas.response import error_body  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up Livestock360 API")
    logger.info("Environment: %s", settings.ENVIRONMENT)
    await init_db()
    yield
    logger.info("Shutting down Livestock360 API")
    await engine.dispose()


app = FastAPI(
    title="Livestock360 API",
    version="1.0.0",
    description="Herd, health record and dashboard backend for the Livestock360 app",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = "Route not found"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, message),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    message = errors[0]["message"] if errors else "Invalid request"
    logger.info("Rejected request to %s: %s", request.url.path, message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(status.HTTP_400_BAD_REQUEST, message, errors),
    )


app.include_router(api_router, prefix=settings.API_STR)


@app.get("/")
async def root():
    logger.info("Root endpoint accessed")
    return {
        "success": True,
        "message": "Livestock360 API is running!",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
