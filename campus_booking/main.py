import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import campus_booking.core.database as database
from campus_booking.core.config import settings
from campus_booking.routers import auth, data, notify, status, webhook
from campus_booking.services.report import DailyReportScheduler, report_bot_service

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

daily_report = DailyReportScheduler(report_bot_service, database.SessionLocal)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup: preparing key-value store...")
    database.init_db()
    if settings.DAILY_REPORT_ENABLED:
        daily_report.start()
    yield
    logger.info("Application shutdown: stopping daily report...")
    daily_report.stop()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    lifespan=lifespan,
)

# Set all CORS enabled origins
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )


# Errors leave as {"error": "..."} rather than FastAPI's {"detail": ...}
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid request: {location} {first.get('msg', '')}".strip()},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})


@app.get("/")
async def root():
    return {
        "message": f"{settings.PROJECT_NAME} API Online",
        "version": settings.VERSION,
        "docs_url": "/docs"
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


app.include_router(data.router)
app.include_router(notify.router)
app.include_router(status.router)
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(webhook.router)
