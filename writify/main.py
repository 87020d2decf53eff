import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from writify.routes import assignments, auth, maintenance, profile, ratings, requests, writers
from writify.core.config import settings
from writify.core.errors import WritifyError
from writify.db.base import Base
from writify.db.sessions import SessionLocal, engine
from writify.services.retention import RetentionSweep
from writify.services.retention_scheduler import RetentionScheduler

# Import all models to ensure they're registered with Base
import writify.models

logger = logging.getLogger(__name__)

# Create tables
Base.metadata.create_all(bind=engine)

retention_scheduler = RetentionScheduler(
    RetentionSweep(SessionLocal),
    run_on_startup=settings.RETENTION_RUN_ON_STARTUP,
    startup_delay=settings.RETENTION_STARTUP_DELAY_SECONDS,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start and stop the daily retention scheduler with the app"""
    logger.info("%s v%s starting...", settings.APP_NAME, settings.APP_VERSION)
    if settings.RETENTION_SCHEDULER_ENABLED:
        await retention_scheduler.start()

    yield

    await retention_scheduler.stop()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Student/writer assignment marketplace",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Register routers
app.include_router(auth.router)
app.include_router(writers.router)
app.include_router(requests.router)
app.include_router(assignments.router)
app.include_router(ratings.router)
app.include_router(profile.router)
app.include_router(maintenance.router)


@app.exception_handler(WritifyError)
async def handle_writify_error(request: Request, exc: WritifyError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "retryable": exc.retryable},
    )


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "; ".join(problems) or "Invalid request", "retryable": False},
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "retryable": True},
    )


@app.get("/health")
def health():
    return {"status": "ok"}
