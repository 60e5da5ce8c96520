import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from calbook.api.routes import appointments, auth, availability, booking
from calbook.core.config import _ENV_FILE, settings
from calbook.core.db import async_session_maker, init_db
from calbook.domain.exceptions import (
    AppointmentNotFoundError,
    CalbookError,
    CalendarNotFoundError,
    InvalidInputError,
    InvalidTransitionError,
    PersistenceError,
)
from calbook.services.appointment_service import complete_past_appointments

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


async def _run_completion_sweep() -> None:
    """Mark confirmed appointments that are over as completed."""
    try:
        async with async_session_maker() as session:
            try:
                n = await complete_past_appointments(session)
                await session.commit()
                if n:
                    logger.info("Completion sweep: marked %d appointment(s) completed", n)
            except Exception:
                await session.rollback()
                raise
    except Exception as e:
        logger.exception("Completion sweep failed: %s", e)


async def _completion_loop() -> None:
    while True:
        await _run_completion_sweep()
        await asyncio.sleep(settings.completion_sweep_interval_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    if settings.auto_create_tables:
        await init_db()
    task = None
    if settings.auto_complete_past_appointments:
        logger.info(
            "Completion sweep enabled (every %ds)", settings.completion_sweep_interval_seconds
        )
        task = asyncio.create_task(_completion_loop())
    if not settings.email_enabled:
        logger.warning("SMTP not configured: booking confirmations will not be emailed")
    yield
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title="Calbook API",
    description="Scheduling backend: availability, public booking links, appointments",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Refresh-Token"],
)

app.include_router(auth.router, prefix="/api/v1")
app.include_router(availability.router, prefix="/api/v1")
app.include_router(appointments.router, prefix="/api/v1")
app.include_router(booking.router, prefix="/api/v1")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type, X-Refresh-Token",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


_ERROR_STATUS: list[tuple[type[CalbookError], int]] = [
    (InvalidInputError, 422),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (CalendarNotFoundError, status.HTTP_404_NOT_FOUND),
    (AppointmentNotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
]


@app.exception_handler(CalbookError)
async def calbook_exception_handler(request: Request, exc: CalbookError) -> JSONResponse:
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            status_code = code
            break
    content: dict = {"detail": str(exc)}
    if isinstance(exc, CalendarNotFoundError):
        content["detail"] = "Calendar not found"
    elif isinstance(exc, InvalidInputError):
        content["errors"] = exc.errors
    elif isinstance(exc, PersistenceError):
        content["retryable"] = True
    logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content=content,
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return actual error in JSON; include CORS so 500 responses are not blocked by browser."""
    origin = request.headers.get("origin")
    headers = _cors_headers(origin)
    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )
    logger.exception("Unhandled exception: %s", exc)
    detail = f"{type(exc).__name__}: {str(exc)}"
    return JSONResponse(
        status_code=500,
        content={"detail": detail},
        headers=headers,
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
