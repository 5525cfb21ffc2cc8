import logging
from collections import defaultdict, deque
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Deque

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from filedrive.core.config import Settings, get_settings
from filedrive.core.errors import ConflictError, DriveError, ExternalServiceError, NotFoundError, ValidationError
from filedrive.core.logging import configure_logging
from filedrive.db.session import Database
from filedrive.routers import auth, drive, uploads
from filedrive.services.storage import BlobStore, build_blob_store

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    ExternalServiceError: status.HTTP_503_SERVICE_UNAVAILABLE,
}
GENERIC_ERROR = "An unexpected error occurred."


class RateLimiter:
    window_seconds = 60

    def __init__(self, limit_per_minute: int) -> None:
        self.limit_per_minute = limit_per_minute
        self._hits: dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = 0.0

    def _sweep(self, window_start: float) -> None:
        # Drop clients with no hits left in the window.
        stale = [key for key, bucket in self._hits.items() if not bucket or bucket[-1] < window_start]
        for key in stale:
            del self._hits[key]

    def hit(self, key: str, now: float | None = None) -> bool:
        now = datetime.now(timezone.utc).timestamp() if now is None else now
        window_start = now - self.window_seconds
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(window_start)
            self._last_sweep = now
        bucket = self._hits[key]
        while bucket and bucket[0] < window_start:
            bucket.popleft()
        if len(bucket) >= self.limit_per_minute:
            return False
        bucket.append(now)
        return True


def error_status(exc: DriveError) -> int:
    for kind, code in ERROR_STATUS.items():
        if isinstance(exc, kind):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    blob_store: BlobStore | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.debug)
    database = database or Database(settings.database_url, echo=settings.database_echo)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.connect()
        if settings.auto_create_tables:
            database.create_all()
        try:
            yield
        finally:
            database.disconnect()

    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
    app.state.settings = settings
    app.state.db = database
    app.state.blob_store = blob_store or build_blob_store(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    limiter = RateLimiter(settings.rate_limit_per_minute)

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        key = request.client.host if request.client else "unknown"
        if not limiter.hit(key):
            return JSONResponse(status_code=status.HTTP_429_TOO_MANY_REQUESTS, content={"detail": "Rate limit exceeded"})
        return await call_next(request)

    @app.exception_handler(DriveError)
    async def drive_error_handler(request: Request, exc: DriveError) -> JSONResponse:
        code = error_status(exc)
        if code == status.HTTP_500_INTERNAL_SERVER_ERROR:
            return JSONResponse(status_code=code, content={"detail": GENERIC_ERROR})
        return JSONResponse(status_code=code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", exc_info=exc, extra={"path": request.url.path})
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": GENERIC_ERROR})

    app.include_router(auth.router)
    app.include_router(drive.router)
    app.include_router(uploads.router)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
