# applytrack/main.py
from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from . import routes
from .config import settings
from .database import Base, engine, get_db
from .errors import register_exception_handlers
from .realtime import ConnectionRegistry, NotificationHub

LOGGER = logging.getLogger("applytrack")


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(hub: NotificationHub | None = None) -> FastAPI:
    """Build the application. The connection registry lives here and nowhere else."""
    hub = hub or NotificationHub(ConnectionRegistry())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Create tables if they don't exist
        Base.metadata.create_all(bind=engine)
        yield

    app = FastAPI(title="ApplyTrack", version="0.1.0", lifespan=lifespan)
    app.state.hub = hub

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", settings.AUTH_HEADER_NAME, settings.SOCKET_ID_HEADER],
    )

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        LOGGER.info(
            json.dumps(
                {
                    "event": "request_complete",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 3),
                    "user_id": getattr(request.state, "user_id", None),
                }
            )
        )
        return response

    register_exception_handlers(app)

    for router in (routes.auth.router, routes.jobs.router, routes.analytics.router, routes.ws.router):
        app.include_router(router, prefix=settings.API_PREFIX)

    @app.get("/health", tags=["monitoring"])
    def health_check(db: Session = Depends(get_db)):
        """
        Checks if the application is healthy, including the database connection.
        """
        try:
            db.execute(text("SELECT 1"))
            return {"status": "ok", "database": "ok"}
        except Exception:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database connection error"
            )

    @app.get("/", tags=["monitoring"])
    def read_root():
        return {"message": "Job Application Tracker API is running"}

    return app


app = create_app()


def _log_uncaught(exc_type, exc, tb) -> None:
    LOGGER.critical("Unhandled exception, shutting down", exc_info=(exc_type, exc, tb))


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    configure_logging()
    sys.excepthook = _log_uncaught
    try:
        uvicorn.run("applytrack.main:app", host="0.0.0.0", port=8000)
    except Exception:
        LOGGER.critical("Server terminated", exc_info=True)
        sys.exit(1)
