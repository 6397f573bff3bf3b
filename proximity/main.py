# main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from proximity.config import Settings, get_settings
from proximity.engine import ReminderEngine
from proximity.errors import PersistenceError, ReminderNotFound
from proximity.features.geofencing import GeofenceProvider
from proximity.features.notifications import NotificationCenter
from proximity.logging import RequestLoggingMiddleware, init_logging
from proximity.routes import router

logger = logging.getLogger("main")


def create_app(
    settings: Optional[Settings] = None,
    *,
    provider: Optional[GeofenceProvider] = None,
    center: Optional[NotificationCenter] = None,
) -> FastAPI:
    settings = settings or get_settings()
    init_logging(settings)

    # ---------------------------------------------------------------------------
    # App lifespan (startup/shutdown)
    # ---------------------------------------------------------------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the reminder engine and rebuild region monitoring from the store."""
        logger.info("Startup: initializing reminder engine...")
        engine = ReminderEngine.build(settings, provider=provider, center=center)
        try:
            await engine.start()
        except Exception as e:
            logger.critical("Reminder engine failed to start: %s", e)
            raise  # fail fast: no reminders can fire without the store
        app.state.engine = engine

        yield  # app runs during this block

        logger.info("Shutdown: stopping reminder engine...")
        try:
            await engine.stop()
            logger.info("Cleanup complete.")
        except Exception as e:
            logger.error("Error during shutdown cleanup: %s", e)

    # ---------------------------------------------------------------------------
    # FastAPI Application
    # ---------------------------------------------------------------------------
    app = FastAPI(
        title="Proximity Reminders",
        version="1.0.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(ReminderNotFound)
    async def reminder_not_found_handler(request: Request, exc: ReminderNotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        logger.critical("Store unavailable during %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": "Reminder store unavailable"})

    # ---------------------------------------------------------------------------
    # Base Routes
    # ---------------------------------------------------------------------------
    @app.get("/", tags=["Health"])
    async def root():
        """Basic health check to verify the service is running."""
        return {"status": "ok", "message": "Proximity reminders are running."}

    app.include_router(router)
    return app


app = create_app()
