import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from demo_scheduler.application import build_scheduling_service, configure_scheduling_service, get_scheduling_service
from demo_scheduler.core.config import Settings, configure_logging
from demo_scheduler.infrastructure import DropboxMediaClient, NoOpMediaClient, configure_media_client, get_media_client
from demo_scheduler.routes import catalog, demo_requests, reports, schedule

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    logger.info("Shutting down demo scheduler")
    get_scheduling_service().close()
    close_media = getattr(get_media_client(), "close", None)
    if callable(close_media):
        close_media()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="Demo Scheduler API", version="0.1.0", lifespan=lifespan)

    if settings.dropbox_access_token:
        configure_media_client(DropboxMediaClient(settings.dropbox_access_token))
    else:
        configure_media_client(NoOpMediaClient())

    configure_scheduling_service(build_scheduling_service(settings))
    logger.info(
        "Demo scheduler configured (store=%s, member policy=%s, timezone=%s)",
        "sheet" if settings.demo_sheet_csv_url else "memory",
        settings.member_policy,
        settings.timezone,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(demo_requests.router, prefix="/api")
    app.include_router(schedule.router, prefix="/api")
    app.include_router(catalog.router, prefix="/api")
    app.include_router(reports.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Demo Scheduler API",
                "docs": "/docs",
                "health": "/api/slots",
            }
        )

    return app


app = create_app()
