import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from powerup.application import build_services
from powerup.core.errors import NetworkError, NotFoundError, SheetError
from powerup.core.settings import Settings
from powerup.routes import admin, metrics, session, sheets, squads, tables

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await app.state.services.close()


def create_app(settings: Settings | None = None, http_client: httpx.AsyncClient | None = None) -> FastAPI:
    app = FastAPI(title="PowerUp Dashboard API", version="0.1.0", lifespan=lifespan)

    settings = settings or Settings.from_env()
    app.state.services = build_services(settings, http_client=http_client)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(SheetError)
    async def sheet_error(request: Request, exc: SheetError) -> JSONResponse:
        logger.exception("sheet request %s %s failed", request.method, request.url.path)
        body = {"error": True, "type": type(exc).__name__, "message": str(exc)}
        if isinstance(exc, NetworkError) and exc.status_code is not None:
            body["upstream_status"] = exc.status_code
        return JSONResponse(status_code=502, content=body)

    app.include_router(sheets.router, prefix="/api")
    app.include_router(session.router, prefix="/api")
    app.include_router(metrics.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")
    app.include_router(tables.router, prefix="/api")
    app.include_router(squads.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "PowerUp Dashboard API",
                "docs": "/docs",
                "sheets": settings.registry().keys(),
            }
        )

    return app


app = create_app()
