"""FastAPI application for the geospatial metadata catalog.

create_app wires logging, the feature routers, CORS, the CatalogError
handler and a health check into one application. Configured administrators
are seeded when the application starts.

Example:
    The application can be run with uvicorn:
        $ uvicorn catalog.main:app --reload

    Or served from tests through fastapi.testclient:
        >>> from catalog.main import create_app
        >>> client = TestClient(create_app())
"""

import contextlib
import logging
from collections.abc import AsyncIterator

import fastapi
from fastapi import responses
from fastapi.middleware import cors

from catalog.api import (
    audit_logs,
    dashboard,
    metadata,
    notifications,
    organizations,
    users,
    workflow,
)
from catalog.api import map as map_api
from catalog.core import config, errors, logging_config
from catalog.db import database
from catalog.services import users as user_service

logger = logging.getLogger(__name__)


async def _handle_catalog_error(
    request: fastapi.Request, exc: errors.CatalogError
) -> responses.JSONResponse:
    """Render a CatalogError as ``{"detail": message}`` with its status."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return responses.JSONResponse(
        status_code=exc.status_code, content={"detail": exc.message}
    )


@contextlib.asynccontextmanager
async def _lifespan(app: fastapi.FastAPI) -> AsyncIterator[None]:
    settings = config.get_settings()
    if settings.admin_user_ids:
        repos = database.get_repositories(settings)
        promoted = user_service.seed_admins(repos, settings.admin_user_ids)
        logger.info("Granted System Administrator to %d configured user(s)", promoted)
    yield


def create_app() -> fastapi.FastAPI:
    """Build the catalog application with one router per feature area.

    Returns:
        The catalog application. Routers resolve repositories through
        ``deps.get_repositories``, which tests override.
    """
    settings = config.get_settings()
    logging_config.configure_logging(settings.log_level)
    app = fastapi.FastAPI(
        title="Geospatial Metadata Catalog", version="0.1.0", lifespan=_lifespan
    )

    app.include_router(organizations.router)
    app.include_router(metadata.router)
    app.include_router(workflow.router)
    app.include_router(notifications.router)
    app.include_router(audit_logs.router)
    app.include_router(dashboard.router)
    app.include_router(map_api.router)
    app.include_router(users.router)

    app.add_middleware(
        cors.CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(
        errors.CatalogError,
        _handle_catalog_error,  # type: ignore[arg-type]
    )

    @app.get("/health")
    async def health() -> dict[str, str]:  # type: ignore[misc]
        """Liveness probe; does not touch the database."""
        return {"status": "ok"}

    return app


app = create_app()
