"""Tests for the FastAPI main application factory and health checks.

This module validates that:
    - The FastAPI app is correctly instantiated via main.create_app,
    - OpenAPI metadata (title, version) matches the project contract,
    - Every feature router is registered,
    - Domain errors are rendered as ``{"detail": ...}`` with their status.

See Also:
    - backend/catalog/main.py for the application factory.
"""

from __future__ import annotations

from typing import cast

import pytest
from fastapi import testclient

from catalog import main
from catalog.core import errors


def test_create_app() -> None:
    """Test that create_app returns a configured FastAPI instance."""
    app = main.create_app()
    assert app.title == "Geospatial Metadata Catalog"
    assert app.version == "0.1.0"


def test_health_endpoint() -> None:
    """Test the health check endpoint returns ok status."""
    client = testclient.TestClient(main.create_app())
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_app_includes_routers() -> None:
    """Test that all API routers are included in the app."""
    app = main.create_app()
    routes: list[str] = [
        cast(str, getattr(route, "path", ""))
        for route in app.routes
        if hasattr(route, "path")
    ]
    for prefix in (
        "/api/organizations",
        "/api/metadata",
        "/api/workflow",
        "/api/notifications",
        "/api/audit-logs",
        "/api/dashboard",
        "/api/map",
        "/api/users",
    ):
        assert any(path.startswith(prefix) for path in routes), prefix


@pytest.mark.parametrize(
    ("exc", "status"),
    [
        (errors.AuthenticationError("Authentication required"), 401),
        (errors.PermissionDeniedError("Nope"), 403),
        (errors.NotFoundError("Missing"), 404),
        (errors.TransitionNotAllowedError("Illegal"), 409),
        (errors.ValidationError("Bad input"), 422),
        (errors.StorageError("Database unavailable"), 503),
    ],
)
def test_catalog_errors_render_detail(exc: errors.CatalogError, status: int) -> None:
    """Test that domain errors reach the client with their status code."""
    app = main.create_app()

    @app.get("/boom")
    async def boom() -> None:
        raise exc

    response = testclient.TestClient(app).get("/boom")
    assert response.status_code == status
    assert response.json() == {"detail": exc.message}
