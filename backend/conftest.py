"""Pytest configuration exposing the catalog package and shared fixtures.

The fixtures build an in-memory repository bundle seeded with one
organization, "Lagos State GIS Office", and the users the workflow and
permission tests act as:

    - ``admin``: System Administrator
    - ``officer``: Node Officer of the organization
    - ``creator``: Metadata Creator in the organization
    - ``colleague``: second Metadata Creator in the organization
    - ``approver``: global Metadata Approver, not a member
    - ``outsider``: Registered User with no membership
"""

from __future__ import annotations

import pathlib
import sys
from typing import TYPE_CHECKING

import pytest
from fastapi import testclient

BACKEND_ROOT = pathlib.Path(__file__).resolve().parent

if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from catalog import main  # noqa: E402
from catalog.api import deps  # noqa: E402
from catalog.core import config  # noqa: E402
from catalog.db import database  # noqa: E402
from catalog.db import models as db_models  # noqa: E402

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

ORG_ID = "org-lagos"


def make_record(
    record_id: str = "rec-1",
    status: db_models.MetadataStatus = "Draft",
    creator: str = "creator",
    organization_id: str | None = ORG_ID,
    **fields: object,
) -> db_models.MetadataRecord:
    """Build a metadata record with sensible defaults for tests."""
    values: dict[str, object] = {"title": f"Record {record_id}"}
    values.update(fields)
    return db_models.MetadataRecord(
        id=record_id,
        creator_user_id=creator,
        organization_id=organization_id,
        status=status,
        **values,  # type: ignore[arg-type]
    )


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


@pytest.fixture
def repos() -> database.Repositories:
    """Empty in-memory repositories."""
    return database.Repositories.in_memory()


@pytest.fixture
def seeded(repos: database.Repositories) -> database.Repositories:
    """In-memory repositories with one organization and its users."""
    repos.organizations.add(
        db_models.Organization(
            id=ORG_ID, name="Lagos State GIS Office", node_officer_id="officer"
        )
    )
    repos.user_roles.set(db_models.UserRole("admin", "System Administrator"))
    repos.user_roles.set(db_models.UserRole("approver", "Metadata Approver"))
    repos.user_roles.set(db_models.UserRole("officer", "Node Officer"))
    repos.user_roles.set(db_models.UserRole("creator", "Metadata Creator"))
    repos.user_roles.set(db_models.UserRole("colleague", "Metadata Creator"))
    for user_id, role in (
        ("officer", "Node Officer"),
        ("creator", "Metadata Creator"),
        ("colleague", "Metadata Creator"),
    ):
        repos.memberships.upsert(
            db_models.Membership(
                user_id=user_id,
                organization_id=ORG_ID,
                role=role,  # type: ignore[arg-type]
            )
        )
    return repos


@pytest.fixture
def record_factory() -> Callable[..., db_models.MetadataRecord]:
    """The ``make_record`` helper, for tests that build their own records."""
    return make_record


@pytest.fixture
def client(seeded: database.Repositories) -> Iterator[testclient.TestClient]:
    """A TestClient whose routers use the ``seeded`` repositories."""
    app = main.create_app()
    app.dependency_overrides[deps.get_repositories] = lambda: seeded
    try:
        yield testclient.TestClient(app)
    finally:
        app.dependency_overrides.clear()
