"""Tests for the catalog repositories and query objects.

This module covers:
    - The in-memory repositories used by the API tests and local
      development.
    - RecordQuery filtering, including shapely envelope intersection and
      temporal overlap.
    - Row conversion of the PostgreSQL repositories, exercised through their
      static ``_to_row``/``_from_row`` helpers so no database is needed.
    - Backend selection in ``get_repositories``.
"""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING

import psycopg2.extras
import pytest

from catalog.core import config
from catalog.db import audit_logs as audit_db
from catalog.db import database
from catalog.db import memberships as membership_db
from catalog.db import models as db_models
from catalog.db import organizations as organization_db
from catalog.db import records as record_db

if TYPE_CHECKING:
    from collections.abc import Callable

T0 = datetime.datetime(2024, 1, 1, tzinfo=datetime.UTC)


def test_in_memory_organization_lookup_by_name() -> None:
    repo = organization_db.InMemoryOrganizationRepository()
    org = repo.add(db_models.Organization(id="org-1", name="Lagos State GIS Office"))
    assert repo.get("org-1") is org
    assert repo.get_by_name("  lagos state gis office ") is org
    assert repo.get_by_name("Kano GIS") is None
    assert repo.delete("org-1") is True
    assert repo.delete("org-1") is False


def test_in_memory_membership_upsert_keeps_joined_at() -> None:
    repo = membership_db.InMemoryMembershipRepository()
    first = repo.upsert(
        db_models.Membership("user-a", "org-1", "Metadata Creator", joined_at=T0)
    )
    assert first.joined_at == T0
    repo.upsert(db_models.Membership("user-a", "org-1", "Metadata Approver"))
    stored = repo.get("user-a", "org-1")
    assert stored is not None
    assert stored.role == "Metadata Approver"
    assert stored.joined_at == T0
    assert len(list(repo.for_organization("org-1"))) == 1
    assert repo.remove("user-a", "org-1") is True
    assert list(repo.for_user("user-a")) == []


def test_in_memory_change_log_newest_first() -> None:
    repo = record_db.InMemoryChangeLogRepository()
    for minute, action in enumerate(("CreateRecord", "UpdateField", "StatusChange")):
        repo.add(
            db_models.ChangeLogEntry(
                id=f"log-{minute}",
                record_id="rec-1",
                user_id="user-a",
                action_type=action,  # type: ignore[arg-type]
                created_at=T0 + datetime.timedelta(minutes=minute),
            )
        )
    assert [e.action_type for e in repo.for_record("rec-1")] == [
        "StatusChange",
        "UpdateField",
        "CreateRecord",
    ]
    assert repo.for_record("rec-2") == []


def test_in_memory_audit_log_filters() -> None:
    repo = audit_db.InMemoryAuditLogRepository()
    repo.add(db_models.AuditLogEntry("a1", "admin", "OrganizationManagement", "x"))
    repo.add(db_models.AuditLogEntry("a2", "officer", "MetadataWorkflow", "y"))
    found = repo.find(audit_db.AuditQuery(category="MetadataWorkflow"))
    assert [e.id for e in found] == ["a2"]
    assert len(repo.find(audit_db.AuditQuery())) == 2


def test_record_query_public_only_includes_own_records(
    record_factory: Callable[..., db_models.MetadataRecord],
) -> None:
    query = record_db.RecordQuery(public_only=True, viewer_id="creator")
    assert query.matches(record_factory(status="Published", creator="someone"))
    assert query.matches(record_factory(status="Draft", creator="creator"))
    assert not query.matches(record_factory(status="Draft", creator="someone"))


def test_record_query_bbox_intersection(
    record_factory: Callable[..., db_models.MetadataRecord],
) -> None:
    lagos = record_factory(
        bbox_west=2.7, bbox_south=6.3, bbox_east=4.4, bbox_north=6.8
    )
    no_extent = record_factory()
    touching = record_db.RecordQuery(bbox=(4.0, 6.0, 5.0, 7.0))
    elsewhere = record_db.RecordQuery(bbox=(8.0, 11.0, 9.0, 12.0))
    assert touching.matches(lagos)
    assert not elsewhere.matches(lagos)
    assert not touching.matches(no_extent)


def test_record_query_temporal_overlap(
    record_factory: Callable[..., db_models.MetadataRecord],
) -> None:
    record = record_factory(
        temporal_extent_from=datetime.date(2020, 1, 1),
        temporal_extent_to=datetime.date(2020, 12, 31),
    )
    assert record_db.RecordQuery(date_from=datetime.date(2020, 6, 1)).matches(record)
    assert not record_db.RecordQuery(date_from=datetime.date(2021, 1, 1)).matches(
        record
    )
    assert not record_db.RecordQuery(date_to=datetime.date(2019, 12, 31)).matches(
        record
    )


def test_record_query_any_keyword_and_text(
    record_factory: Callable[..., db_models.MetadataRecord],
) -> None:
    record = record_factory(title="Lagos roads", keywords=["Transport", "roads"])
    assert record_db.RecordQuery(keywords=("transport", "rivers")).matches(record)
    assert not record_db.RecordQuery(keywords=("rivers",)).matches(record)
    assert record_db.RecordQuery(text="LAGOS").matches(record)
    assert not record_db.RecordQuery(text="kano").matches(record)


def test_in_memory_records_sort_missing_values_last_descending(
    record_factory: Callable[..., db_models.MetadataRecord],
) -> None:
    repo = record_db.InMemoryMetadataRecordRepository()
    repo.add(record_factory("b", title="Bravo"))
    repo.add(record_factory("a", title="alpha"))
    repo.add(record_factory("c", title="Charlie"))
    ascending = repo.find(record_db.RecordQuery(sort_by="title", sort_order="asc"))
    descending = repo.find(record_db.RecordQuery(sort_by="title", sort_order="desc"))
    assert [r.id for r in ascending] == ["a", "b", "c"]
    assert [r.id for r in descending] == ["c", "b", "a"]


def test_in_memory_records_search_and_counts(
    record_factory: Callable[..., db_models.MetadataRecord],
) -> None:
    repo = record_db.InMemoryMetadataRecordRepository()
    for index in range(12):
        repo.add(record_factory(f"r{index:02d}", status="Published"))
    repo.add(record_factory("draft", status="Draft"))
    page = repo.search(record_db.RecordQuery(statuses=("Published",), page=2))
    assert page.total == 12
    assert len(page.items) == 2
    assert repo.status_counts(record_db.RecordQuery()) == {"Published": 12, "Draft": 1}


def test_postgres_record_row_round_trip(
    record_factory: Callable[..., db_models.MetadataRecord],
) -> None:
    record = record_factory(
        keywords=["roads"],
        spatial_info={"projection": "UTM 31N"},
        bbox_west=2.7,
        bbox_south=6.3,
        bbox_east=4.4,
        bbox_north=6.8,
    )
    row = record_db.PostgresMetadataRecordRepository._to_row(record)
    assert isinstance(row["spatial_info"], psycopg2.extras.Json)
    # psycopg2 returns JSONB columns as plain dictionaries.
    stored = {
        **row,
        **{name: getattr(record, name) for name in record_db.JSON_SECTIONS},
        "unknown_column": "ignored",
    }
    assert record_db.PostgresMetadataRecordRepository._from_row(stored) == record


def test_postgres_record_where_clause() -> None:
    where, params = record_db.PostgresMetadataRecordRepository._where(
        record_db.RecordQuery(
            public_only=True,
            viewer_id="creator",
            keywords=("Roads",),
            bbox=(2.7, 6.3, 4.4, 6.8),
        )
    )
    assert where.startswith("WHERE ")
    assert "creator_user_id = %(viewer)s" in where
    assert params["keywords"] == ["roads"]
    assert params["q_east"] == 4.4


def test_postgres_record_text_search_matches_wildcards_literally() -> None:
    where, params = record_db.PostgresMetadataRecordRepository._where(
        record_db.RecordQuery(text=" 50%_cover\\ ")
    )
    assert params["text"] == "%50\\%\\_cover\\\\%"
    assert where.count("ESCAPE '\\'") == 4


def test_record_query_text_matches_wildcards_literally(
    record_factory: Callable[..., db_models.MetadataRecord],
) -> None:
    query = record_db.RecordQuery(text="50%")
    assert query.matches(record_factory(title="Roads at 50% coverage"))
    assert not query.matches(record_factory(title="Roads at 500 coverage"))


def test_postgres_record_order_by_puts_nulls_last_when_descending() -> None:
    order = record_db.PostgresMetadataRecordRepository._order_by(
        record_db.RecordQuery(sort_by="title", sort_order="desc")
    )
    assert order == "ORDER BY lower(title) DESC NULLS LAST, id"


def test_postgres_organization_row_round_trip() -> None:
    org = db_models.Organization(
        id="org-1", name="Lagos State GIS Office", city="Ikeja", node_officer_id="u1"
    )
    row = organization_db.PostgresOrganizationRepository._to_row(org)
    assert organization_db.PostgresOrganizationRepository._from_row(row) == org


def test_postgres_membership_row_round_trip() -> None:
    membership = db_models.Membership("user-a", "org-1", None, joined_at=T0)
    row = membership_db.PostgresMembershipRepository._to_row(membership)
    assert membership_db.PostgresMembershipRepository._from_row(row) == membership


def test_repositories_in_memory_are_independent() -> None:
    first = database.Repositories.in_memory()
    second = database.Repositories.in_memory()
    first.organizations.add(db_models.Organization(id="org-1", name="Lagos"))
    assert second.organizations.get("org-1") is None


def test_get_repositories_memory_backend_is_shared() -> None:
    settings = config.Settings(repository_backend="memory")
    assert database.get_repositories(settings) is database.get_repositories(settings)


def test_get_repositories_postgres_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    """Postgres repositories are selected without touching a database."""
    created: list[str] = []
    monkeypatch.setattr(
        "catalog.db.postgres.PostgresRepository._ensure_schema",
        lambda self: created.append(type(self).__name__),
    )
    repos = database.get_repositories(config.Settings(repository_backend="postgres"))
    assert isinstance(repos.records, record_db.PostgresMetadataRecordRepository)
    assert "PostgresOrganizationRepository" in created
    assert len(created) == 7
