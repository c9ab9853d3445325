"""Metadata record and change log repositories.

Search is expressed as a RecordQuery. The in-memory repository evaluates it
with ``RecordQuery.matches`` and shapely envelope intersection; the Postgres
repository translates the same query into a parameterized WHERE clause over
the denormalized bbox and temporal columns.

Example:
    Find published vector records intersecting Lagos:
        >>> query = RecordQuery(
        ...     statuses=("Published",),
        ...     data_type="Vector",
        ...     bbox=(2.7, 6.3, 4.4, 6.8),
        ... )
        >>> page = repo.search(query)
"""

from __future__ import annotations

import dataclasses
import datetime
from typing import Any, Literal, Protocol, cast

import psycopg2.extras
from shapely import geometry

from catalog.db import models as db_models
from catalog.db import postgres

SortField = Literal["title", "created_at", "updated_at", "status"]
SortOrder = Literal["asc", "desc"]

JSON_SECTIONS = (
    "location_info",
    "spatial_info",
    "temporal_info",
    "technical_details_info",
    "constraints_info",
    "data_quality_info",
    "processing_info",
    "distribution_info",
    "metadata_reference_info",
    "fundamental_datasets_info",
    "additional_info",
)


@dataclasses.dataclass
class RecordQuery:
    """Filter, sort and paging options for metadata record lookups.

    Attributes:
        text: Case-insensitive substring matched against title, abstract,
            purpose and keywords.
        statuses: Allowed statuses, None for any.
        organization_ids: Allowed organizations, None for any.
        keywords: Records must carry at least one of these keywords.
        date_from: Keep records whose temporal extent ends on or after this.
        date_to: Keep records whose temporal extent starts on or before this.
        bbox: (west, south, east, north) envelope records must intersect.
        public_only: Restrict to Published records, plus the records created
            by ``viewer_id`` when it is set.
    """

    text: str | None = None
    statuses: tuple[str, ...] | None = None
    data_type: str | None = None
    framework_type: str | None = None
    organization_id: str | None = None
    organization_ids: tuple[str, ...] | None = None
    creator_user_id: str | None = None
    keywords: tuple[str, ...] = ()
    date_from: datetime.date | None = None
    date_to: datetime.date | None = None
    bbox: db_models.BBox | None = None
    public_only: bool = False
    viewer_id: str | None = None
    sort_by: SortField = "updated_at"
    sort_order: SortOrder = "desc"
    page: int = 1
    page_size: int = 10

    def matches(self, record: db_models.MetadataRecord) -> bool:
        """Return True when the record satisfies every filter."""
        if self.public_only and not (
            record.status == "Published"
            or (self.viewer_id is not None and record.creator_user_id == self.viewer_id)
        ):
            return False
        if self.statuses is not None and record.status not in self.statuses:
            return False
        if self.data_type is not None and record.data_type != self.data_type:
            return False
        if (
            self.framework_type is not None
            and record.framework_type != self.framework_type
        ):
            return False
        if (
            self.organization_id is not None
            and record.organization_id != self.organization_id
        ):
            return False
        if (
            self.organization_ids is not None
            and record.organization_id not in self.organization_ids
        ):
            return False
        if (
            self.creator_user_id is not None
            and record.creator_user_id != self.creator_user_id
        ):
            return False
        if self.text and not self._matches_text(record):
            return False
        if self.keywords:
            wanted = {k.casefold() for k in self.keywords}
            if not wanted & {k.casefold() for k in record.keywords}:
                return False
        if self.date_from is not None and (
            record.temporal_extent_to is None
            or record.temporal_extent_to < self.date_from
        ):
            return False
        if self.date_to is not None and (
            record.temporal_extent_from is None
            or record.temporal_extent_from > self.date_to
        ):
            return False
        if self.bbox is not None:
            record_bbox = record.bbox
            if record_bbox is None:
                return False
            if not geometry.box(*self.bbox).intersects(geometry.box(*record_bbox)):
                return False
        return True

    def _matches_text(self, record: db_models.MetadataRecord) -> bool:
        needle = (self.text or "").strip().casefold()
        haystack = [record.title, record.abstract, record.purpose, *record.keywords]
        return any(needle in (value or "").casefold() for value in haystack)

    def sort_key(self, record: db_models.MetadataRecord) -> Any:
        value = getattr(record, self.sort_by)
        return value.casefold() if isinstance(value, str) else value


class MetadataRecordRepositoryProtocol(Protocol):
    """Protocol interface for storing and querying metadata records."""

    def add(self, record: db_models.MetadataRecord) -> db_models.MetadataRecord: ...

    def get(self, record_id: str) -> db_models.MetadataRecord | None: ...

    def delete(self, record_id: str) -> bool: ...

    def find(self, query: RecordQuery) -> list[db_models.MetadataRecord]: ...

    def search(
        self, query: RecordQuery
    ) -> db_models.Page[db_models.MetadataRecord]: ...

    def status_counts(self, query: RecordQuery) -> dict[str, int]: ...


class ChangeLogRepositoryProtocol(Protocol):
    """Protocol interface for per-record change history."""

    def add(self, entry: db_models.ChangeLogEntry) -> db_models.ChangeLogEntry: ...

    def for_record(self, record_id: str) -> list[db_models.ChangeLogEntry]: ...


class InMemoryMetadataRecordRepository(MetadataRecordRepositoryProtocol):
    """Dictionary-backed record store evaluating queries in Python."""

    def __init__(self) -> None:
        self._store: dict[str, db_models.MetadataRecord] = {}

    def add(self, record: db_models.MetadataRecord) -> db_models.MetadataRecord:
        self._store[record.id] = record
        return record

    def get(self, record_id: str) -> db_models.MetadataRecord | None:
        return self._store.get(record_id)

    def delete(self, record_id: str) -> bool:
        return self._store.pop(record_id, None) is not None

    def find(self, query: RecordQuery) -> list[db_models.MetadataRecord]:
        matches = [r for r in self._store.values() if query.matches(r)]
        # None values sort first ascending, last descending.
        present = [r for r in matches if getattr(r, query.sort_by) is not None]
        missing = [r for r in matches if getattr(r, query.sort_by) is None]
        present.sort(key=query.sort_key, reverse=query.sort_order == "desc")
        return present + missing if query.sort_order == "desc" else missing + present

    def search(self, query: RecordQuery) -> db_models.Page[db_models.MetadataRecord]:
        return db_models.paginate(self.find(query), query.page, query.page_size)

    def status_counts(self, query: RecordQuery) -> dict[str, int]:
        counts: dict[str, int] = {}
        for record in self._store.values():
            if query.matches(record):
                counts[record.status] = counts.get(record.status, 0) + 1
        return counts


class InMemoryChangeLogRepository(ChangeLogRepositoryProtocol):
    """List-backed change log store."""

    def __init__(self) -> None:
        self._entries: list[db_models.ChangeLogEntry] = []

    def add(self, entry: db_models.ChangeLogEntry) -> db_models.ChangeLogEntry:
        self._entries.append(entry)
        return entry

    def for_record(self, record_id: str) -> list[db_models.ChangeLogEntry]:
        entries = [e for e in self._entries if e.record_id == record_id]
        return sorted(entries, key=lambda e: e.created_at, reverse=True)


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so the text matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostgresMetadataRecordRepository(
    postgres.PostgresRepository, MetadataRecordRepositoryProtocol
):
    """PostgreSQL-backed metadata record repository.

    Nested descriptive sections are stored as JSONB; keywords and topic
    categories as TEXT arrays.
    """

    CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS metadata_records (
      id TEXT PRIMARY KEY,
      title TEXT NOT NULL,
      creator_user_id TEXT NOT NULL,
      organization_id TEXT,
      status TEXT NOT NULL DEFAULT 'Draft',
      data_type TEXT,
      framework_type TEXT,
      abstract TEXT NOT NULL DEFAULT '',
      purpose TEXT NOT NULL DEFAULT '',
      keywords TEXT[] NOT NULL DEFAULT '{}',
      topic_categories TEXT[] NOT NULL DEFAULT '{}',
      thumbnail_url TEXT,
      coordinate_system TEXT,
      file_format TEXT,
      download_url TEXT,
      api_endpoint TEXT,
      validation_notes TEXT,
      rejection_reason TEXT,
      publication_date TIMESTAMPTZ,
      location_info JSONB NOT NULL DEFAULT '{}',
      spatial_info JSONB NOT NULL DEFAULT '{}',
      temporal_info JSONB NOT NULL DEFAULT '{}',
      technical_details_info JSONB NOT NULL DEFAULT '{}',
      constraints_info JSONB NOT NULL DEFAULT '{}',
      data_quality_info JSONB NOT NULL DEFAULT '{}',
      processing_info JSONB NOT NULL DEFAULT '{}',
      distribution_info JSONB NOT NULL DEFAULT '{}',
      metadata_reference_info JSONB NOT NULL DEFAULT '{}',
      fundamental_datasets_info JSONB NOT NULL DEFAULT '{}',
      additional_info JSONB NOT NULL DEFAULT '{}',
      bbox_west DOUBLE PRECISION,
      bbox_south DOUBLE PRECISION,
      bbox_east DOUBLE PRECISION,
      bbox_north DOUBLE PRECISION,
      temporal_extent_from DATE,
      temporal_extent_to DATE,
      created_at TIMESTAMPTZ DEFAULT now(),
      updated_at TIMESTAMPTZ DEFAULT now()
    );
    CREATE INDEX IF NOT EXISTS metadata_records_status_idx
      ON metadata_records (status);
    CREATE INDEX IF NOT EXISTS metadata_records_org_idx
      ON metadata_records (organization_id);
    """

    COLUMNS = tuple(
        field.name for field in dataclasses.fields(db_models.MetadataRecord)
    )

    def add(self, record: db_models.MetadataRecord) -> db_models.MetadataRecord:
        columns = ", ".join(self.COLUMNS)
        values = ", ".join(f"%({name})s" for name in self.COLUMNS)
        updates = ", ".join(
            f"{name} = EXCLUDED.{name}"
            for name in self.COLUMNS
            if name not in ("id", "created_at")
        )
        self._execute(
            f"INSERT INTO metadata_records ({columns}) VALUES ({values}) "
            f"ON CONFLICT (id) DO UPDATE SET {updates};",
            self._to_row(record),
        )
        return record

    def get(self, record_id: str) -> db_models.MetadataRecord | None:
        row = self._fetch_one(
            "SELECT * FROM metadata_records WHERE id = %s", (record_id,)
        )
        return self._from_row(row) if row is not None else None

    def delete(self, record_id: str) -> bool:
        deleted = self._execute(
            "DELETE FROM metadata_records WHERE id = %s", (record_id,)
        )
        return deleted > 0

    def find(self, query: RecordQuery) -> list[db_models.MetadataRecord]:
        where, params = self._where(query)
        rows = self._fetch_all(
            f"SELECT * FROM metadata_records {where} {self._order_by(query)}",
            params,
        )
        return [self._from_row(row) for row in rows]

    def search(self, query: RecordQuery) -> db_models.Page[db_models.MetadataRecord]:
        where, params = self._where(query)
        total = self._count(f"SELECT count(*) FROM metadata_records {where}", params)
        params = {
            **params,
            "limit": query.page_size,
            "offset": (query.page - 1) * query.page_size,
        }
        rows = self._fetch_all(
            f"SELECT * FROM metadata_records {where} {self._order_by(query)} "
            "LIMIT %(limit)s OFFSET %(offset)s",
            params,
        )
        return db_models.Page(
            items=[self._from_row(row) for row in rows],
            total=total,
            page=query.page,
            page_size=query.page_size,
        )

    def status_counts(self, query: RecordQuery) -> dict[str, int]:
        where, params = self._where(query)
        rows = self._fetch_all(
            f"SELECT status, count(*) AS n FROM metadata_records {where} "
            "GROUP BY status",
            params,
        )
        return {str(row["status"]): int(row["n"]) for row in rows}

    @staticmethod
    def _order_by(query: RecordQuery) -> str:
        # sort_by is a Literal, validated upstream, so it is safe to inline.
        direction = "DESC" if query.sort_order == "desc" else "ASC"
        nulls = "NULLS LAST" if direction == "DESC" else "NULLS FIRST"
        column = "lower(title)" if query.sort_by == "title" else query.sort_by
        return f"ORDER BY {column} {direction} {nulls}, id"

    @staticmethod
    def _where(query: RecordQuery) -> tuple[str, dict[str, Any]]:
        """Build a WHERE clause and its parameters from a query."""
        clauses: list[str] = []
        params: dict[str, Any] = {}
        if query.public_only:
            if query.viewer_id is not None:
                clauses.append("(status = 'Published' OR creator_user_id = %(viewer)s)")
                params["viewer"] = query.viewer_id
            else:
                clauses.append("status = 'Published'")
        if query.statuses is not None:
            clauses.append("status = ANY(%(statuses)s)")
            params["statuses"] = list(query.statuses)
        if query.data_type is not None:
            clauses.append("data_type = %(data_type)s")
            params["data_type"] = query.data_type
        if query.framework_type is not None:
            clauses.append("framework_type = %(framework_type)s")
            params["framework_type"] = query.framework_type
        if query.organization_id is not None:
            clauses.append("organization_id = %(organization_id)s")
            params["organization_id"] = query.organization_id
        if query.organization_ids is not None:
            clauses.append("organization_id = ANY(%(organization_ids)s)")
            params["organization_ids"] = list(query.organization_ids)
        if query.creator_user_id is not None:
            clauses.append("creator_user_id = %(creator)s")
            params["creator"] = query.creator_user_id
        if query.text:
            clauses.append(
                "(title ILIKE %(text)s ESCAPE '\\' "
                "OR abstract ILIKE %(text)s ESCAPE '\\' "
                "OR purpose ILIKE %(text)s ESCAPE '\\' "
                "OR array_to_string(keywords, ' ') ILIKE %(text)s ESCAPE '\\')"
            )
            params["text"] = f"%{_escape_like(query.text.strip())}%"
        if query.keywords:
            clauses.append(
                "EXISTS (SELECT 1 FROM unnest(keywords) k "
                "WHERE lower(k) = ANY(%(keywords)s))"
            )
            params["keywords"] = [k.casefold() for k in query.keywords]
        if query.date_from is not None:
            clauses.append("temporal_extent_to >= %(date_from)s")
            params["date_from"] = query.date_from
        if query.date_to is not None:
            clauses.append("temporal_extent_from <= %(date_to)s")
            params["date_to"] = query.date_to
        if query.bbox is not None:
            west, south, east, north = query.bbox
            clauses.append(
                "bbox_west <= %(q_east)s AND bbox_east >= %(q_west)s "
                "AND bbox_south <= %(q_north)s AND bbox_north >= %(q_south)s"
            )
            params.update(q_west=west, q_south=south, q_east=east, q_north=north)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    @staticmethod
    def _to_row(record: db_models.MetadataRecord) -> dict[str, object]:
        """Convert a MetadataRecord to a parameter dictionary."""
        row: dict[str, object] = {
            field.name: getattr(record, field.name)
            for field in dataclasses.fields(record)
        }
        for section in JSON_SECTIONS:
            row[section] = psycopg2.extras.Json(getattr(record, section))
        row["keywords"] = list(record.keywords)
        row["topic_categories"] = list(record.topic_categories)
        return row

    @staticmethod
    def _from_row(row: dict[str, Any]) -> db_models.MetadataRecord:
        """Convert a database row to a MetadataRecord."""
        known = {field.name for field in dataclasses.fields(db_models.MetadataRecord)}
        values = {key: value for key, value in row.items() if key in known}
        for section in JSON_SECTIONS:
            values[section] = dict(values.get(section) or {})
        values["keywords"] = list(values.get("keywords") or [])
        values["topic_categories"] = list(values.get("topic_categories") or [])
        values["status"] = cast(db_models.MetadataStatus, str(values["status"]))
        return db_models.MetadataRecord(**values)


class PostgresChangeLogRepository(
    postgres.PostgresRepository, ChangeLogRepositoryProtocol
):
    """PostgreSQL-backed change log repository."""

    CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS metadata_change_logs (
      id TEXT PRIMARY KEY,
      record_id TEXT NOT NULL,
      user_id TEXT NOT NULL,
      action_type TEXT NOT NULL,
      field_name TEXT,
      old_value TEXT,
      new_value TEXT,
      comment TEXT,
      created_at TIMESTAMPTZ DEFAULT now()
    );
    """

    def add(self, entry: db_models.ChangeLogEntry) -> db_models.ChangeLogEntry:
        self._execute(
            """
            INSERT INTO metadata_change_logs (
                id, record_id, user_id, action_type, field_name,
                old_value, new_value, comment, created_at
            ) VALUES (%(id)s, %(record_id)s, %(user_id)s, %(action_type)s,
                %(field_name)s, %(old_value)s, %(new_value)s, %(comment)s,
                %(created_at)s);
            """,
            dataclasses.asdict(entry),
        )
        return entry

    def for_record(self, record_id: str) -> list[db_models.ChangeLogEntry]:
        rows = self._fetch_all(
            "SELECT * FROM metadata_change_logs WHERE record_id = %s "
            "ORDER BY created_at DESC",
            (record_id,),
        )
        return [db_models.ChangeLogEntry(**row) for row in rows]

