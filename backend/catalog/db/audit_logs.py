"""Append-only audit log repositories."""

from __future__ import annotations

import dataclasses
from typing import Any, Protocol

import psycopg2.extras

from catalog.db import models as db_models
from catalog.db import postgres


@dataclasses.dataclass
class AuditQuery:
    """Filters applied when listing audit entries."""

    category: str | None = None
    user_id: str | None = None
    target_type: str | None = None
    target_id: str | None = None

    def matches(self, entry: db_models.AuditLogEntry) -> bool:
        return all(
            wanted is None or getattr(entry, name) == wanted
            for name, wanted in dataclasses.asdict(self).items()
        )


class AuditLogRepositoryProtocol(Protocol):
    """Protocol interface for audit entries. There is no update or delete."""

    def add(self, entry: db_models.AuditLogEntry) -> db_models.AuditLogEntry: ...

    def find(self, query: AuditQuery) -> list[db_models.AuditLogEntry]: ...


class InMemoryAuditLogRepository(AuditLogRepositoryProtocol):
    """List-backed audit log."""

    def __init__(self) -> None:
        self._entries: list[db_models.AuditLogEntry] = []

    def add(self, entry: db_models.AuditLogEntry) -> db_models.AuditLogEntry:
        self._entries.append(entry)
        return entry

    def find(self, query: AuditQuery) -> list[db_models.AuditLogEntry]:
        entries = [e for e in self._entries if query.matches(e)]
        return sorted(entries, key=lambda e: e.created_at, reverse=True)


class PostgresAuditLogRepository(
    postgres.PostgresRepository, AuditLogRepositoryProtocol
):
    """PostgreSQL-backed audit log."""

    CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS audit_logs (
      id TEXT PRIMARY KEY,
      user_id TEXT,
      category TEXT NOT NULL,
      action TEXT NOT NULL,
      target_type TEXT NOT NULL DEFAULT 'None',
      target_id TEXT,
      details JSONB NOT NULL DEFAULT '{}',
      created_at TIMESTAMPTZ DEFAULT now()
    );
    """

    def add(self, entry: db_models.AuditLogEntry) -> db_models.AuditLogEntry:
        row = dataclasses.asdict(entry)
        row["details"] = psycopg2.extras.Json(entry.details)
        self._execute(
            """
            INSERT INTO audit_logs (
                id, user_id, category, action, target_type, target_id,
                details, created_at
            ) VALUES (%(id)s, %(user_id)s, %(category)s, %(action)s,
                %(target_type)s, %(target_id)s, %(details)s, %(created_at)s);
            """,
            row,
        )
        return entry

    def find(self, query: AuditQuery) -> list[db_models.AuditLogEntry]:
        clauses: list[str] = []
        params: dict[str, Any] = {}
        for name, wanted in dataclasses.asdict(query).items():
            if wanted is not None:
                clauses.append(f"{name} = %({name})s")
                params[name] = wanted
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._fetch_all(
            f"SELECT * FROM audit_logs {where} ORDER BY created_at DESC", params
        )
        return [
            db_models.AuditLogEntry(
                **{**row, "details": dict(row.get("details") or {})}
            )
            for row in rows
        ]
