"""Organization repositories."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, cast

from catalog.db import models as db_models
from catalog.db import postgres

if TYPE_CHECKING:
    from collections.abc import Iterable


class OrganizationRepositoryProtocol(Protocol):
    """Protocol interface for storing and retrieving organizations."""

    def add(self, org: db_models.Organization) -> db_models.Organization: ...

    def get(self, org_id: str) -> db_models.Organization | None: ...

    def get_by_name(self, name: str) -> db_models.Organization | None: ...

    def all(self) -> Iterable[db_models.Organization]: ...

    def delete(self, org_id: str) -> bool: ...


class InMemoryOrganizationRepository(OrganizationRepositoryProtocol):
    """Dictionary-backed organization store for tests and local development."""

    def __init__(self) -> None:
        self._store: dict[str, db_models.Organization] = {}

    def add(self, org: db_models.Organization) -> db_models.Organization:
        self._store[org.id] = org
        return org

    def get(self, org_id: str) -> db_models.Organization | None:
        return self._store.get(org_id)

    def get_by_name(self, name: str) -> db_models.Organization | None:
        wanted = name.strip().casefold()
        for org in self._store.values():
            if org.name.strip().casefold() == wanted:
                return org
        return None

    def all(self) -> Iterable[db_models.Organization]:
        return list(self._store.values())

    def delete(self, org_id: str) -> bool:
        return self._store.pop(org_id, None) is not None


class PostgresOrganizationRepository(
    postgres.PostgresRepository, OrganizationRepositoryProtocol
):
    """PostgreSQL-backed organization repository."""

    CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS organizations (
      id TEXT PRIMARY KEY,
      name TEXT NOT NULL UNIQUE,
      description TEXT,
      website TEXT,
      contact_email TEXT,
      contact_phone TEXT,
      address TEXT,
      city TEXT,
      state TEXT,
      country TEXT,
      postal_code TEXT,
      logo_url TEXT,
      status TEXT NOT NULL DEFAULT 'active',
      node_officer_id TEXT,
      created_at TIMESTAMPTZ DEFAULT now(),
      updated_at TIMESTAMPTZ DEFAULT now()
    );
    """

    COLUMNS = (
        "id",
        "name",
        "description",
        "website",
        "contact_email",
        "contact_phone",
        "address",
        "city",
        "state",
        "country",
        "postal_code",
        "logo_url",
        "status",
        "node_officer_id",
        "created_at",
        "updated_at",
    )

    def add(self, org: db_models.Organization) -> db_models.Organization:
        columns = ", ".join(self.COLUMNS)
        values = ", ".join(f"%({name})s" for name in self.COLUMNS)
        updates = ", ".join(
            f"{name} = EXCLUDED.{name}"
            for name in self.COLUMNS
            if name not in ("id", "created_at")
        )
        self._execute(
            f"INSERT INTO organizations ({columns}) VALUES ({values}) "
            f"ON CONFLICT (id) DO UPDATE SET {updates};",
            self._to_row(org),
        )
        return org

    def get(self, org_id: str) -> db_models.Organization | None:
        row = self._fetch_one("SELECT * FROM organizations WHERE id = %s", (org_id,))
        return self._from_row(row) if row is not None else None

    def get_by_name(self, name: str) -> db_models.Organization | None:
        row = self._fetch_one(
            "SELECT * FROM organizations WHERE lower(trim(name)) = lower(trim(%s))",
            (name,),
        )
        return self._from_row(row) if row is not None else None

    def all(self) -> Iterable[db_models.Organization]:
        rows = self._fetch_all("SELECT * FROM organizations ORDER BY name")
        return [self._from_row(row) for row in rows]

    def delete(self, org_id: str) -> bool:
        return self._execute("DELETE FROM organizations WHERE id = %s", (org_id,)) > 0

    @staticmethod
    def _to_row(org: db_models.Organization) -> dict[str, object]:
        """Convert an Organization to a parameter dictionary."""
        return {
            "id": org.id,
            "name": org.name,
            "description": org.description,
            "website": org.website,
            "contact_email": org.contact_email,
            "contact_phone": org.contact_phone,
            "address": org.address,
            "city": org.city,
            "state": org.state,
            "country": org.country,
            "postal_code": org.postal_code,
            "logo_url": org.logo_url,
            "status": org.status,
            "node_officer_id": org.node_officer_id,
            "created_at": org.created_at,
            "updated_at": org.updated_at,
        }

    @staticmethod
    def _from_row(row: dict[str, Any]) -> db_models.Organization:
        """Convert a database row to an Organization."""
        return db_models.Organization(
            id=str(row["id"]),
            name=str(row["name"]),
            description=postgres._cast(row.get("description"), str),
            website=postgres._cast(row.get("website"), str),
            contact_email=postgres._cast(row.get("contact_email"), str),
            contact_phone=postgres._cast(row.get("contact_phone"), str),
            address=postgres._cast(row.get("address"), str),
            city=postgres._cast(row.get("city"), str),
            state=postgres._cast(row.get("state"), str),
            country=postgres._cast(row.get("country"), str),
            postal_code=postgres._cast(row.get("postal_code"), str),
            logo_url=postgres._cast(row.get("logo_url"), str),
            status=cast(db_models.OrganizationStatus, str(row["status"])),
            node_officer_id=postgres._cast(row.get("node_officer_id"), str),
            created_at=row.get("created_at") or db_models.utcnow(),
            updated_at=row.get("updated_at") or db_models.utcnow(),
        )
