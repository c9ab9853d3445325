"""Repositories for organization memberships and global user roles."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, cast

from catalog.db import models as db_models
from catalog.db import postgres

if TYPE_CHECKING:
    from collections.abc import Iterable


class MembershipRepositoryProtocol(Protocol):
    """Protocol interface for user to organization role assignments."""

    def upsert(self, membership: db_models.Membership) -> db_models.Membership: ...

    def get(self, user_id: str, org_id: str) -> db_models.Membership | None: ...

    def for_organization(self, org_id: str) -> Iterable[db_models.Membership]: ...

    def for_user(self, user_id: str) -> Iterable[db_models.Membership]: ...

    def remove(self, user_id: str, org_id: str) -> bool: ...


class UserRoleRepositoryProtocol(Protocol):
    """Protocol interface for global role assignments."""

    def get(self, user_id: str) -> db_models.UserRole | None: ...

    def set(self, user_role: db_models.UserRole) -> db_models.UserRole: ...

    def all(self) -> Iterable[db_models.UserRole]: ...


class InMemoryMembershipRepository(MembershipRepositoryProtocol):
    """Dictionary-backed membership store keyed by (user_id, org_id)."""

    def __init__(self) -> None:
        self._store: dict[tuple[str, str], db_models.Membership] = {}

    def upsert(self, membership: db_models.Membership) -> db_models.Membership:
        key = (membership.user_id, membership.organization_id)
        existing = self._store.get(key)
        if existing is not None:
            membership.joined_at = existing.joined_at
        self._store[key] = membership
        return membership

    def get(self, user_id: str, org_id: str) -> db_models.Membership | None:
        return self._store.get((user_id, org_id))

    def for_organization(self, org_id: str) -> Iterable[db_models.Membership]:
        return [m for m in self._store.values() if m.organization_id == org_id]

    def for_user(self, user_id: str) -> Iterable[db_models.Membership]:
        return [m for m in self._store.values() if m.user_id == user_id]

    def remove(self, user_id: str, org_id: str) -> bool:
        return self._store.pop((user_id, org_id), None) is not None


class InMemoryUserRoleRepository(UserRoleRepositoryProtocol):
    """Dictionary-backed global role store."""

    def __init__(self) -> None:
        self._store: dict[str, db_models.UserRole] = {}

    def get(self, user_id: str) -> db_models.UserRole | None:
        return self._store.get(user_id)

    def set(self, user_role: db_models.UserRole) -> db_models.UserRole:
        self._store[user_role.user_id] = user_role
        return user_role

    def all(self) -> Iterable[db_models.UserRole]:
        return list(self._store.values())


class PostgresMembershipRepository(
    postgres.PostgresRepository, MembershipRepositoryProtocol
):
    """PostgreSQL-backed membership repository."""

    CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS user_organizations (
      user_id TEXT NOT NULL,
      organization_id TEXT NOT NULL,
      role TEXT,
      joined_at TIMESTAMPTZ DEFAULT now(),
      PRIMARY KEY (user_id, organization_id)
    );
    """

    def upsert(self, membership: db_models.Membership) -> db_models.Membership:
        self._execute(
            """
            INSERT INTO user_organizations (user_id, organization_id, role, joined_at)
            VALUES (%(user_id)s, %(organization_id)s, %(role)s, %(joined_at)s)
            ON CONFLICT (user_id, organization_id) DO UPDATE SET
                role = EXCLUDED.role;
            """,
            self._to_row(membership),
        )
        return membership

    def get(self, user_id: str, org_id: str) -> db_models.Membership | None:
        row = self._fetch_one(
            "SELECT * FROM user_organizations "
            "WHERE user_id = %s AND organization_id = %s",
            (user_id, org_id),
        )
        return self._from_row(row) if row is not None else None

    def for_organization(self, org_id: str) -> Iterable[db_models.Membership]:
        rows = self._fetch_all(
            "SELECT * FROM user_organizations WHERE organization_id = %s "
            "ORDER BY joined_at",
            (org_id,),
        )
        return [self._from_row(row) for row in rows]

    def for_user(self, user_id: str) -> Iterable[db_models.Membership]:
        rows = self._fetch_all(
            "SELECT * FROM user_organizations WHERE user_id = %s ORDER BY joined_at",
            (user_id,),
        )
        return [self._from_row(row) for row in rows]

    def remove(self, user_id: str, org_id: str) -> bool:
        deleted = self._execute(
            "DELETE FROM user_organizations "
            "WHERE user_id = %s AND organization_id = %s",
            (user_id, org_id),
        )
        return deleted > 0

    @staticmethod
    def _to_row(membership: db_models.Membership) -> dict[str, object]:
        return {
            "user_id": membership.user_id,
            "organization_id": membership.organization_id,
            "role": membership.role,
            "joined_at": membership.joined_at,
        }

    @staticmethod
    def _from_row(row: dict[str, Any]) -> db_models.Membership:
        return db_models.Membership(
            user_id=str(row["user_id"]),
            organization_id=str(row["organization_id"]),
            role=cast(
                db_models.OrganizationRole | None,
                postgres._cast(row.get("role"), str),
            ),
            joined_at=row.get("joined_at") or db_models.utcnow(),
        )


class PostgresUserRoleRepository(
    postgres.PostgresRepository, UserRoleRepositoryProtocol
):
    """PostgreSQL-backed global role repository."""

    CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS user_roles (
      user_id TEXT PRIMARY KEY,
      role TEXT NOT NULL DEFAULT 'Registered User',
      updated_at TIMESTAMPTZ DEFAULT now()
    );
    """

    def get(self, user_id: str) -> db_models.UserRole | None:
        row = self._fetch_one("SELECT * FROM user_roles WHERE user_id = %s", (user_id,))
        return self._from_row(row) if row is not None else None

    def set(self, user_role: db_models.UserRole) -> db_models.UserRole:
        self._execute(
            """
            INSERT INTO user_roles (user_id, role, updated_at)
            VALUES (%(user_id)s, %(role)s, %(updated_at)s)
            ON CONFLICT (user_id) DO UPDATE SET
                role = EXCLUDED.role,
                updated_at = EXCLUDED.updated_at;
            """,
            {
                "user_id": user_role.user_id,
                "role": user_role.role,
                "updated_at": user_role.updated_at,
            },
        )
        return user_role

    def all(self) -> Iterable[db_models.UserRole]:
        rows = self._fetch_all("SELECT * FROM user_roles ORDER BY user_id")
        return [self._from_row(row) for row in rows]

    @staticmethod
    def _from_row(row: dict[str, Any]) -> db_models.UserRole:
        return db_models.UserRole(
            user_id=str(row["user_id"]),
            role=cast(db_models.GlobalRole, str(row["role"])),
            updated_at=row.get("updated_at") or db_models.utcnow(),
        )
