"""Repository bundle and backend selection.

Services receive a single Repositories object so that API dependencies have
one override point. ``get_repositories`` picks PostgreSQL or in-memory
implementations from settings; the in-memory bundle is created once per
process so data survives between requests in local development.
"""

from __future__ import annotations

import dataclasses
import functools
import logging
from typing import TYPE_CHECKING

from catalog.db import audit_logs as audit_db
from catalog.db import memberships as membership_db
from catalog.db import notifications as notification_db
from catalog.db import organizations as organization_db
from catalog.db import records as record_db

if TYPE_CHECKING:
    from catalog.core import config

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Repositories:
    """All repositories used by the services."""

    organizations: organization_db.OrganizationRepositoryProtocol
    memberships: membership_db.MembershipRepositoryProtocol
    user_roles: membership_db.UserRoleRepositoryProtocol
    records: record_db.MetadataRecordRepositoryProtocol
    change_log: record_db.ChangeLogRepositoryProtocol
    notifications: notification_db.NotificationRepositoryProtocol
    audit_logs: audit_db.AuditLogRepositoryProtocol

    @classmethod
    def in_memory(cls) -> Repositories:
        """Build a bundle of empty in-memory repositories."""
        return cls(
            organizations=organization_db.InMemoryOrganizationRepository(),
            memberships=membership_db.InMemoryMembershipRepository(),
            user_roles=membership_db.InMemoryUserRoleRepository(),
            records=record_db.InMemoryMetadataRecordRepository(),
            change_log=record_db.InMemoryChangeLogRepository(),
            notifications=notification_db.InMemoryNotificationRepository(),
            audit_logs=audit_db.InMemoryAuditLogRepository(),
        )

    @classmethod
    def postgres(cls, settings: config.Settings) -> Repositories:
        """Build a bundle of PostgreSQL repositories, creating tables as needed."""
        return cls(
            organizations=organization_db.PostgresOrganizationRepository(settings),
            memberships=membership_db.PostgresMembershipRepository(settings),
            user_roles=membership_db.PostgresUserRoleRepository(settings),
            records=record_db.PostgresMetadataRecordRepository(settings),
            change_log=record_db.PostgresChangeLogRepository(settings),
            notifications=notification_db.PostgresNotificationRepository(settings),
            audit_logs=audit_db.PostgresAuditLogRepository(settings),
        )


@functools.lru_cache
def _shared_in_memory() -> Repositories:
    logger.info("Using in-memory repositories; data is lost on restart")
    return Repositories.in_memory()


def get_repositories(settings: config.Settings) -> Repositories:
    """Factory function returning the configured repository bundle.

    Args:
        settings: Application settings selecting the backend.

    Returns:
        Repositories backed by PostgreSQL, or the process-wide in-memory
        bundle when ``repository_backend`` is "memory".
    """
    if settings.repository_backend == "memory":
        return _shared_in_memory()
    return Repositories.postgres(settings)
