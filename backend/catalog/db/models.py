"""Data models for the metadata catalog.

This module defines the core data structures used throughout the application:
organizations and their memberships, global user roles, metadata records with
their nested descriptive sections, and the activity trail made of change log
entries, notifications and audit log entries.

Enumerations are expressed as ``Literal`` aliases; the matching ``*_VALUES``
tuples expose the allowed values at runtime for validation and for the
database CHECK-free text columns.

Example:
    Creating a draft metadata record:
        >>> from catalog.db.models import MetadataRecord
        >>> record = MetadataRecord(
        ...     id="rec-1",
        ...     title="Lagos road network",
        ...     creator_user_id="user-a",
        ...     organization_id="org-1",
        ... )
        >>> record.status
        'Draft'
"""

from __future__ import annotations

import dataclasses
import datetime
import math
from typing import Any, Literal, get_args

BBox = tuple[float, float, float, float]
"""Bounding box as (west, south, east, north) in EPSG:4326 degrees."""

MetadataStatus = Literal[
    "Draft",
    "Pending Validation",
    "Needs Revision",
    "Approved",
    "Rejected",
    "Published",
    "Archived",
]
DataType = Literal[
    "Raster",
    "Vector",
    "Table",
    "Service",
    "Application",
    "Document",
    "Collection",
    "Other",
]
FrameworkType = Literal[
    "Fundamental",
    "Thematic",
    "Special Interest",
    "Administrative",
    "Other",
]
OrganizationStatus = Literal["active", "inactive", "pending_approval"]
OrganizationRole = Literal["Node Officer", "Metadata Creator", "Metadata Approver"]
GlobalRole = Literal[
    "System Administrator",
    "Node Officer",
    "Registered User",
    "Metadata Creator",
    "Metadata Approver",
]
ChangeActionType = Literal[
    "CreateRecord",
    "UpdateField",
    "DeleteRecord",
    "StatusChange",
    "SubmittedForValidation",
    "ApprovedRecord",
    "RejectedRecord",
    "RevisionSubmitted",
    "Other",
]
NotificationType = Literal[
    "MetadataStatusChange",
    "NewRoleAssignment",
    "TaskDelegation",
    "SystemAlert",
    "UserMention",
    "NewFeatureAnnouncement",
    "Other",
]
NotificationPriority = Literal["low", "normal", "high"]
AuditCategory = Literal[
    "Authentication",
    "UserManagement",
    "OrganizationManagement",
    "PermissionManagement",
    "SettingsManagement",
    "MetadataWorkflow",
    "SecurityEvent",
    "SystemEvent",
    "Other",
]
AuditTargetType = Literal[
    "User",
    "Organization",
    "Role",
    "Permission",
    "SystemSetting",
    "MetadataRecord",
    "System",
    "None",
]

METADATA_STATUSES: tuple[str, ...] = get_args(MetadataStatus)
DATA_TYPES: tuple[str, ...] = get_args(DataType)
FRAMEWORK_TYPES: tuple[str, ...] = get_args(FrameworkType)
ORGANIZATION_STATUSES: tuple[str, ...] = get_args(OrganizationStatus)
ORGANIZATION_ROLES: tuple[str, ...] = get_args(OrganizationRole)
GLOBAL_ROLES: tuple[str, ...] = get_args(GlobalRole)
NOTIFICATION_TYPES: tuple[str, ...] = get_args(NotificationType)
AUDIT_CATEGORIES: tuple[str, ...] = get_args(AuditCategory)

TOPIC_CATEGORIES: tuple[str, ...] = (
    "farming",
    "biota",
    "boundaries",
    "climatologyMeteorologyAtmosphere",
    "economy",
    "elevation",
    "environment",
    "geoscientificInformation",
    "health",
    "imageryBaseMapsEarthCover",
    "intelligenceMilitary",
    "inlandWaters",
    "location",
    "oceans",
    "planningCadastre",
    "society",
    "structure",
    "transportation",
    "utilitiesCommunication",
)


def utcnow() -> datetime.datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.datetime.now(tz=datetime.UTC)


@dataclasses.dataclass
class Organization:
    """An organization that owns metadata records.

    Attributes:
        id: Unique identifier (UUID string).
        name: Unique display name.
        status: Lifecycle status ("active", "inactive", "pending_approval").
        node_officer_id: User id of the single active Node Officer, if any.
    """

    id: str
    name: str
    description: str | None = None
    website: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    logo_url: str | None = None
    status: OrganizationStatus = "active"
    node_officer_id: str | None = None
    created_at: datetime.datetime = dataclasses.field(default_factory=utcnow)
    updated_at: datetime.datetime = dataclasses.field(default_factory=utcnow)


@dataclasses.dataclass
class Membership:
    """Links a user to an organization with an optional role."""

    user_id: str
    organization_id: str
    role: OrganizationRole | None = None
    joined_at: datetime.datetime = dataclasses.field(default_factory=utcnow)


@dataclasses.dataclass
class UserRole:
    """Global role assignment for a user."""

    user_id: str
    role: GlobalRole = "Registered User"
    updated_at: datetime.datetime = dataclasses.field(default_factory=utcnow)


@dataclasses.dataclass
class MetadataRecord:
    """A dataset description moving through the validation workflow.

    Flat columns hold the fields used for listing, filtering and quality
    checks. Descriptive detail lives in the ``*_info`` JSON sections. The
    ``bbox_*`` and ``temporal_extent_*`` columns are denormalized copies of
    the spatial and temporal sections used for search.

    Attributes:
        id: Unique identifier (UUID string).
        title: Dataset title.
        creator_user_id: Owner of the record.
        organization_id: Organization the record belongs to.
        status: Workflow status, starts as "Draft".
        validation_notes: Notes left by the approver.
        rejection_reason: Reason given when the record was sent back.
        publication_date: Set when the record reaches "Published".
    """

    id: str
    title: str
    creator_user_id: str
    organization_id: str | None
    status: MetadataStatus = "Draft"
    data_type: DataType | None = None
    framework_type: FrameworkType | None = None
    abstract: str = ""
    purpose: str = ""
    keywords: list[str] = dataclasses.field(default_factory=list)
    topic_categories: list[str] = dataclasses.field(default_factory=list)
    thumbnail_url: str | None = None
    coordinate_system: str | None = None
    file_format: str | None = None
    download_url: str | None = None
    api_endpoint: str | None = None
    validation_notes: str | None = None
    rejection_reason: str | None = None
    publication_date: datetime.datetime | None = None
    location_info: dict[str, Any] = dataclasses.field(default_factory=dict)
    spatial_info: dict[str, Any] = dataclasses.field(default_factory=dict)
    temporal_info: dict[str, Any] = dataclasses.field(default_factory=dict)
    technical_details_info: dict[str, Any] = dataclasses.field(default_factory=dict)
    constraints_info: dict[str, Any] = dataclasses.field(default_factory=dict)
    data_quality_info: dict[str, Any] = dataclasses.field(default_factory=dict)
    processing_info: dict[str, Any] = dataclasses.field(default_factory=dict)
    distribution_info: dict[str, Any] = dataclasses.field(default_factory=dict)
    metadata_reference_info: dict[str, Any] = dataclasses.field(default_factory=dict)
    fundamental_datasets_info: dict[str, Any] = dataclasses.field(
        default_factory=dict
    )
    additional_info: dict[str, Any] = dataclasses.field(default_factory=dict)
    bbox_west: float | None = None
    bbox_south: float | None = None
    bbox_east: float | None = None
    bbox_north: float | None = None
    temporal_extent_from: datetime.date | None = None
    temporal_extent_to: datetime.date | None = None
    created_at: datetime.datetime = dataclasses.field(default_factory=utcnow)
    updated_at: datetime.datetime = dataclasses.field(default_factory=utcnow)

    @property
    def bbox(self) -> BBox | None:
        """Return (west, south, east, north) when all four edges are set."""
        edges = (self.bbox_west, self.bbox_south, self.bbox_east, self.bbox_north)
        if any(edge is None or math.isnan(edge) for edge in edges):
            return None
        return edges  # type: ignore[return-value]


@dataclasses.dataclass
class ChangeLogEntry:
    """One entry of a metadata record's history."""

    id: str
    record_id: str
    user_id: str
    action_type: ChangeActionType
    field_name: str | None = None
    old_value: str | None = None
    new_value: str | None = None
    comment: str | None = None
    created_at: datetime.datetime = dataclasses.field(default_factory=utcnow)


@dataclasses.dataclass
class Notification:
    """A message delivered to a single user."""

    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    link: str | None = None
    is_read: bool = False
    priority: NotificationPriority = "normal"
    organization_id: str | None = None
    created_at: datetime.datetime = dataclasses.field(default_factory=utcnow)


@dataclasses.dataclass
class AuditLogEntry:
    """Append-only record of an administrative or workflow action."""

    id: str
    user_id: str | None
    category: AuditCategory
    action: str
    target_type: AuditTargetType = "None"
    target_id: str | None = None
    details: dict[str, Any] = dataclasses.field(default_factory=dict)
    created_at: datetime.datetime = dataclasses.field(default_factory=utcnow)


@dataclasses.dataclass
class Page[T]:
    """One page of a paginated collection."""

    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        """Number of pages needed for ``total`` items."""
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total / self.page_size)

    def as_dict(self) -> dict[str, Any]:
        """Serialize the page with dataclass items converted to dictionaries."""
        return {
            "items": [
                dataclasses.asdict(item)  # type: ignore[call-overload]
                if dataclasses.is_dataclass(item)
                else item
                for item in self.items
            ],
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
        }


def paginate[T](items: list[T], page: int, page_size: int) -> Page[T]:
    """Slice an already filtered and sorted list into a Page."""
    start = (page - 1) * page_size
    return Page(
        items=items[start : start + page_size],
        total=len(items),
        page=page,
        page_size=page_size,
    )
