"""Catalog package initializer for the geospatial metadata catalog backend.

This package contains the backend of a catalog in which organizations
describe their geospatial datasets, route the descriptions through a
validation workflow and publish them for discovery on a map.

- Organizations with a single Node Officer and role-based memberships
- Nine-step metadata form stored as flat columns plus JSON sections
- Draft, Pending Validation, Needs Revision, Approved, Published and
  Archived workflow with change logs, notifications and audit entries
- Catalog search, dashboards, marker clustering and base map styles
- Detection of ArcGIS, WMS and WFS overlay services

See DESIGN.md and the module docstrings for architecture and usage.
"""
