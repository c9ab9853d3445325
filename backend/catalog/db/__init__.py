"""Database interface and repository abstractions.

This package holds the catalog's dataclass models and, per aggregate, a
repository Protocol with an in-memory implementation for tests and a
PostgreSQL implementation for production. ``catalog.db.database`` bundles
them into a Repositories object selected from settings.

Example:
    Use in a service or FastAPI dependency:
        >>> from catalog.db import database
        >>> repos = database.get_repositories(settings)
        >>> repos.organizations.get("org-1")
"""
