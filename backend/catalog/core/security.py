"""Identity dependencies.

Authentication is performed by an upstream identity provider which forwards
the authenticated user id in a request header (``X-User-Id`` by default).
These dependencies only read that header.
"""

import fastapi

from catalog.core import config, errors


def get_optional_user_id(
    request: fastapi.Request,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> str | None:
    """Return the caller's user id, or None for anonymous requests."""
    value = request.headers.get(settings.user_id_header, "").strip()
    return value or None


def get_current_user_id(
    user_id: str | None = fastapi.Depends(get_optional_user_id),  # noqa: B008
) -> str:
    """Return the caller's user id.

    Raises:
        AuthenticationError: If the identity header is missing or blank.
    """
    if user_id is None:
        raise errors.AuthenticationError("Authentication required")
    return user_id
