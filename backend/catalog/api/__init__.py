"""API router subpackage for the metadata catalog backend.

Each module exposes its own APIRouter for composition in the application's
main FastAPI instance. Routers only translate HTTP parameters and bodies;
rules live in ``catalog.services`` and domain errors are rendered by the
handler registered in ``catalog.main``.

Submodules:
    - organizations: Organizations, Node Officers and memberships.
    - metadata: Record search, CRUD, form round trip and quality checks.
    - workflow: Submit, approve, reject, publish and archive transitions.
    - notifications: The signed-in user's notification inbox.
    - audit_logs: Audit trail for System Administrators.
    - dashboard: Per-user statistics.
    - map: Record markers, clustering, base styles and GIS overlays.
    - users: Global roles and permissions.
    - deps: Shared dependencies.
"""
