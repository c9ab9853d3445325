"""Map viewer API endpoints: record markers, clusters, base styles and overlays.

All coordinates are WGS84 longitude/latitude. Overlay services are probed
server-side so the browser never has to deal with CORS on third party GIS
servers.

Example:
    Clustered markers for the current viewport:
        >>> response = client.get(
        ...     "/api/map/clusters",
        ...     params={"zoom": 5, "bbox": "2.6,4.2,14.7,13.9"},
        ... )
        >>> [item["kind"] for item in response.json()["items"]]

    Detect a WMS endpoint and build a MapLibre layer for one of its layers:
        >>> detected = client.post(
        ...     "/api/map/services/detect",
        ...     json={"url": "https://example.org/geoserver/wms"},
        ... ).json()
        >>> client.post(
        ...     "/api/map/services/layer",
        ...     json={"service_type": "wms", "url": detected["url"],
        ...           "layer": detected["layers"][0]["name"]},
        ... ).json()["source"]["type"]
        'raster'
"""

import dataclasses
from typing import Any, Literal

import fastapi
import pydantic

from catalog.api import deps
from catalog.core import config, security
from catalog.db import database
from catalog.services import clustering, gis_services, map_styles, metadata_records

router = fastapi.APIRouter(prefix="/api/map", tags=["map"])


class DetectRequest(pydantic.BaseModel):
    url: str = pydantic.Field(min_length=1)


class LayerRequest(pydantic.BaseModel):
    service_type: gis_services.ServiceType
    url: str = pydantic.Field(min_length=1)
    layer: str | None = None
    server_type: gis_services.ArcGISServerType | None = None
    geometry_type: Literal["point", "line", "polygon"] = "polygon"


def _get_records(
    repos: database.Repositories = fastapi.Depends(deps.get_repositories),  # noqa: B008
) -> metadata_records.MetadataRecordService:
    return metadata_records.MetadataRecordService(repos)


def _get_detector(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> gis_services.ServiceDetector:
    """Resolve the GIS service detector dependency.

    Tests override this dependency with a detector built on an
    ``httpx.MockTransport``.
    """
    return gis_services.ServiceDetector(timeout=settings.gis_request_timeout)


@router.get("/records")
async def map_records(
    bbox: str | None = None,
    user_id: str | None = fastapi.Depends(security.get_optional_user_id),  # noqa: B008
    service: metadata_records.MetadataRecordService = fastapi.Depends(_get_records),  # noqa: B008
) -> list[dict[str, Any]]:
    """One marker per visible record with a bounding box."""
    records = service.visible_records(user_id, deps.parse_bbox(bbox))
    return [dataclasses.asdict(m) for m in clustering.record_markers(records)]


@router.get("/clusters")
async def map_clusters(
    zoom: float = fastapi.Query(ge=0, le=24),  # noqa: B008
    bbox: str | None = None,
    radius: float | None = fastapi.Query(default=None, gt=0),  # noqa: B008
    user_id: str | None = fastapi.Depends(security.get_optional_user_id),  # noqa: B008
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    service: metadata_records.MetadataRecordService = fastapi.Depends(_get_records),  # noqa: B008
) -> dict[str, Any]:
    """Markers grouped for display at ``zoom``.

    Args:
        zoom: Map zoom level.
        bbox: Optional ``west,south,east,north`` viewport.
        radius: Cluster radius in pixels, defaults to the configured radius.
        user_id: Caller id, or None when anonymous.
        settings: Application settings (injected via FastAPI Depends).
        service: Metadata record service (injected via FastAPI Depends).

    Returns:
        Dictionary with the zoom level and a list of items whose ``kind``
        is either ``marker`` or ``cluster``.
    """
    records = service.visible_records(user_id, deps.parse_bbox(bbox))
    items = clustering.cluster_markers(
        clustering.record_markers(records),
        zoom,
        radius_px=radius or settings.cluster_radius_px,
        max_zoom=settings.cluster_max_zoom,
    )
    return {"zoom": zoom, "items": [dataclasses.asdict(item) for item in items]}


@router.get("/styles")
async def map_styles_list(
    style: str | None = None,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> dict[str, Any]:
    """Base styles available with the configured MapTiler key.

    ``selected`` is the requested style, or the free default when it is
    unknown or needs a key that is not configured.
    """
    api_key = settings.maptiler_api_key
    return {
        "selected": dataclasses.asdict(map_styles.resolve_style(style, api_key)),
        "styles": [dataclasses.asdict(s) for s in map_styles.available_styles(api_key)],
    }


@router.post("/services/detect")
def detect_service(
    body: DetectRequest,
    detector: gis_services.ServiceDetector = fastapi.Depends(_get_detector),  # noqa: B008
) -> dict[str, Any]:
    """Identify an ArcGIS, WMS or WFS endpoint and list its layers.

    Unreachable services return ``success: false`` with the error text
    rather than an error status.
    """
    return dataclasses.asdict(detector.detect(body.url))


@router.post("/services/layer")
async def service_layer(body: LayerRequest) -> dict[str, Any]:
    """MapLibre source and layer definitions for one service layer."""
    return gis_services.build_layer_config(
        body.service_type,
        body.url,
        layer=body.layer,
        server_type=body.server_type,
        geometry_type=body.geometry_type,
    )
