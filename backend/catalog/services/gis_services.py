"""Detection of user-supplied GIS overlay services and MapLibre layer configs.

Users paste an ArcGIS REST, WMS or WFS endpoint. ``ServiceDetector`` guesses
the service type from the URL, confirms it by requesting the service's
capabilities with httpx and lists the layers it offers.
``build_layer_config`` then turns a chosen layer into the MapLibre source and
layer definitions the map viewer adds on top of its base style.

Detection strategy:
    1. URL heuristics: ``arcgis.com``, ``/rest/services``, ``MapServer`` or
       ``FeatureServer`` point to ArcGIS; ``wms`` and ``wfs`` to OGC
       services. Without a hint every type is tried in turn.
    2. Probing: ArcGIS answers ``f=json``; OGC services answer
       ``GetCapabilities`` with XML parsed by ElementTree.

Network failures never raise; they come back as an unsuccessful
DetectionResult carrying the error text.
"""

from __future__ import annotations

import dataclasses
import logging
import re
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING, Any, Literal
from urllib import parse

import httpx

from catalog.core import errors

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

ServiceType = Literal["arcgis", "wms", "wfs"]
ArcGISServerType = Literal["MapServer", "FeatureServer"]
SERVICE_TYPES: tuple[ServiceType, ...] = ("arcgis", "wms", "wfs")
TILE_SIZE = 256


@dataclasses.dataclass
class ServiceLayer:
    name: str
    title: str | None = None


@dataclasses.dataclass
class DetectionResult:
    """Outcome of probing one URL."""

    url: str
    success: bool
    service_type: ServiceType | None = None
    server_type: ArcGISServerType | None = None
    title: str | None = None
    description: str | None = None
    layers: list[ServiceLayer] = dataclasses.field(default_factory=list)
    error: str | None = None


def guess_service_types(url: str) -> list[ServiceType]:
    """Order in which service types are probed for a URL."""
    lowered = url.lower()
    if (
        "arcgis.com" in lowered
        or "/rest/services" in lowered
        or "mapserver" in lowered
        or "featureserver" in lowered
    ):
        return ["arcgis"]
    if "wms" in lowered:
        return ["wms"]
    if "wfs" in lowered:
        return ["wfs"]
    return list(SERVICE_TYPES)


def arcgis_server_type(url: str) -> ArcGISServerType | None:
    lowered = url.lower()
    if "featureserver" in lowered:
        return "FeatureServer"
    if "mapserver" in lowered:
        return "MapServer"
    return None


def _local_name(element: ET.Element) -> str:
    return element.tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> ET.Element | None:
    for child in element:
        if _local_name(child) == name:
            return child
    return None


def _child_text(element: ET.Element | None, name: str) -> str | None:
    if element is None:
        return None
    child = _child(element, name)
    if child is None or child.text is None:
        return None
    return child.text.strip() or None


def _iter_named_layers(layer: ET.Element) -> Iterator[ServiceLayer]:
    """Walk nested WMS <Layer> elements, yielding those with a <Name>."""
    name = _child_text(layer, "Name")
    if name is not None:
        yield ServiceLayer(name=name, title=_child_text(layer, "Title"))
    for child in layer:
        if _local_name(child) == "Layer":
            yield from _iter_named_layers(child)


class ServiceDetector:
    """Probes service URLs over HTTP.

    Args:
        timeout: Seconds allowed for each capabilities request.
        transport: Optional httpx transport, used by tests to serve canned
            responses.
    """

    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.transport = transport

    def detect(self, url: str) -> DetectionResult:
        """Identify the service behind ``url`` and list its layers."""
        url = url.strip()
        parsed = parse.urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise errors.ValidationError("Service URL must be an http or https URL")

        result = DetectionResult(url=url, success=False, error="No service detected")
        for service_type in guess_service_types(url):
            if service_type == "arcgis":
                result = self._probe_arcgis(url)
            elif service_type == "wms":
                result = self._probe_wms(url)
            else:
                result = self._probe_wfs(url)
            if result.success:
                break
        logger.info(
            "Service detection for %s: %s",
            url,
            result.service_type if result.success else result.error,
        )
        return result

    def _get(
        self, url: str, params: dict[str, str]
    ) -> tuple[httpx.Response | None, str | None]:
        try:
            with httpx.Client(
                timeout=self.timeout, follow_redirects=True, transport=self.transport
            ) as client:
                response = client.get(url, params=params)
                response.raise_for_status()
                return response, None
        except httpx.TimeoutException:
            return None, "Request timed out"
        except httpx.HTTPStatusError as exc:
            return None, f"Service responded with HTTP {exc.response.status_code}"
        except httpx.HTTPError as exc:
            return None, f"Request failed: {exc}"

    def _probe_arcgis(self, url: str) -> DetectionResult:
        response, error = self._get(url, {"f": "json"})
        if response is None:
            return DetectionResult(url=url, success=False, error=error)
        try:
            data: Any = response.json()
        except ValueError:
            return DetectionResult(
                url=url, success=False, error="ArcGIS service did not return JSON"
            )
        if not isinstance(data, dict) or "error" in data:
            return DetectionResult(
                url=url, success=False, error="ArcGIS service returned an error"
            )
        if not any(key in data for key in ("serviceDescription", "layers", "services")):
            return DetectionResult(
                url=url, success=False, error="Not an ArcGIS REST service"
            )

        layers = [
            ServiceLayer(name=str(layer.get("id")), title=layer.get("name"))
            for layer in data.get("layers") or []
            if isinstance(layer, dict) and layer.get("id") is not None
        ]
        document_info = data.get("documentInfo") or {}
        return DetectionResult(
            url=url,
            success=True,
            service_type="arcgis",
            server_type=arcgis_server_type(url),
            title=document_info.get("Title") or data.get("mapName") or data.get("name"),
            description=data.get("serviceDescription") or data.get("description"),
            layers=layers,
        )

    def _capabilities(
        self, url: str, service: str
    ) -> tuple[ET.Element | None, str | None]:
        response, error = self._get(
            url, {"SERVICE": service, "REQUEST": "GetCapabilities"}
        )
        if response is None:
            return None, error
        try:
            return ET.fromstring(response.content), None
        except ET.ParseError as exc:
            return None, f"Invalid capabilities document: {exc}"

    def _probe_wms(self, url: str) -> DetectionResult:
        root, error = self._capabilities(url, "WMS")
        if root is None:
            return DetectionResult(url=url, success=False, error=error)
        if _local_name(root) not in ("WMS_Capabilities", "WMT_MS_Capabilities"):
            return DetectionResult(url=url, success=False, error="Not a WMS service")

        service = _child(root, "Service")
        capability = _child(root, "Capability")
        top_layer = _child(capability, "Layer") if capability is not None else None
        layers = list(_iter_named_layers(top_layer)) if top_layer is not None else []
        return DetectionResult(
            url=url,
            success=True,
            service_type="wms",
            title=_child_text(service, "Title"),
            description=_child_text(service, "Abstract"),
            layers=layers,
        )

    def _probe_wfs(self, url: str) -> DetectionResult:
        root, error = self._capabilities(url, "WFS")
        if root is None:
            return DetectionResult(url=url, success=False, error=error)
        if _local_name(root) != "WFS_Capabilities":
            return DetectionResult(url=url, success=False, error="Not a WFS service")

        # WFS 1.0 uses <Service>, later versions <ows:ServiceIdentification>.
        service = _child(root, "Service")
        if service is None:
            service = _child(root, "ServiceIdentification")
        feature_types = _child(root, "FeatureTypeList")
        layers = []
        if feature_types is not None:
            for feature_type in feature_types:
                name = _child_text(feature_type, "Name")
                if _local_name(feature_type) == "FeatureType" and name is not None:
                    layers.append(
                        ServiceLayer(
                            name=name, title=_child_text(feature_type, "Title")
                        )
                    )
        return DetectionResult(
            url=url,
            success=True,
            service_type="wfs",
            title=_child_text(service, "Title"),
            description=_child_text(service, "Abstract"),
            layers=layers,
        )


def _base_url(url: str) -> str:
    return url.split("?", 1)[0].rstrip("/")


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-") or "layer"


def build_layer_config(
    service_type: ServiceType,
    url: str,
    layer: str | None = None,
    server_type: ArcGISServerType | None = None,
    geometry_type: Literal["point", "line", "polygon"] = "polygon",
) -> dict[str, Any]:
    """MapLibre source and layer definitions for one service layer.

    Raster services (ArcGIS MapServer, WMS) become raster tile sources using
    the ``{bbox-epsg-3857}`` placeholder. Feature services (ArcGIS
    FeatureServer, WFS) become GeoJSON sources.

    Raises:
        ValidationError: If a WMS or WFS layer name is missing.

    Example:
        >>> config = build_layer_config(
        ...     "wms", "https://example.org/wms", layer="roads"
        ... )
        >>> config["source"]["type"]
        'raster'
    """
    base = _base_url(url)
    quoted = parse.quote(layer, safe=":,") if layer else None
    source_id = f"{service_type}-{_slug(layer or base.rsplit('/', 1)[-1])}"

    if service_type == "arcgis":
        server_type = server_type or arcgis_server_type(url) or "MapServer"
        if server_type == "FeatureServer":
            source = {
                "type": "geojson",
                "data": (
                    f"{base}/{quoted or 0}/query?where=1%3D1&outFields=*"
                    "&outSR=4326&f=geojson"
                ),
            }
        else:
            tiles = (
                f"{base}/export?bbox={{bbox-epsg-3857}}&bboxSR=3857&imageSR=3857"
                f"&size={TILE_SIZE},{TILE_SIZE}&format=png32&transparent=true&f=image"
            )
            if quoted:
                tiles += f"&layers=show:{quoted}"
            source = {"type": "raster", "tiles": [tiles], "tileSize": TILE_SIZE}
    elif service_type == "wms":
        if not quoted:
            raise errors.ValidationError("A WMS layer name is required")
        source = {
            "type": "raster",
            "tiles": [
                f"{base}?SERVICE=WMS&VERSION=1.3.0&REQUEST=GetMap&LAYERS={quoted}"
                "&STYLES=&CRS=EPSG:3857&BBOX={bbox-epsg-3857}"
                f"&WIDTH={TILE_SIZE}&HEIGHT={TILE_SIZE}"
                "&FORMAT=image/png&TRANSPARENT=true"
            ],
            "tileSize": TILE_SIZE,
        }
    else:
        if not quoted:
            raise errors.ValidationError("A WFS feature type name is required")
        source = {
            "type": "geojson",
            "data": (
                f"{base}?SERVICE=WFS&VERSION=2.0.0&REQUEST=GetFeature"
                f"&TYPENAMES={quoted}&OUTPUTFORMAT=application/json"
                "&SRSNAME=EPSG:4326"
            ),
        }

    if source["type"] == "raster":
        layer_def: dict[str, Any] = {
            "id": f"{source_id}-layer",
            "type": "raster",
            "source": source_id,
            "paint": {"raster-opacity": 0.8},
        }
    elif geometry_type == "point":
        layer_def = {
            "id": f"{source_id}-layer",
            "type": "circle",
            "source": source_id,
            "paint": {"circle-radius": 5, "circle-color": "#1d4ed8"},
        }
    elif geometry_type == "line":
        layer_def = {
            "id": f"{source_id}-layer",
            "type": "line",
            "source": source_id,
            "paint": {"line-width": 2, "line-color": "#1d4ed8"},
        }
    else:
        layer_def = {
            "id": f"{source_id}-layer",
            "type": "fill",
            "source": source_id,
            "paint": {"fill-color": "#1d4ed8", "fill-opacity": 0.4},
        }
    return {"source_id": source_id, "source": source, "layer": layer_def}
