"""GeoJSON discovery, including ArcGIS REST and WFS URL bridging."""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Tuple

import requests
from pydantic import BaseModel, ConfigDict

from .arcgis import probe_arcgis_service, service_layers
from .base import BaseService, register_service
from .config import GEOJSON_ACCEPT, DiscoveryConfig
from ..errors import GeoProbeError
from ..fetch import fetch_body, is_json_content
from ..geojson import analyze_geojson, load_geojson, validate_geojson
from ..types import (
    ArcGISProbe,
    GeoJSONAnalysis,
    GeoJSONCapabilities,
    GeoJSONSourceType,
    ServiceInfo,
    ServiceTypeEnum,
)
from ..urls import (
    convert_arcgis_to_geojson_url,
    convert_wfs_to_geojson_url,
    hostname,
    is_arcgis_service_url,
)

logger = logging.getLogger(__name__)

DEFAULT_ERROR = "Unable to retrieve GeoJSON data from this URL"


class GeoJSONDocument(BaseModel):
    """A validated GeoJSON payload together with its analysis."""
    data: dict
    content_type: str
    analysis: GeoJSONAnalysis

    model_config = ConfigDict(frozen=True)


def test_geojson_url(
    session: requests.Session,
    url: str,
    config: DiscoveryConfig,
) -> GeoJSONDocument:
    """
    GET ``url`` and check that it serves GeoJSON.

    Raises:
        UnreachableError: non-2xx response or network failure
        InvalidContentTypeError: neither JSON nor ``text/*``
        ContentTooLargeError: larger than ``config.max_geojson_bytes``
        InvalidGeoJSONError: not JSON, or not GeoJSON-shaped
    """
    body, content_type = fetch_body(
        session,
        url,
        timeout=config.geojson_timeout,
        max_bytes=config.max_geojson_bytes,
        headers=config.request_headers({"Accept": GEOJSON_ACCEPT}),
        accept=is_json_content,
    )
    data = validate_geojson(load_geojson(body))
    return GeoJSONDocument(data=data, content_type=content_type, analysis=analyze_geojson(data))


test_geojson_url.__test__ = False  # not a pytest test


@register_service(ServiceTypeEnum.GEOJSON)
class GeoJSONService(BaseService):
    """
    Resolves GeoJSON files, GeoJSON APIs and the feature services behind them.

    Strategies, in order:

    1. the URL itself
    2. an ArcGIS REST service description (``?f=json``) and its first layer
    3. the URL rewritten as an ArcGIS GeoJSON query
    4. the URL rewritten as a WFS ``GetFeature`` JSON request
    5. the same rewrite for URLs that merely mention ``wfs``
    """

    def fetch(self, url: str) -> ServiceInfo:
        host = hostname(url)
        last_error: Optional[str] = None

        try:
            document = test_geojson_url(self.session, url, self.config)
        except GeoProbeError as exc:
            last_error = str(exc)
        else:
            name = document.data.get("name")
            count = document.analysis.feature_count
            if isinstance(name, str) and name:
                title = name
            elif count > 0:
                title = f"{host} ({count} features)"
            else:
                title = host
            return self._resolved(url, title, document, GeoJSONSourceType.DIRECT)

        if is_arcgis_service_url(url):
            try:
                probe = probe_arcgis_service(self.session, url, self.config)
            except (GeoProbeError, requests.RequestException) as exc:
                logger.debug("No ArcGIS service description at %s: %s", url, exc)
            else:
                return self._from_arcgis(url, probe, host)

        lowered = url.lower()
        tried = {url}
        for applies, convert, source_type in self._conversions():
            if not applies(lowered):
                continue
            converted = convert(url)
            if converted in tried:
                continue
            tried.add(converted)
            logger.debug("Trying %s GeoJSON URL %s", source_type.value, converted)
            try:
                document = test_geojson_url(self.session, converted, self.config)
            except GeoProbeError as exc:
                last_error = str(exc)
                continue
            return self._resolved(converted, host, document, source_type)

        return ServiceInfo.failure(url, last_error or DEFAULT_ERROR)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _conversions(self) -> List[Tuple[Callable[[str], bool], Callable[[str], str], GeoJSONSourceType]]:
        record_count = self.config.arcgis_record_count
        return [
            (
                lambda lowered: "featureserver" in lowered or "mapserver" in lowered,
                lambda url: convert_arcgis_to_geojson_url(url, record_count),
                GeoJSONSourceType.ARCGIS_CONVERTED,
            ),
            (
                lambda lowered: "service=wfs" in lowered or "request=getfeature" in lowered,
                convert_wfs_to_geojson_url,
                GeoJSONSourceType.WFS_CONVERTED,
            ),
            (
                lambda lowered: "wfs" in lowered,
                lambda url: convert_wfs_to_geojson_url(url, assume_wfs=True),
                GeoJSONSourceType.WFS_INFERRED,
            ),
        ]

    def _from_arcgis(self, url: str, probe: ArcGISProbe, host: str) -> ServiceInfo:
        try:
            document = test_geojson_url(self.session, probe.query_url, self.config)
        except GeoProbeError as exc:
            logger.debug("ArcGIS query %s failed: %s", probe.query_url, exc)
            names = [layer.name or str(layer.id) for layer in service_layers(probe.service_info)]
            return ServiceInfo.failure(
                url,
                "ArcGIS Feature Service detected but couldn't retrieve GeoJSON data. "
                f"Available layers: {', '.join(names) or 'none'}",
            )

        description = probe.service_info.get("serviceDescription")
        title = probe.selected_layer.name or (description if isinstance(description, str) else None) or host
        return self._resolved(
            probe.query_url,
            title,
            document,
            GeoJSONSourceType.ARCGIS,
            arcgis_service_info=probe.service_info,
            selected_layer=probe.selected_layer,
            available_layers=service_layers(probe.service_info),
        )

    def _resolved(
        self,
        service_url: str,
        title: str,
        document: GeoJSONDocument,
        source_type: GeoJSONSourceType,
        **extra: Any,
    ) -> ServiceInfo:
        capabilities = GeoJSONCapabilities(
            format=document.content_type or "GeoJSON",
            analysis=document.analysis,
            source_type=source_type,
            **extra,
        )
        return self.resolved(service_url, title, capabilities)
