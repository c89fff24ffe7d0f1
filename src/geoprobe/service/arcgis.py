"""ArcGIS REST Feature/Map service probing."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

import requests
from pydantic import ValidationError

from ..errors import InvalidDocumentError, UnreachableError
from ..fetch import fetch_body
from ..types import ArcGISLayer, ArcGISProbe
from ..urls import arcgis_base_url, arcgis_query_url, with_query
from .config import DiscoveryConfig

logger = logging.getLogger(__name__)


def describe_service(
    session: requests.Session,
    base_url: str,
    config: DiscoveryConfig,
) -> Dict[str, Any]:
    """GET ``<base>?f=json`` and return the decoded service description."""
    body, _ = fetch_body(
        session,
        with_query(base_url, [("f", "json")]),
        timeout=config.arcgis_timeout,
        max_bytes=config.max_capabilities_bytes,
        headers=config.request_headers({"Accept": "application/json"}),
    )
    try:
        description = json.loads(body)
    except ValueError as exc:
        raise InvalidDocumentError(f"ArcGIS service description is not JSON: {exc}", cause=exc) from exc
    if not isinstance(description, dict):
        raise InvalidDocumentError("ArcGIS service description is not a JSON object")
    if "error" in description:
        raise UnreachableError(f"ArcGIS service error: {description['error']}")
    return description


def service_layers(description: Dict[str, Any], key: str = "layers") -> List[ArcGISLayer]:
    """Entries of the ``layers`` (or ``tables``) list, skipping those without a usable id."""
    layers: List[ArcGISLayer] = []
    for entry in description.get(key) or []:
        try:
            layers.append(ArcGISLayer.model_validate(entry))
        except ValidationError:
            logger.debug("Skipping malformed ArcGIS layer entry %r", entry)
    return layers


def probe_arcgis_service(
    session: requests.Session,
    url: str,
    config: DiscoveryConfig,
) -> ArcGISProbe:
    """
    Locate a GeoJSON query for the first layer of an ArcGIS service.

    Raises:
        UnreachableError: the service description could not be retrieved
        InvalidDocumentError: the description lists no layers or tables
    """
    base_url = arcgis_base_url(url)
    description = describe_service(session, base_url, config)

    if "layers" not in description and "tables" not in description:
        raise InvalidDocumentError("Not an ArcGIS service description: no layers or tables")
    layers = service_layers(description)
    if not layers:
        raise InvalidDocumentError("ArcGIS service lists no layers")

    selected = layers[0]
    logger.debug("Using ArcGIS layer %s (%s) of %s", selected.id, selected.name, base_url)
    return ArcGISProbe(
        service_info=description,
        query_url=arcgis_query_url(base_url, selected.id, config.arcgis_record_count),
        selected_layer=selected,
        base_url=base_url,
    )
