"""geoprobe - discover which web map protocol a URL speaks and parse its capabilities."""

from ._version import __version__

from .api import cascade_probers, load_service, load_service_async, run_cascade
from .errors import (
    ContentTooLargeError,
    GeoProbeError,
    InvalidContentTypeError,
    InvalidDocumentError,
    InvalidGeoJSONError,
    InvalidURLError,
    NoMatchingProtocolError,
    UnreachableError,
)
from .fetch import analyze_map_service_url, get_url_content_info
from .geojson import analyze_geojson, map_layer_kinds, validate_geojson
from .service import BaseService, DiscoveryConfig, get_service, register_service
from .types import (
    BBoxTuple,
    BoundingBox,
    ContentInfo,
    GeoJSONAnalysis,
    GeoJSONCapabilities,
    MapServiceInfo,
    ServiceInfo,
    ServiceTypeEnum,
    TileSize,
    XYZCapabilities,
)
from .urls import normalize_to_xyz_format, normalize_url

__all__ = [
    "__version__",
    "cascade_probers",
    "load_service",
    "load_service_async",
    "run_cascade",
    "ContentTooLargeError",
    "GeoProbeError",
    "InvalidContentTypeError",
    "InvalidDocumentError",
    "InvalidGeoJSONError",
    "InvalidURLError",
    "NoMatchingProtocolError",
    "UnreachableError",
    "analyze_map_service_url",
    "get_url_content_info",
    "analyze_geojson",
    "map_layer_kinds",
    "validate_geojson",
    "BaseService",
    "DiscoveryConfig",
    "get_service",
    "register_service",
    "BBoxTuple",
    "BoundingBox",
    "ContentInfo",
    "GeoJSONAnalysis",
    "GeoJSONCapabilities",
    "MapServiceInfo",
    "ServiceInfo",
    "ServiceTypeEnum",
    "TileSize",
    "XYZCapabilities",
    "normalize_to_xyz_format",
    "normalize_url",
]
