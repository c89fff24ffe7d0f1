"""Protocol fetchers and the registry that maps service types onto them."""

from .base import BaseService, get_service, register_service, registered_services
from .config import DiscoveryConfig
from .geojson import GeoJSONService, test_geojson_url
from .wfs import WFSService
from .wms import WMSService
from .wmts import WMTSService
from .xyz import XYZService

__all__ = [
    "BaseService",
    "get_service",
    "register_service",
    "registered_services",
    "DiscoveryConfig",
    "GeoJSONService",
    "test_geojson_url",
    "WFSService",
    "WMSService",
    "WMTSService",
    "XYZService",
]
