"""
Shared records returned by service discovery.
"""

from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union
from enum import Enum

from pyproj import Transformer
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import NoMatchingProtocolError
from .ogc.types import WFSCapabilities, WMSCapabilities, WMTSCapabilities


class ServiceTypeEnum(str, Enum):
    """Protocols that discovery can resolve."""
    WMS = "WMS"
    WMTS = "WMTS"
    WFS = "WFS"
    GEOJSON = "GeoJSON"
    XYZ = "XYZ"


BBoxTuple = Tuple[float, float, float, float]


class BoundingBox(BaseModel):
    """Bounding box representation."""
    min_x: float = Field(..., description="Minimum X coordinate")
    min_y: float = Field(..., description="Minimum Y coordinate")
    max_x: float = Field(..., description="Maximum X coordinate")
    max_y: float = Field(..., description="Maximum Y coordinate")
    crs: str = Field(default="EPSG:4326", description="Coordinate Reference System")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_coordinates(self):
        """Validate that min coordinates do not exceed max coordinates."""
        if self.min_x > self.max_x:
            raise ValueError('min_x must not exceed max_x')
        if self.min_y > self.max_y:
            raise ValueError('min_y must not exceed max_y')
        return self

    @classmethod
    def from_tuple(cls, bbox: BBoxTuple, crs: str = "EPSG:4326") -> "BoundingBox":
        """Create BoundingBox from tuple."""
        return cls(min_x=bbox[0], min_y=bbox[1], max_x=bbox[2], max_y=bbox[3], crs=crs)

    def to_tuple(self) -> BBoxTuple:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def intersects(self, other: "BoundingBox") -> bool:
        """Check if this bounding box intersects with another."""
        return self.min_x <= other.max_x and self.max_x >= other.min_x and self.min_y <= other.max_y and self.max_y >= other.min_y

    def to_crs(self, crs: str) -> "BoundingBox":
        """Transform the bounding box to a new CRS."""
        transformer = Transformer.from_crs(self.crs, crs, always_xy=True)
        xmin, ymin, xmax, ymax = transformer.transform_bounds(self.min_x, self.min_y, self.max_x, self.max_y)
        return BoundingBox(min_x=xmin, min_y=ymin, max_x=xmax, max_y=ymax, crs=crs)


# ----------------------------------------------------------------------
# GeoJSON / ArcGIS
# ----------------------------------------------------------------------

class GeoJSONSourceType(str, Enum):
    """How a GeoJSON payload was reached."""
    DIRECT = "direct"
    ARCGIS = "arcgis"
    ARCGIS_CONVERTED = "arcgis_converted"
    WFS_CONVERTED = "wfs_converted"
    WFS_INFERRED = "wfs_inferred"


class GeoJSONAnalysis(BaseModel):
    """Read-only summary of a GeoJSON payload."""
    type: str
    feature_count: int = 0
    geometry_types: FrozenSet[str] = Field(default_factory=frozenset)
    properties: FrozenSet[str] = Field(default_factory=frozenset)
    bounds: Optional[List[float]] = Field(None, description="[minx, miny, maxx, maxy] of all coordinates")
    crs: Optional[Any] = None

    model_config = ConfigDict(frozen=True)


class ArcGISLayer(BaseModel):
    """Entry of the ``layers``/``tables`` list of an ArcGIS service description."""
    id: int
    name: Optional[str] = None
    type: Optional[str] = None
    geometry_type: Optional[str] = Field(None, alias="geometryType")

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class ArcGISProbe(BaseModel):
    """Transient result of probing an ArcGIS REST endpoint."""
    service_info: Dict[str, Any]
    query_url: str
    selected_layer: ArcGISLayer
    base_url: str

    model_config = ConfigDict(frozen=True)


class GeoJSONCapabilities(BaseModel):
    """Capabilities of a GeoJSON endpoint."""
    format: str = "GeoJSON"
    analysis: GeoJSONAnalysis
    source_type: GeoJSONSourceType = GeoJSONSourceType.DIRECT
    arcgis_service_info: Optional[Dict[str, Any]] = None
    selected_layer: Optional[ArcGISLayer] = None
    available_layers: List[ArcGISLayer] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def feature_count(self) -> int:
        return self.analysis.feature_count

    @property
    def geometry_types(self) -> FrozenSet[str]:
        return self.analysis.geometry_types

    @property
    def properties(self) -> FrozenSet[str]:
        return self.analysis.properties

    @property
    def bounds(self) -> Optional[List[float]]:
        return self.analysis.bounds

    @property
    def crs(self) -> Optional[Any]:
        return self.analysis.crs


# ----------------------------------------------------------------------
# XYZ
# ----------------------------------------------------------------------

class TileSize(BaseModel):
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)

    model_config = ConfigDict(frozen=True)


class XYZCapabilities(BaseModel):
    """Capabilities inferred from a probed XYZ tile template."""
    format: str = Field(..., description="Content type of the sample tile")
    tile_size: Optional[TileSize] = None

    model_config = ConfigDict(frozen=True)


Capabilities = Union[
    WMSCapabilities,
    WMTSCapabilities,
    WFSCapabilities,
    GeoJSONCapabilities,
    XYZCapabilities,
]


class ServiceInfo(BaseModel):
    """Outcome of discovering a single URL."""
    service_url: str
    service_title: Optional[str] = None
    type: Optional[ServiceTypeEnum] = None
    capabilities: Optional[Capabilities] = None
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_resolution(self):
        """A record without an error must name the protocol it resolved to."""
        if not self.error and self.type is None:
            raise ValueError('ServiceInfo without error must carry a service type')
        return self

    @property
    def ok(self) -> bool:
        return not self.error

    @classmethod
    def failure(cls, service_url: str, error: str) -> "ServiceInfo":
        return cls(service_url=service_url, error=error)

    def raise_for_error(self) -> "ServiceInfo":
        """Raise ``NoMatchingProtocolError`` if no protocol could be resolved."""
        if self.error:
            raise NoMatchingProtocolError(f"{self.service_url}: {self.error}")
        return self


# ----------------------------------------------------------------------
# Content info probing
# ----------------------------------------------------------------------

class ContentInfoMethod(str, Enum):
    """Which request strategy produced a ``ContentInfo``."""
    RANGE = "range"
    RANGE_FALLBACK_LARGE = "range_fallback_large"
    RANGE_FALLBACK_SMALL = "range_fallback_small"
    HEAD = "head"
    GET_CANCELLED_LARGE = "get_cancelled_large"
    GET_SIZE_LIMITED = "get_size_limited"
    GET_COMPLETE = "get_complete"
    ALL_FAILED = "all_failed"


class ContentInfoStatus(str, Enum):
    SUCCESS = "success"
    INVALID = "invalid"
    UNKNOWN = "unknown"


class ContentInfo(BaseModel):
    """Content type and size of a URL, determined with as little transfer as possible."""
    url: str
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    method: ContentInfoMethod = ContentInfoMethod.ALL_FAILED
    status: ContentInfoStatus = ContentInfoStatus.UNKNOWN
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class MapServiceKind(str, Enum):
    OGC_SERVICE = "ogc_service"
    COG = "cog"
    JSON_SERVICE = "json_service"
    RASTER = "raster"
    UNKNOWN = "unknown"


class MapServiceInfo(BaseModel):
    content: ContentInfo
    kind: MapServiceKind = MapServiceKind.UNKNOWN
    is_safe_size: Optional[bool] = None

    model_config = ConfigDict(frozen=True)
