"""
Record models for parsed OGC capabilities documents.

Every model is frozen: parsers build the complete tree in one pass and
nothing downstream mutates it.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


# ----------------------------------------------------------------------
# OWS common (WMTS 1.0 and WFS 2.0)
# ----------------------------------------------------------------------

class OWSPhone(_Record):
    voice: Optional[str] = None
    facsimile: Optional[str] = None


class OWSAddress(_Record):
    delivery_point: Optional[str] = None
    city: Optional[str] = None
    administrative_area: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    electronic_mail_address: Optional[str] = None


class OWSContactInfo(_Record):
    phone: Optional[OWSPhone] = None
    address: Optional[OWSAddress] = None
    online_resource: Optional[str] = None
    hours_of_service: Optional[str] = None
    contact_instructions: Optional[str] = None


class OWSServiceContact(_Record):
    individual_name: Optional[str] = None
    position_name: Optional[str] = None
    contact_info: Optional[OWSContactInfo] = None


class ServiceIdentification(_Record):
    """``ows:ServiceIdentification`` block."""

    title: Optional[str] = None
    abstract: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    service_type: Optional[str] = None
    service_type_version: Optional[str] = None
    fees: Optional[str] = None
    access_constraints: Optional[str] = None


class ServiceProvider(_Record):
    """``ows:ServiceProvider`` block."""

    provider_name: Optional[str] = None
    provider_site: Optional[str] = None
    service_contact: Optional[OWSServiceContact] = None


class RequestMethod(_Record):
    href: Optional[str] = None
    constraints: Dict[str, List[str]] = Field(default_factory=dict)


class DCP(_Record):
    get: Optional[RequestMethod] = None
    post: Optional[RequestMethod] = None


class Operation(_Record):
    """A single ``ows:Operation`` with its allowed parameter and constraint values."""

    name: str
    dcp: Optional[DCP] = None
    parameters: Dict[str, List[str]] = Field(default_factory=dict)
    constraints: Dict[str, List[str]] = Field(default_factory=dict)


class OperationsMetadata(_Record):
    """``ows:OperationsMetadata`` keyed by operation name."""

    operations: Dict[str, Operation] = Field(default_factory=dict)

    def get(self, name: str) -> Optional[Operation]:
        for key, operation in self.operations.items():
            if key.lower() == name.lower():
                return operation
        return None

    def parameter_values(self, operation: str, parameter: str) -> List[str]:
        """Allowed values of ``parameter`` on ``operation`` (case-insensitive lookup)."""

        op = self.get(operation)
        if op is None:
            return []
        for key, values in op.parameters.items():
            if key.lower() == parameter.lower():
                return list(values)
        return []


class WGS84BoundingBox(_Record):
    lower_corner: Optional[List[float]] = None
    upper_corner: Optional[List[float]] = None


# ----------------------------------------------------------------------
# WMS 1.1.1 / 1.3.0
# ----------------------------------------------------------------------

class WMSContactAddress(_Record):
    type: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    post_code: Optional[str] = None
    country: Optional[str] = None


class WMSContactInformation(_Record):
    contact_person: Optional[str] = None
    contact_organization: Optional[str] = None
    contact_position: Optional[str] = None
    contact_address: Optional[WMSContactAddress] = None
    contact_voice_telephone: Optional[str] = None
    contact_email: Optional[str] = None


class WMSService(_Record):
    name: Optional[str] = None
    title: Optional[str] = None
    abstract: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    online_resource: Optional[str] = None
    contact_information: Optional[WMSContactInformation] = None
    fees: Optional[str] = None
    access_constraints: Optional[str] = None


class WMSOperation(_Record):
    formats: List[str] = Field(default_factory=list)
    url: Optional[str] = None


class WMSBoundingBox(_Record):
    crs: str
    minx: float
    miny: float
    maxx: float
    maxy: float


class WMSBoundingBoxes(_Record):
    bounding_boxes: List[WMSBoundingBox] = Field(default_factory=list)
    geographic: Optional[WMSBoundingBox] = None


class LogoURL(_Record):
    width: int = 0
    height: int = 0
    format: Optional[str] = None
    online_resource: Optional[str] = None


class Attribution(_Record):
    title: Optional[str] = None
    online_resource: Optional[str] = None
    logo_url: Optional[LogoURL] = None


class WMSStyle(_Record):
    name: Optional[str] = None
    title: Optional[str] = None
    abstract: Optional[str] = None
    legend_url: Optional[str] = None


class MetadataURL(_Record):
    type: Optional[str] = None
    format: Optional[str] = None
    online_resource: Optional[str] = None


class Dimension(_Record):
    name: Optional[str] = None
    units: Optional[str] = None
    unit_symbol: Optional[str] = None
    default: Optional[str] = None
    multiple_values: bool = False
    nearest_value: bool = False
    current: bool = False
    value: Optional[str] = None


class WMSLayer(_Record):
    """A named WMS layer with inherited properties already resolved."""

    name: Optional[str] = None
    title: Optional[str] = None
    abstract: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    crs: List[str] = Field(default_factory=list)
    bounding_box: Optional[WMSBoundingBoxes] = None
    attribution: Optional[Attribution] = None
    styles: List[WMSStyle] = Field(default_factory=list)
    metadata_urls: List[MetadataURL] = Field(default_factory=list)
    dimensions: List[Dimension] = Field(default_factory=list)
    max_scale_denominator: Optional[float] = None
    min_scale_denominator: Optional[float] = None
    queryable: bool = False


class WMSCapability(_Record):
    request: Optional[Dict[str, WMSOperation]] = None
    layers: List[WMSLayer] = Field(default_factory=list)


class WMSCapabilities(_Record):
    version: Optional[str] = None
    service: Optional[WMSService] = None
    capability: Optional[WMSCapability] = None


# ----------------------------------------------------------------------
# WMTS 1.0.0
# ----------------------------------------------------------------------

class WMTSLegendURL(_Record):
    format: Optional[str] = None
    href: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class WMTSStyle(_Record):
    identifier: Optional[str] = None
    is_default: bool = False
    legend_url: Optional[WMTSLegendURL] = None


class TileMatrixLimits(_Record):
    tile_matrix: Optional[str] = None
    min_tile_row: Optional[int] = None
    max_tile_row: Optional[int] = None
    min_tile_col: Optional[int] = None
    max_tile_col: Optional[int] = None


class TileMatrixSetLink(_Record):
    tile_matrix_set: Optional[str] = None
    tile_matrix_set_limits: Optional[List[TileMatrixLimits]] = None


class ResourceURL(_Record):
    format: Optional[str] = None
    resource_type: Optional[str] = None
    template: Optional[str] = None


class WMTSDimension(_Record):
    identifier: Optional[str] = None
    default: Optional[str] = None
    values: List[str] = Field(default_factory=list)


class WMTSLayer(_Record):
    title: Optional[str] = None
    abstract: Optional[str] = None
    identifier: Optional[str] = None
    bounds: Optional[WGS84BoundingBox] = None
    styles: List[WMTSStyle] = Field(default_factory=list)
    formats: List[str] = Field(default_factory=list)
    tile_matrix_set_links: List[TileMatrixSetLink] = Field(default_factory=list)
    dimensions: List[WMTSDimension] = Field(default_factory=list)
    resource_urls: List[ResourceURL] = Field(default_factory=list)


class TileMatrix(_Record):
    identifier: Optional[str] = None
    scale_denominator: Optional[float] = None
    top_left_corner: List[float] = Field(default_factory=list)
    tile_width: Optional[int] = None
    tile_height: Optional[int] = None
    matrix_width: Optional[int] = None
    matrix_height: Optional[int] = None


class TileMatrixSet(_Record):
    identifier: str
    supported_crs: Optional[str] = None
    tile_matrices: List[TileMatrix] = Field(default_factory=list)


class WMTSContents(_Record):
    layers: List[WMTSLayer] = Field(default_factory=list)
    tile_matrix_sets: Dict[str, TileMatrixSet] = Field(default_factory=dict)


class WMTSCapabilities(_Record):
    version: Optional[str] = None
    service_identification: Optional[ServiceIdentification] = None
    service_provider: Optional[ServiceProvider] = None
    operations_metadata: OperationsMetadata = Field(default_factory=OperationsMetadata)
    contents: Optional[WMTSContents] = None


# ----------------------------------------------------------------------
# WFS 2.0.0
# ----------------------------------------------------------------------

class FeatureTypeMetadataURL(_Record):
    type: Optional[str] = None
    href: Optional[str] = None


class FeatureType(_Record):
    name: Optional[str] = None
    title: Optional[str] = None
    abstract: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    default_crs: Optional[str] = None
    other_crs: List[str] = Field(default_factory=list)
    wgs84_bounding_box: Optional[WGS84BoundingBox] = None
    metadata_urls: List[FeatureTypeMetadataURL] = Field(default_factory=list)
    output_formats: List[str] = Field(default_factory=list)
    geometry_type: Optional[str] = Field(
        None, description="Geometry type when the document or a caller states it explicitly"
    )


class FunctionArgument(_Record):
    name: Optional[str] = None
    type: Optional[str] = None


class FilterFunction(_Record):
    name: Optional[str] = None
    returns: Optional[str] = None
    arguments: List[FunctionArgument] = Field(default_factory=list)


class SpatialCapabilities(_Record):
    geometry_operands: List[str] = Field(default_factory=list)
    spatial_operators: List[str] = Field(default_factory=list)


class TemporalCapabilities(_Record):
    temporal_operands: List[str] = Field(default_factory=list)
    temporal_operators: List[str] = Field(default_factory=list)


class ScalarCapabilities(_Record):
    logical_operators: bool = False
    comparison_operators: List[str] = Field(default_factory=list)


class FilterCapabilities(_Record):
    conformance: Optional[Dict[str, bool]] = None
    spatial_capabilities: Optional[SpatialCapabilities] = None
    temporal_capabilities: Optional[TemporalCapabilities] = None
    scalar_capabilities: Optional[ScalarCapabilities] = None
    functions: Optional[List[FilterFunction]] = None
    comparison_operators: Optional[List[str]] = None
    resource_identifiers: Optional[List[str]] = None


class WFSCapabilities(_Record):
    version: Optional[str] = None
    service_identification: Optional[ServiceIdentification] = None
    service_provider: Optional[ServiceProvider] = None
    operations_metadata: OperationsMetadata = Field(default_factory=OperationsMetadata)
    feature_type_list: Optional[List[FeatureType]] = None
    filter_capabilities: Optional[FilterCapabilities] = None
