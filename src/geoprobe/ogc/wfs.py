"""
WFS (Web Feature Service) capabilities parsing and GeoJSON helpers.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Union

import xml.etree.ElementTree as ET

from ..errors import InvalidDocumentError
from ..urls import wfs_geojson_url
from .ows import (
    parse_keywords,
    parse_operations_metadata,
    parse_service_identification,
    parse_service_provider,
    parse_wgs84_bounding_box,
)
from .types import (
    FeatureType,
    FeatureTypeMetadataURL,
    FilterCapabilities,
    FilterFunction,
    FunctionArgument,
    ScalarCapabilities,
    SpatialCapabilities,
    TemporalCapabilities,
    WFSCapabilities,
)
from .xml import (
    child_text,
    children_text,
    first_child,
    first_descendant,
    get_attribute,
    iter_children,
    iter_descendants,
    local_name,
    parse_xml,
)

__all__ = [
    "WFSParser",
    "json_output_format",
    "guess_geometry_type",
    "feature_type_geojson_url",
]

logger = logging.getLogger(__name__)

DEFAULT_JSON_FORMAT = "application/json"
GEOMETRY_KEYWORDS = (
    "MultiPoint",
    "MultiLineString",
    "MultiPolygon",
    "Point",
    "LineString",
    "Polygon",
    "Geometry",
)


class WFSParser:
    """Parser for WFS GetCapabilities documents (2.0.0, tolerant of 1.1.0 naming)."""

    def parse_capabilities(self, content: Union[bytes, str]) -> WFSCapabilities:
        root = parse_xml(content)
        if local_name(root.tag) != "WFS_Capabilities":
            raise InvalidDocumentError(f"Not a WFS capabilities document: <{local_name(root.tag)}>")

        return WFSCapabilities(
            version=root.get("version"),
            service_identification=parse_service_identification(root),
            service_provider=parse_service_provider(root),
            operations_metadata=parse_operations_metadata(root),
            feature_type_list=self._parse_feature_type_list(root),
            filter_capabilities=self._parse_filter_capabilities(root),
        )

    # ------------------------------------------------------------------
    # Feature types
    # ------------------------------------------------------------------
    def _parse_feature_type_list(self, root: ET.Element) -> Optional[List[FeatureType]]:
        list_elem = first_descendant(root, "FeatureTypeList")
        if list_elem is None:
            return None
        return [self._parse_feature_type(ft) for ft in iter_children(list_elem, "FeatureType")]

    def _parse_feature_type(self, ft_elem: ET.Element) -> FeatureType:
        return FeatureType(
            name=child_text(ft_elem, "Name"),
            title=child_text(ft_elem, "Title"),
            abstract=child_text(ft_elem, "Abstract"),
            keywords=parse_keywords(ft_elem),
            default_crs=child_text(ft_elem, "DefaultCRS", "DefaultSRS"),
            other_crs=children_text(ft_elem, "OtherCRS", "OtherSRS"),
            wgs84_bounding_box=parse_wgs84_bounding_box(ft_elem),
            metadata_urls=[
                FeatureTypeMetadataURL(type=get_attribute(md, "type"), href=get_attribute(md, "href"))
                for md in iter_children(ft_elem, "MetadataURL")
            ],
            output_formats=children_text(first_child(ft_elem, "OutputFormats"), "Format"),
        )

    # ------------------------------------------------------------------
    # Filter capabilities
    # ------------------------------------------------------------------
    def _parse_filter_capabilities(self, root: ET.Element) -> Optional[FilterCapabilities]:
        filter_elem = first_descendant(root, "Filter_Capabilities")
        if filter_elem is None:
            return None

        return FilterCapabilities(
            conformance=self._parse_conformance(first_child(filter_elem, "Conformance")),
            spatial_capabilities=self._parse_spatial(first_child(filter_elem, "Spatial_Capabilities")),
            temporal_capabilities=self._parse_temporal(first_child(filter_elem, "Temporal_Capabilities")),
            scalar_capabilities=self._parse_scalar(first_child(filter_elem, "Scalar_Capabilities")),
            functions=self._parse_functions(first_child(filter_elem, "Functions")),
            comparison_operators=self._named(filter_elem, "ComparisonOperator") or None,
            resource_identifiers=self._parse_id_capabilities(first_child(filter_elem, "Id_Capabilities")),
        )

    def _named(self, element: Optional[ET.Element], tag: str) -> List[str]:
        if element is None:
            return []
        names = (get_attribute(node, "name") for node in iter_descendants(element, tag))
        return [name for name in names if name]

    def _parse_conformance(self, element: Optional[ET.Element]) -> Optional[Dict[str, bool]]:
        if element is None:
            return None
        result: Dict[str, bool] = {}
        for constraint in iter_children(element, "Constraint"):
            name = get_attribute(constraint, "name")
            if name:
                result[name] = (child_text(constraint, "DefaultValue") or "").upper() == "TRUE"
        return result

    def _parse_spatial(self, element: Optional[ET.Element]) -> Optional[SpatialCapabilities]:
        if element is None:
            return None
        return SpatialCapabilities(
            geometry_operands=self._named(element, "GeometryOperand"),
            spatial_operators=self._named(element, "SpatialOperator"),
        )

    def _parse_temporal(self, element: Optional[ET.Element]) -> Optional[TemporalCapabilities]:
        if element is None:
            return None
        return TemporalCapabilities(
            temporal_operands=self._named(element, "TemporalOperand"),
            temporal_operators=self._named(element, "TemporalOperator"),
        )

    def _parse_scalar(self, element: Optional[ET.Element]) -> Optional[ScalarCapabilities]:
        if element is None:
            return None
        return ScalarCapabilities(
            logical_operators=first_child(element, "LogicalOperators") is not None,
            comparison_operators=self._named(element, "ComparisonOperator"),
        )

    def _parse_functions(self, element: Optional[ET.Element]) -> Optional[List[FilterFunction]]:
        if element is None:
            return None
        return [
            FilterFunction(
                name=get_attribute(func, "name"),
                returns=child_text(func, "Returns"),
                arguments=[
                    FunctionArgument(name=get_attribute(arg, "name"), type=child_text(arg, "Type"))
                    for arg in iter_descendants(func, "Argument")
                ],
            )
            for func in iter_children(element, "Function")
        ]

    def _parse_id_capabilities(self, element: Optional[ET.Element]) -> Optional[List[str]]:
        if element is None:
            return None
        return self._named(element, "ResourceIdentifier")


def json_output_format(formats: Optional[Iterable[str]]) -> str:
    """
    Pick the output format to request GeoJSON with.

    A non-zipped ``geojson`` format wins, then any non-zipped ``json``
    format, then ``application/json``.
    """
    candidates = [fmt for fmt in (formats or []) if fmt]
    for fmt in candidates:
        lowered = fmt.lower()
        if "geojson" in lowered and "zip" not in lowered:
            return fmt
    for fmt in candidates:
        lowered = fmt.lower()
        if "json" in lowered and "zip" not in lowered:
            return fmt
    return DEFAULT_JSON_FORMAT


def guess_geometry_type(feature_type: FeatureType) -> str:
    """
    Best guess of a feature type's geometry.

    Checked in order: an explicit ``geometry_type``, a keyword mentioning
    a geometry name (in ``GEOMETRY_KEYWORDS`` order), then the name and
    title containing ``point``, ``line`` or ``polygon``/``area``.
    Falls back to ``"Geometry"``.
    """
    if feature_type.geometry_type:
        return feature_type.geometry_type

    keywords = [keyword.lower() for keyword in feature_type.keywords]
    for candidate in GEOMETRY_KEYWORDS:
        if any(candidate.lower() in keyword for keyword in keywords):
            return candidate

    name_title = f"{feature_type.name or ''} {feature_type.title or ''}".lower()
    if "point" in name_title:
        return "Point"
    if "line" in name_title:
        return "LineString"
    if "polygon" in name_title or "area" in name_title:
        return "Polygon"
    return "Geometry"


def feature_type_geojson_url(
    capabilities: WFSCapabilities,
    service_url: str,
    feature_type: FeatureType,
) -> Optional[str]:
    """GetFeature URL for ``feature_type`` using the best advertised JSON format."""
    if not feature_type.name:
        return None
    advertised = capabilities.operations_metadata.parameter_values("GetFeature", "outputFormat")
    output_format = json_output_format(advertised or feature_type.output_formats)
    return wfs_geojson_url(
        service_url,
        feature_type.name,
        version=capabilities.version or "2.0.0",
        output_format=output_format,
    )
