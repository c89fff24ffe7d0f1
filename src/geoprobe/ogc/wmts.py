"""
WMTS (Web Map Tile Service) capabilities parsing and tile URL construction.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Optional, Union

import xml.etree.ElementTree as ET

from ..errors import InvalidDocumentError
from ..urls import query_pairs, unescape_braces, with_query
from .ows import (
    parse_operations_metadata,
    parse_service_identification,
    parse_service_provider,
    parse_wgs84_bounding_box,
)
from .types import (
    ResourceURL,
    TileMatrix,
    TileMatrixLimits,
    TileMatrixSet,
    TileMatrixSetLink,
    WMTSCapabilities,
    WMTSContents,
    WMTSDimension,
    WMTSLayer,
    WMTSLegendURL,
    WMTSStyle,
)
from .xml import (
    child_text,
    children_text,
    first_child,
    first_descendant,
    get_attribute,
    get_corner,
    get_float,
    get_int,
    iter_children,
    local_name,
    parse_xml,
)

__all__ = [
    "WMTSParser",
    "is_web_mercator",
    "web_mercator_tile_matrix_set",
    "wmts_tile_url",
]

logger = logging.getLogger(__name__)

WEB_MERCATOR_CODES = ("epsg:3857", "epsg:900913")
_WEB_MERCATOR_URN = re.compile(
    r"^urn:ogc:def:crs:epsg:[\d.]*:(3857|900913)$", re.IGNORECASE
)


class WMTSParser:
    """Parser for WMTS 1.0.0 GetCapabilities documents."""

    def parse_capabilities(self, content: Union[bytes, str]) -> WMTSCapabilities:
        root = parse_xml(content)
        if local_name(root.tag) != "Capabilities":
            raise InvalidDocumentError(f"Not a WMTS capabilities document: <{local_name(root.tag)}>")

        return WMTSCapabilities(
            version=root.get("version"),
            service_identification=parse_service_identification(root),
            service_provider=parse_service_provider(root),
            operations_metadata=parse_operations_metadata(root),
            contents=self._parse_contents(first_descendant(root, "Contents")),
        )

    def _parse_contents(self, contents_elem: Optional[ET.Element]) -> Optional[WMTSContents]:
        if contents_elem is None:
            return None

        layers = [self._parse_layer(layer_elem) for layer_elem in iter_children(contents_elem, "Layer")]
        tile_matrix_sets: Dict[str, TileMatrixSet] = {}
        for tms_elem in iter_children(contents_elem, "TileMatrixSet"):
            identifier = child_text(tms_elem, "Identifier")
            if not identifier:
                logger.debug("Skipping TileMatrixSet without identifier")
                continue
            tile_matrix_sets[identifier] = TileMatrixSet(
                identifier=identifier,
                supported_crs=child_text(tms_elem, "SupportedCRS"),
                tile_matrices=[self._parse_tile_matrix(tm) for tm in iter_children(tms_elem, "TileMatrix")],
            )

        return WMTSContents(layers=layers, tile_matrix_sets=tile_matrix_sets)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _parse_layer(self, layer_elem: ET.Element) -> WMTSLayer:
        return WMTSLayer(
            title=child_text(layer_elem, "Title"),
            abstract=child_text(layer_elem, "Abstract"),
            identifier=child_text(layer_elem, "Identifier"),
            bounds=parse_wgs84_bounding_box(layer_elem),
            styles=[self._parse_style(style) for style in iter_children(layer_elem, "Style")],
            formats=children_text(layer_elem, "Format"),
            tile_matrix_set_links=[
                self._parse_tile_matrix_set_link(link)
                for link in iter_children(layer_elem, "TileMatrixSetLink")
            ],
            dimensions=[
                WMTSDimension(
                    identifier=child_text(dim, "Identifier"),
                    default=child_text(dim, "Default"),
                    values=children_text(dim, "Value"),
                )
                for dim in iter_children(layer_elem, "Dimension")
            ],
            resource_urls=[
                ResourceURL(
                    format=get_attribute(res, "format"),
                    resource_type=get_attribute(res, "resourceType"),
                    template=get_attribute(res, "template"),
                )
                for res in iter_children(layer_elem, "ResourceURL")
            ],
        )

    def _parse_style(self, style_elem: ET.Element) -> WMTSStyle:
        legend_elem = first_child(style_elem, "LegendURL")
        legend = None
        if legend_elem is not None:
            legend = WMTSLegendURL(
                format=get_attribute(legend_elem, "format"),
                href=get_attribute(legend_elem, "href"),
                width=get_int(get_attribute(legend_elem, "width")),
                height=get_int(get_attribute(legend_elem, "height")),
            )
        return WMTSStyle(
            identifier=child_text(style_elem, "Identifier"),
            is_default=get_attribute(style_elem, "isDefault") == "true",
            legend_url=legend,
        )

    def _parse_tile_matrix_set_link(self, link_elem: ET.Element) -> TileMatrixSetLink:
        limits_elem = first_child(link_elem, "TileMatrixSetLimits")
        limits = None
        if limits_elem is not None:
            limits = [
                TileMatrixLimits(
                    tile_matrix=child_text(limit, "TileMatrix"),
                    min_tile_row=get_int(child_text(limit, "MinTileRow")),
                    max_tile_row=get_int(child_text(limit, "MaxTileRow")),
                    min_tile_col=get_int(child_text(limit, "MinTileCol")),
                    max_tile_col=get_int(child_text(limit, "MaxTileCol")),
                )
                for limit in iter_children(limits_elem, "TileMatrixLimits")
            ]
        return TileMatrixSetLink(
            tile_matrix_set=child_text(link_elem, "TileMatrixSet"),
            tile_matrix_set_limits=limits,
        )

    def _parse_tile_matrix(self, tm_elem: ET.Element) -> TileMatrix:
        return TileMatrix(
            identifier=child_text(tm_elem, "Identifier"),
            scale_denominator=get_float(child_text(tm_elem, "ScaleDenominator")),
            top_left_corner=get_corner(child_text(tm_elem, "TopLeftCorner")) or [],
            tile_width=get_int(child_text(tm_elem, "TileWidth")),
            tile_height=get_int(child_text(tm_elem, "TileHeight")),
            matrix_width=get_int(child_text(tm_elem, "MatrixWidth")),
            matrix_height=get_int(child_text(tm_elem, "MatrixHeight")),
        )


def is_web_mercator(crs: Optional[str]) -> bool:
    """True for EPSG:3857, EPSG:900913 and their ``urn:ogc:def:crs`` spellings."""
    if not crs:
        return False
    code = crs.strip().lower()
    return code in WEB_MERCATOR_CODES or bool(_WEB_MERCATOR_URN.match(code))


def web_mercator_tile_matrix_set(
    capabilities: WMTSCapabilities,
    layer: WMTSLayer,
) -> Optional[TileMatrixSet]:
    """First tile matrix set linked from ``layer`` that is in Web Mercator."""
    if capabilities.contents is None:
        return None
    matrix_sets = capabilities.contents.tile_matrix_sets
    for link in layer.tile_matrix_set_links:
        tms = matrix_sets.get(link.tile_matrix_set or "")
        if tms is not None and is_web_mercator(tms.supported_crs):
            return tms
    return None


def wmts_tile_url(
    capabilities: WMTSCapabilities,
    service_url: str,
    layer: WMTSLayer,
    tile_matrix_set: Optional[TileMatrixSet] = None,
) -> Optional[str]:
    """
    Concrete ``{z}/{x}/{y}`` tile template for a WMTS layer.

    An explicit ``ResourceURL`` of type ``tile`` wins; otherwise a KVP
    GetTile template is synthesized. Returns None when the layer has no
    Web Mercator tile matrix set.
    """
    tms = tile_matrix_set or web_mercator_tile_matrix_set(capabilities, layer)
    if tms is None:
        logger.debug("WMTS layer '%s' has no Web Mercator tile matrix set", layer.identifier)
        return None

    for resource in layer.resource_urls:
        if resource.resource_type == "tile" and resource.template:
            return (
                resource.template.replace("{TileMatrixSet}", tms.identifier)
                .replace("{TileMatrix}", "{z}")
                .replace("{TileRow}", "{y}")
                .replace("{TileCol}", "{x}")
            )

    style = layer.styles[0].identifier if layer.styles and layer.styles[0].identifier else "default"
    params = [(key, value) for key, value in query_pairs(service_url)]
    params += [
        ("tileMatrixSet", tms.identifier),
        ("TileMatrix", "{z}"),
        ("TileCol", "{x}"),
        ("TileRow", "{y}"),
        ("Service", "WMTS"),
        ("Request", "GetTile"),
        ("format", layer.formats[0] if layer.formats else "image/png"),
        ("Layer", layer.identifier or ""),
        ("Version", capabilities.version or "1.0.0"),
        ("Style", style),
    ]
    return unescape_braces(with_query(service_url, params))

