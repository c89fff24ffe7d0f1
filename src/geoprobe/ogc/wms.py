"""
WMS (Web Map Service) capabilities parsing.

Handles WMS 1.1.1 (``WMT_MS_Capabilities``) and 1.3.0
(``WMS_Capabilities``) documents. Layer properties that WMS declares as
inherited are resolved while walking the layer tree.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Union

import xml.etree.ElementTree as ET
from pyproj.exceptions import CRSError

from ..errors import InvalidDocumentError
from ..types import BoundingBox
from ..urls import query_pairs, unescape_braces, with_query
from .ows import parse_keywords
from .types import (
    Attribution,
    Dimension,
    LogoURL,
    MetadataURL,
    WMSBoundingBox,
    WMSBoundingBoxes,
    WMSCapabilities,
    WMSCapability,
    WMSContactAddress,
    WMSContactInformation,
    WMSLayer,
    WMSOperation,
    WMSService,
    WMSStyle,
)
from .xml import (
    child_text,
    first_child,
    first_descendant,
    get_attribute,
    get_float,
    get_int,
    iter_children,
    local_name,
    parse_xml,
    text_of,
)

logger = logging.getLogger(__name__)

WMS_ROOTS = ("WMS_Capabilities", "WMT_MS_Capabilities")
GEOGRAPHIC_CRS = ("EPSG:4326", "CRS:84")


class WMSParser:
    """Parser for WMS GetCapabilities documents."""

    def parse_capabilities(self, content: Union[bytes, str]) -> WMSCapabilities:
        root = parse_xml(content)
        if local_name(root.tag) not in WMS_ROOTS:
            raise InvalidDocumentError(f"Not a WMS capabilities document: <{local_name(root.tag)}>")

        return WMSCapabilities(
            version=root.get("version"),
            service=self._parse_service(root),
            capability=self._parse_capability(root),
        )

    # ------------------------------------------------------------------
    # Service block
    # ------------------------------------------------------------------
    def _parse_service(self, root: ET.Element) -> Optional[WMSService]:
        service_elem = first_child(root, "Service")
        if service_elem is None:
            return None

        return WMSService(
            name=child_text(service_elem, "Name"),
            title=child_text(service_elem, "Title"),
            abstract=child_text(service_elem, "Abstract"),
            keywords=parse_keywords(service_elem),
            online_resource=self._online_resource(service_elem),
            contact_information=self._parse_contact_information(service_elem),
            fees=child_text(service_elem, "Fees"),
            access_constraints=child_text(service_elem, "AccessConstraints"),
        )

    def _parse_contact_information(self, element: ET.Element) -> Optional[WMSContactInformation]:
        contact_elem = first_child(element, "ContactInformation")
        if contact_elem is None:
            return None

        primary = first_child(contact_elem, "ContactPersonPrimary")
        person_source = primary if primary is not None else contact_elem
        address_elem = first_child(contact_elem, "ContactAddress")
        address = None
        if address_elem is not None:
            address = WMSContactAddress(
                type=child_text(address_elem, "AddressType"),
                address=child_text(address_elem, "Address"),
                city=child_text(address_elem, "City"),
                state=child_text(address_elem, "StateOrProvince"),
                post_code=child_text(address_elem, "PostCode"),
                country=child_text(address_elem, "Country"),
            )

        return WMSContactInformation(
            contact_person=child_text(person_source, "ContactPerson"),
            contact_organization=child_text(person_source, "ContactOrganization"),
            contact_position=child_text(contact_elem, "ContactPosition"),
            contact_address=address,
            contact_voice_telephone=child_text(contact_elem, "ContactVoiceTelephone"),
            contact_email=child_text(contact_elem, "ContactElectronicMailAddress"),
        )

    # ------------------------------------------------------------------
    # Capability block
    # ------------------------------------------------------------------
    def _parse_capability(self, root: ET.Element) -> Optional[WMSCapability]:
        capability_elem = first_child(root, "Capability")
        if capability_elem is None:
            return None

        layers: List[WMSLayer] = []
        for layer_elem in iter_children(capability_elem, "Layer"):
            self._parse_layer(layer_elem, None, layers)

        return WMSCapability(request=self._parse_request(capability_elem), layers=layers)

    def _parse_request(self, capability_elem: ET.Element) -> Optional[Dict[str, WMSOperation]]:
        request_elem = first_child(capability_elem, "Request")
        if request_elem is None:
            return None

        operations: Dict[str, WMSOperation] = {}
        for op_elem in iter_children(request_elem):
            get_elem = first_descendant(first_child(op_elem, "DCPType"), "Get")
            operations[local_name(op_elem.tag)] = WMSOperation(
                formats=[text_of(fmt) or "" for fmt in iter_children(op_elem, "Format")],
                url=self._online_resource(get_elem) if get_elem is not None else None,
            )
        return operations

    def _parse_layer(
        self,
        layer_elem: ET.Element,
        parent: Optional[WMSLayer],
        layers: List[WMSLayer],
    ) -> None:
        local_crs: List[str] = []
        for crs_elem in iter_children(layer_elem, "CRS", "SRS"):
            local_crs.extend((text_of(crs_elem) or "").split())

        crs: List[str] = []
        for code in (parent.crs if parent else []) + local_crs:
            if code not in crs:
                crs.append(code)

        styles = (list(parent.styles) if parent else []) + self._parse_styles(layer_elem)

        max_scale = get_float(child_text(layer_elem, "MaxScaleDenominator"))
        min_scale = get_float(child_text(layer_elem, "MinScaleDenominator"))
        if max_scale is None and min_scale is None:
            hint = first_child(layer_elem, "ScaleHint")
            if hint is not None:
                hint_max = get_float(get_attribute(hint, "max"))
                hint_min = get_float(get_attribute(hint, "min"))
                if hint_max:
                    min_scale = 1 / hint_max
                max_scale = 1 / hint_min if hint_min else None
            elif parent is not None:
                max_scale = parent.max_scale_denominator
                min_scale = parent.min_scale_denominator

        layer = WMSLayer(
            name=child_text(layer_elem, "Name"),
            title=child_text(layer_elem, "Title"),
            abstract=child_text(layer_elem, "Abstract"),
            keywords=parse_keywords(layer_elem),
            crs=crs,
            bounding_box=self._parse_bounding_box(layer_elem) or (parent.bounding_box if parent else None),
            attribution=self._parse_attribution(layer_elem) or (parent.attribution if parent else None),
            styles=styles,
            metadata_urls=self._parse_metadata_urls(layer_elem) or (list(parent.metadata_urls) if parent else []),
            dimensions=self._parse_dimensions(layer_elem) or (list(parent.dimensions) if parent else []),
            max_scale_denominator=max_scale,
            min_scale_denominator=min_scale,
            queryable=get_attribute(layer_elem, "queryable") in ("1", "true"),
        )

        if layer.name:
            layers.append(layer)
        else:
            logger.debug("Skipping unnamed WMS layer '%s'", layer.title)

        for child in iter_children(layer_elem, "Layer"):
            self._parse_layer(child, layer, layers)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _online_resource(self, element: Optional[ET.Element]) -> Optional[str]:
        return get_attribute(first_child(element, "OnlineResource"), "href")

    def _parse_bounding_box(self, layer_elem: ET.Element) -> Optional[WMSBoundingBoxes]:
        boxes = [
            WMSBoundingBox(
                crs=get_attribute(bbox, "CRS") or get_attribute(bbox, "SRS") or "",
                minx=get_float(get_attribute(bbox, "minx")) or 0.0,
                miny=get_float(get_attribute(bbox, "miny")) or 0.0,
                maxx=get_float(get_attribute(bbox, "maxx")) or 0.0,
                maxy=get_float(get_attribute(bbox, "maxy")) or 0.0,
            )
            for bbox in iter_children(layer_elem, "BoundingBox")
        ]

        geographic = None
        geo_elem = first_child(layer_elem, "EX_GeographicBoundingBox")
        if geo_elem is not None:
            geographic = WMSBoundingBox(
                crs="EPSG:4326",
                minx=get_float(child_text(geo_elem, "westBoundLongitude")) or 0.0,
                miny=get_float(child_text(geo_elem, "southBoundLatitude")) or 0.0,
                maxx=get_float(child_text(geo_elem, "eastBoundLongitude")) or 0.0,
                maxy=get_float(child_text(geo_elem, "northBoundLatitude")) or 0.0,
            )
        else:
            latlon_elem = first_child(layer_elem, "LatLonBoundingBox")
            if latlon_elem is not None:
                geographic = WMSBoundingBox(
                    crs="EPSG:4326",
                    minx=get_float(get_attribute(latlon_elem, "minx")) or 0.0,
                    miny=get_float(get_attribute(latlon_elem, "miny")) or 0.0,
                    maxx=get_float(get_attribute(latlon_elem, "maxx")) or 0.0,
                    maxy=get_float(get_attribute(latlon_elem, "maxy")) or 0.0,
                )

        if not boxes and geographic is None:
            return None
        return WMSBoundingBoxes(bounding_boxes=boxes, geographic=geographic)

    def _parse_styles(self, layer_elem: ET.Element) -> List[WMSStyle]:
        return [
            WMSStyle(
                name=child_text(style_elem, "Name"),
                title=child_text(style_elem, "Title"),
                abstract=child_text(style_elem, "Abstract"),
                legend_url=self._legend_url(first_child(style_elem, "LegendURL")),
            )
            for style_elem in iter_children(layer_elem, "Style")
        ]

    def _legend_url(self, legend_elem: Optional[ET.Element]) -> Optional[str]:
        if legend_elem is None:
            return None
        href = self._online_resource(legend_elem)
        if not href:
            return None

        extra = []
        width = get_int(get_attribute(legend_elem, "width"))
        height = get_int(get_attribute(legend_elem, "height"))
        fmt = child_text(legend_elem, "Format")
        if width and width > 0:
            extra.append(("width", str(width)))
        if height and height > 0:
            extra.append(("height", str(height)))
        if fmt:
            extra.append(("format", fmt))
        if not extra:
            return href

        replaced = {key for key, _ in extra}
        pairs = [(key, value) for key, value in query_pairs(href) if key not in replaced]
        return with_query(href, pairs + extra)

    def _parse_attribution(self, layer_elem: ET.Element) -> Optional[Attribution]:
        attribution_elem = first_child(layer_elem, "Attribution")
        if attribution_elem is None:
            return None

        logo = None
        logo_elem = first_child(attribution_elem, "LogoURL")
        if logo_elem is not None:
            logo = LogoURL(
                width=get_int(get_attribute(logo_elem, "width")) or 0,
                height=get_int(get_attribute(logo_elem, "height")) or 0,
                format=child_text(logo_elem, "Format"),
                online_resource=self._online_resource(logo_elem),
            )

        return Attribution(
            title=child_text(attribution_elem, "Title"),
            online_resource=self._online_resource(attribution_elem),
            logo_url=logo,
        )

    def _parse_metadata_urls(self, layer_elem: ET.Element) -> List[MetadataURL]:
        return [
            MetadataURL(
                type=get_attribute(md_elem, "type"),
                format=child_text(md_elem, "Format"),
                online_resource=self._online_resource(md_elem),
            )
            for md_elem in iter_children(layer_elem, "MetadataURL")
        ]

    def _parse_dimensions(self, layer_elem: ET.Element) -> List[Dimension]:
        return [
            Dimension(
                name=get_attribute(dim_elem, "name"),
                units=get_attribute(dim_elem, "units"),
                unit_symbol=get_attribute(dim_elem, "unitSymbol"),
                default=get_attribute(dim_elem, "default"),
                multiple_values=get_attribute(dim_elem, "multipleValues") == "1",
                nearest_value=get_attribute(dim_elem, "nearestValue") == "1",
                current=get_attribute(dim_elem, "current") == "1",
                value=text_of(dim_elem),
            )
            for dim_elem in iter_children(layer_elem, "Dimension", "Extent")
        ]


def layer_wgs84_bbox(layer: WMSLayer) -> Optional[BoundingBox]:
    """
    Geographic extent of a layer.

    Uses the declared geographic box, then an EPSG:4326/CRS:84 box, then
    reprojects the first other box with pyproj.
    """
    boxes = layer.bounding_box
    if boxes is None:
        return None
    if boxes.geographic is not None:
        geo = boxes.geographic
        return BoundingBox(min_x=geo.minx, min_y=geo.miny, max_x=geo.maxx, max_y=geo.maxy)

    for box in boxes.bounding_boxes:
        if box.crs.upper() in GEOGRAPHIC_CRS:
            return BoundingBox(min_x=box.minx, min_y=box.miny, max_x=box.maxx, max_y=box.maxy)

    for box in boxes.bounding_boxes:
        if not box.crs:
            continue
        try:
            projected = BoundingBox(min_x=box.minx, min_y=box.miny, max_x=box.maxx, max_y=box.maxy, crs=box.crs)
            return projected.to_crs("EPSG:4326")
        except (CRSError, ValueError) as exc:
            logger.debug("Cannot reproject WMS bbox in %s: %s", box.crs, exc)
    return None


def wms_getmap_template(
    capabilities: WMSCapabilities,
    service_url: str,
    layer_name: str,
    style: str = "",
) -> str:
    """GetMap tile template in EPSG:3857 with a ``{bbox-epsg-3857}`` placeholder."""
    base_url = service_url
    request = capabilities.capability.request if capabilities.capability else None
    if request and request.get("GetMap") and request["GetMap"].url:
        base_url = request["GetMap"].url

    keep = [
        (key, value)
        for key, value in query_pairs(base_url)
        if key.lower() not in ("service", "request", "version", "layers", "styles", "srs", "crs",
                               "bbox", "width", "height", "format", "transparent")
    ]
    params = keep + [
        ("service", "WMS"),
        ("version", "1.1.1"),
        ("request", "GetMap"),
        ("layers", layer_name),
        ("SRS", "EPSG:3857"),
        ("transparent", "true"),
        ("format", "image/png"),
        ("BBOX", "{bbox-epsg-3857}"),
        ("width", "256"),
        ("height", "256"),
        ("styles", style),
    ]
    return unescape_braces(with_query(base_url, params))
