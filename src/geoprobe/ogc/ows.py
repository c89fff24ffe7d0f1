"""OWS common blocks shared by WMTS 1.0 and WFS 2.0 capabilities."""

from __future__ import annotations

from typing import Dict, List, Optional

import xml.etree.ElementTree as ET

from .types import (
    DCP,
    OWSAddress,
    OWSContactInfo,
    OWSPhone,
    OWSServiceContact,
    Operation,
    OperationsMetadata,
    RequestMethod,
    ServiceIdentification,
    ServiceProvider,
    WGS84BoundingBox,
)
from .xml import (
    child_text,
    first_child,
    first_descendant,
    get_attribute,
    get_corner,
    iter_children,
    iter_descendants,
    text_of,
    walk,
)


def parse_keywords(element: Optional[ET.Element]) -> List[str]:
    keywords_elem = first_child(element, "Keywords", "KeywordList")
    if keywords_elem is None:
        return []
    return [text_of(kw) or "" for kw in iter_children(keywords_elem, "Keyword")]


def parse_allowed_values(element: ET.Element) -> List[str]:
    allowed = first_descendant(element, "AllowedValues")
    if allowed is None:
        return []
    return [text_of(value) or "" for value in iter_descendants(allowed, "Value")]


def parse_wgs84_bounding_box(element: ET.Element) -> Optional[WGS84BoundingBox]:
    bbox_elem = first_child(element, "WGS84BoundingBox")
    if bbox_elem is None:
        return None
    return WGS84BoundingBox(
        lower_corner=get_corner(child_text(bbox_elem, "LowerCorner")),
        upper_corner=get_corner(child_text(bbox_elem, "UpperCorner")),
    )


def parse_service_identification(root: ET.Element) -> Optional[ServiceIdentification]:
    element = first_descendant(root, "ServiceIdentification")
    if element is None:
        return None
    fields = walk(
        element,
        {
            "Title": text_of,
            "Abstract": text_of,
            "ServiceType": text_of,
            "ServiceTypeVersion": text_of,
            "Fees": text_of,
            "AccessConstraints": text_of,
        },
    )
    return ServiceIdentification(
        title=fields.get("Title"),
        abstract=fields.get("Abstract"),
        keywords=parse_keywords(element),
        service_type=fields.get("ServiceType"),
        service_type_version=fields.get("ServiceTypeVersion"),
        fees=fields.get("Fees"),
        access_constraints=fields.get("AccessConstraints"),
    )


def parse_service_provider(root: ET.Element) -> Optional[ServiceProvider]:
    element = first_descendant(root, "ServiceProvider")
    if element is None:
        return None
    return ServiceProvider(
        provider_name=child_text(element, "ProviderName"),
        provider_site=get_attribute(first_child(element, "ProviderSite"), "href"),
        service_contact=_parse_service_contact(first_child(element, "ServiceContact")),
    )


def parse_operations_metadata(root: ET.Element) -> OperationsMetadata:
    element = first_descendant(root, "OperationsMetadata")
    operations: Dict[str, Operation] = {}
    if element is None:
        return OperationsMetadata()
    for op_elem in iter_children(element, "Operation"):
        name = get_attribute(op_elem, "name")
        if not name:
            continue
        operations[name] = Operation(
            name=name,
            dcp=_parse_dcp(op_elem),
            parameters=_named_allowed_values(op_elem, "Parameter"),
            constraints=_named_allowed_values(op_elem, "Constraint"),
        )
    return OperationsMetadata(operations=operations)


# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------
def _named_allowed_values(element: ET.Element, tag: str) -> Dict[str, List[str]]:
    result: Dict[str, List[str]] = {}
    for item in iter_children(element, tag):
        name = get_attribute(item, "name")
        if name:
            result[name] = parse_allowed_values(item)
    return result


def _parse_dcp(op_elem: ET.Element) -> Optional[DCP]:
    http_elem = first_descendant(op_elem, "HTTP")
    if http_elem is None:
        return None
    return DCP(
        get=_parse_request_method(first_child(http_elem, "Get")),
        post=_parse_request_method(first_child(http_elem, "Post")),
    )


def _parse_request_method(element: Optional[ET.Element]) -> Optional[RequestMethod]:
    if element is None:
        return None
    return RequestMethod(
        href=get_attribute(element, "href"),
        constraints=_named_allowed_values(element, "Constraint"),
    )


def _parse_service_contact(element: Optional[ET.Element]) -> Optional[OWSServiceContact]:
    if element is None:
        return None
    info_elem = first_child(element, "ContactInfo")
    contact_info = None
    if info_elem is not None:
        phone_elem = first_child(info_elem, "Phone")
        address_elem = first_child(info_elem, "Address")
        contact_info = OWSContactInfo(
            phone=OWSPhone(
                voice=child_text(phone_elem, "Voice"),
                facsimile=child_text(phone_elem, "Facsimile"),
            ) if phone_elem is not None else None,
            address=OWSAddress(
                delivery_point=child_text(address_elem, "DeliveryPoint"),
                city=child_text(address_elem, "City"),
                administrative_area=child_text(address_elem, "AdministrativeArea"),
                postal_code=child_text(address_elem, "PostalCode"),
                country=child_text(address_elem, "Country"),
                electronic_mail_address=child_text(address_elem, "ElectronicMailAddress"),
            ) if address_elem is not None else None,
            online_resource=get_attribute(first_child(info_elem, "OnlineResource"), "href"),
            hours_of_service=child_text(info_elem, "HoursOfService"),
            contact_instructions=child_text(info_elem, "ContactInstructions"),
        )
    return OWSServiceContact(
        individual_name=child_text(element, "IndividualName"),
        position_name=child_text(element, "PositionName"),
        contact_info=contact_info,
    )
