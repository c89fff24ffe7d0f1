"""
Namespace-agnostic XML traversal shared by the capabilities parsers.

Capabilities documents in the wild mix default namespaces, prefixed
namespaces and no namespace at all, so every lookup here matches on the
element's local name only.
"""

from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

import xml.etree.ElementTree as ET

from ..errors import InvalidDocumentError

Extractor = Callable[[ET.Element], Any]


def local_name(tag: Any) -> str:
    """``{http://ns}Layer`` -> ``Layer``."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def parse_xml(content: Union[bytes, str]) -> ET.Element:
    """Parse a document and return its root element."""
    try:
        return ET.fromstring(content)
    except ET.ParseError as exc:
        raise InvalidDocumentError(f"Invalid XML content: {exc}", cause=exc) from exc


def iter_children(element: ET.Element, *names: str) -> Iterator[ET.Element]:
    """Direct children whose local name is one of ``names`` (all children if none given)."""
    for child in element:
        if not names or local_name(child.tag) in names:
            yield child


def first_child(element: Optional[ET.Element], *names: str) -> Optional[ET.Element]:
    if element is None:
        return None
    return next(iter_children(element, *names), None)


def iter_descendants(element: ET.Element, *names: str) -> Iterator[ET.Element]:
    """Descendants (excluding ``element`` itself) in document order."""
    for node in element.iter():
        if node is element:
            continue
        if local_name(node.tag) in names:
            yield node


def first_descendant(element: Optional[ET.Element], *names: str) -> Optional[ET.Element]:
    if element is None:
        return None
    return next(iter_descendants(element, *names), None)


def text_of(element: Optional[ET.Element]) -> Optional[str]:
    """Full text content of an element, stripped, or None when empty."""
    if element is None:
        return None
    text = "".join(element.itertext()).strip()
    return text or None


def child_text(element: Optional[ET.Element], *names: str) -> Optional[str]:
    return text_of(first_child(element, *names))


def children_text(element: Optional[ET.Element], *names: str) -> List[str]:
    if element is None:
        return []
    values = (text_of(child) for child in iter_children(element, *names))
    return [value for value in values if value]


def get_attribute(element: Optional[ET.Element], name: str) -> Optional[str]:
    """Attribute lookup by local name, so ``xlink:href`` matches ``href``."""
    if element is None:
        return None
    if name in element.attrib:
        return element.attrib[name]
    for key, value in element.attrib.items():
        if local_name(key) == name:
            return value
    return None


def get_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value.strip())
    except ValueError:
        return None


def get_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        number = get_float(value)
        return int(number) if number is not None else None


def get_corner(value: Optional[str]) -> Optional[List[float]]:
    """Whitespace separated coordinate pair, e.g. ``-180 -90``."""
    if not value:
        return None
    numbers = [get_float(part) for part in value.split()]
    if any(number is None for number in numbers):
        return None
    return [number for number in numbers if number is not None]


def walk(element: Optional[ET.Element], schema: Mapping[str, Extractor]) -> Dict[str, Any]:
    """
    Apply ``schema`` to the direct children of ``element``.

    ``schema`` maps an expected child local name to an extractor. Each
    extractor runs on the first child with that name; names missing from
    the document are absent from the returned mapping.
    """
    found: Dict[str, Any] = {}
    if element is None:
        return found
    for child in element:
        name = local_name(child.tag)
        if name in schema and name not in found:
            found[name] = schema[name](child)
    return found

