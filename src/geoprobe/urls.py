"""
URL normalization and protocol-specific URL builders.

Everything in this module is pure: no network access, no shared state.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import parse_qsl, quote, unquote, urlencode, urlsplit, urlunsplit

from .errors import InvalidURLError

__all__ = [
    "normalize_url",
    "query_pairs",
    "with_query",
    "wms_capabilities_url",
    "wfs_capabilities_url",
    "clean_capabilities_url",
    "infer_wmts_base_url",
    "wmts_capabilities_url",
    "wmts_capabilities_candidates",
    "wmts_base_url_from_capabilities_url",
    "wfs_geojson_url",
    "convert_wfs_to_geojson_url",
    "is_getfeature_json_url",
    "is_arcgis_service_url",
    "arcgis_base_url",
    "arcgis_query_url",
    "convert_arcgis_to_geojson_url",
    "normalize_to_xyz_format",
    "xyz_tile_url",
    "unescape_braces",
]

QueryPairs = List[Tuple[str, str]]

# ``scheme:`` not followed by a digit, so ``host:8080/path`` is not read as a scheme
_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*):(?!\d)")

WMS_CAPABILITIES_PARAMS = frozenset(
    ["service", "request", "version", "bbox", "width", "height", "srs", "crs",
     "format", "layers", "styles", "transparent"]
)
WFS_CAPABILITIES_PARAMS = frozenset(
    ["service", "request", "version", "typename", "typenames", "featureid", "bbox",
     "filter", "propertyname", "sortby", "startindex", "count", "outputformat",
     "resulttype", "storedquery_id"]
)
CAPABILITIES_PARAMS = frozenset(["service", "request", "version"])
WMTS_KVP_PARAMS = frozenset(
    ["service", "request", "version", "tilerow", "tilecol", "tilematrix",
     "tilematrixset", "style", "format", "layer"]
)
WFS_GEOJSON_PARAMS = frozenset(
    ["service", "request", "version", "typename", "typenames", "outputformat",
     "srsname", "crs", "bbox", "maxfeatures", "count"]
)

_ARCGIS_RE = re.compile(r"/rest/services/.*/(FeatureServer|MapServer)", re.IGNORECASE)
_ARCGIS_LAYER_RE = re.compile(r"/(FeatureServer|MapServer)/(\d+)", re.IGNORECASE)
_TRAILING_LAYER_RE = re.compile(r"/\d+/?$")
_XYZ_SUFFIX_RE = re.compile(r"/(\d+)/(\d+)/(\d+)(\.\w+)?$")
_NUMERIC = re.compile(r"^\d+$")
_NUMERIC_WITH_EXT = re.compile(r"^\d+\.[A-Za-z0-9]+$")
_TILE_PLACEHOLDERS = ("{x}", "{y}", "{z}", "{TileMatrix}", "{TileRow}", "{TileCol}")
_PATH_SAFE = "!$&'()*+,;=:@~"


# ----------------------------------------------------------------------
# Normalizer
# ----------------------------------------------------------------------

def normalize_url(raw: str, *, force_https: bool = True) -> str:
    """
    Repair and canonicalize a user supplied service URL.

    A missing scheme is replaced by ``https://``; any scheme other than
    http(s) is rejected. With ``force_https`` the scheme is always
    rewritten to ``https``.

    Raises:
        InvalidURLError: the string cannot be turned into an http(s) URL
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidURLError("Empty URL")

    candidate = raw.strip()
    if not _SCHEME_RE.match(candidate) and not candidate.lower().startswith(("http://", "https://")):
        candidate = "https://" + candidate.lstrip("/")

    try:
        parts = urlsplit(candidate)
        parts.port  # noqa: B018 - raises ValueError on a malformed port
    except ValueError as exc:
        raise InvalidURLError(f"Invalid URL: {raw}", cause=exc) from exc

    scheme = parts.scheme.lower()
    if scheme not in ("http", "https"):
        raise InvalidURLError(f"Unsupported URL scheme '{parts.scheme}': {raw}")
    if not parts.netloc or not parts.hostname:
        raise InvalidURLError(f"URL has no host: {raw}")

    if force_https:
        scheme = "https"
    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment))


# ----------------------------------------------------------------------
# Query helpers
# ----------------------------------------------------------------------

def query_pairs(url: str) -> QueryPairs:
    return parse_qsl(urlsplit(url).query, keep_blank_values=True)


def query_value(url: str, name: str) -> Optional[str]:
    """First value of a query parameter, matched case-insensitively."""
    for key, value in query_pairs(url):
        if key.lower() == name.lower():
            return value
    return None


def with_query(url: str, pairs: Iterable[Tuple[str, str]]) -> str:
    parts = urlsplit(url)
    return urlunsplit(parts._replace(query=urlencode(list(pairs))))


def unescape_braces(url: str) -> str:
    """Turn percent-encoded ``{`` and ``}`` back into template placeholders."""
    return re.sub("%7d", "}", re.sub("%7b", "{", url, flags=re.IGNORECASE), flags=re.IGNORECASE)


def _strip_params(pairs: QueryPairs, names: Iterable[str]) -> QueryPairs:
    lowered = {name.lower() for name in names}
    return [(key, value) for key, value in pairs if key.lower() not in lowered]


def _declares_other_service(pairs: QueryPairs, service: str) -> bool:
    return any(
        key.lower() == "service" and value.lower() != service.lower()
        for key, value in pairs
    )


# ----------------------------------------------------------------------
# WMS / WFS capabilities
# ----------------------------------------------------------------------

def wms_capabilities_url(url: str) -> Optional[str]:
    """GetCapabilities URL for a WMS, or None when the URL names another service."""
    pairs = query_pairs(url)
    if _declares_other_service(pairs, "wms"):
        return None
    kept = _strip_params(pairs, WMS_CAPABILITIES_PARAMS)
    return with_query(url, kept + [("service", "WMS"), ("request", "GetCapabilities")])


def wfs_capabilities_url(url: str, version: str = "2.0.0") -> Optional[str]:
    """GetCapabilities URL for a WFS, or None when the URL names another service."""
    pairs = query_pairs(url)
    if _declares_other_service(pairs, "wfs"):
        return None
    kept = _strip_params(pairs, WFS_CAPABILITIES_PARAMS)
    return with_query(
        url,
        kept + [("service", "WFS"), ("request", "GetCapabilities"), ("version", version)],
    )


def clean_capabilities_url(url: str) -> str:
    """Drop ``service``, ``request`` and ``version`` so the URL is a reusable base."""
    return with_query(url, _strip_params(query_pairs(url), CAPABILITIES_PARAMS))


# ----------------------------------------------------------------------
# WMTS
# ----------------------------------------------------------------------

def infer_wmts_base_url(tile_url: str, with_style: bool) -> Optional[str]:
    """
    Infer the RESTful WMTS service root from a tile URL.

    The last run of ``<int>/<int>/<int>[.ext]`` path segments is taken to
    be TileMatrix/TileRow/TileCol; the layer and TileMatrixSet segments
    (plus the style segment when ``with_style``) before it are dropped.
    A URL without such a run is returned unchanged; a run with too few
    segments in front of it yields None.
    """
    parts = urlsplit(tile_url)
    path = unquote(parts.path)
    for placeholder in _TILE_PLACEHOLDERS:
        path = path.replace(placeholder, "0")

    segments = [segment for segment in path.split("/") if segment]
    start = -1
    for index in range(len(segments) - 3, -1, -1):
        first, second, third = segments[index:index + 3]
        if _NUMERIC.match(first) and _NUMERIC.match(second) and (
            _NUMERIC.match(third) or _NUMERIC_WITH_EXT.match(third)
        ):
            start = index
            break

    if start < 0:
        return tile_url

    end = start - (3 if with_style else 2)
    if end < 0:
        return None
    base_path = "/" + "/".join(quote(segment, safe=_PATH_SAFE) for segment in segments[:end]) if end > 0 else ""
    return urlunsplit(parts._replace(path=base_path))


def wmts_capabilities_url(
    url: str,
    *,
    use_kvp: bool = False,
    with_style: bool = False,
    with_version: bool = False,
) -> Optional[str]:
    """Build one WMTS capabilities candidate URL, or None when not applicable."""
    parts = urlsplit(url)
    if parts.path.endswith("WMTSCapabilities.xml"):
        return url

    pairs = query_pairs(url)
    if use_kvp:
        if _declares_other_service(pairs, "wmts"):
            return None
        kept = _strip_params(pairs, CAPABILITIES_PARAMS)
        kept += [("service", "WMTS"), ("request", "GetCapabilities")]
        if with_version:
            kept.append(("version", "1.0.0"))
        if with_style:
            kept.append(("style", "default"))
        return with_query(url, kept)

    for key, value in pairs:
        if (key.lower() == "service" and value.lower() == "wmts") or (
            key.lower() == "request" and value.lower() == "getcapabilities"
        ):
            kept = _strip_params(pairs, CAPABILITIES_PARAMS)
            return with_query(url, kept + [("service", "WMTS"), ("request", "GetCapabilities")])

    base = infer_wmts_base_url(url, with_style)
    if base is None:
        return None
    base_parts = urlsplit(base)
    path = base_parts.path.rstrip("/") + ("/1.0.0" if with_version else "") + "/WMTSCapabilities.xml"
    return urlunsplit(base_parts._replace(path=path))


def wmts_capabilities_candidates(url: str) -> List[str]:
    """
    Ordered, de-duplicated capabilities URLs to try for a WMTS.

    RESTful candidates come first, then KVP ones; within each pass the
    version flag is the outer loop and the style flag the inner one.
    """
    candidates: List[str] = []
    for use_kvp in (False, True):
        for with_version in (False, True):
            for with_style in (False, True):
                candidate = wmts_capabilities_url(
                    url, use_kvp=use_kvp, with_style=with_style, with_version=with_version
                )
                if candidate and candidate not in candidates:
                    candidates.append(candidate)
    return candidates


def wmts_base_url_from_capabilities_url(url: str) -> str:
    """Service root for a REST or KVP capabilities URL."""
    parts = urlsplit(url)
    if parts.path.endswith("WMTSCapabilities.xml"):
        path = re.sub(r"/WMTSCapabilities\.xml$", "", parts.path)
        path = re.sub(r"/1\.0\.0$", "", path)
        return urlunsplit(parts._replace(path=path))
    return with_query(url, _strip_params(query_pairs(url), WMTS_KVP_PARAMS))


# ----------------------------------------------------------------------
# WFS -> GeoJSON
# ----------------------------------------------------------------------

def wfs_geojson_url(
    base_url: str,
    type_name: str,
    version: str = "2.0.0",
    output_format: str = "application/json",
) -> str:
    """GetFeature URL returning ``type_name`` as GeoJSON in EPSG:4326."""
    pairs = [
        ("service", "WFS"),
        ("request", "GetFeature"),
        ("version", version),
        ("typeName", type_name),
        ("outputFormat", output_format),
        ("srsName", "EPSG:4326"),
    ]
    return with_query(base_url, pairs)


def convert_wfs_to_geojson_url(url: str, *, assume_wfs: bool = False) -> str:
    """
    Rewrite a WFS request URL so it asks for ``application/json``.

    Only URLs carrying ``service=WFS`` are rewritten, unless ``assume_wfs``
    is set; anything else is returned unchanged.
    """
    pairs = query_pairs(url)
    existing: Dict[str, str] = {}
    for key, value in pairs:
        if key.lower() in WFS_GEOJSON_PARAMS:
            existing.setdefault(key.lower(), value)

    if existing.get("service", "").lower() != "wfs" and not assume_wfs:
        return url

    rebuilt = [
        ("service", "WFS"),
        ("request", existing.get("request") or "GetFeature"),
        ("version", existing.get("version") or "2.0.0"),
        ("outputFormat", "application/json"),
    ]
    type_names = existing.get("typename") or existing.get("typenames")
    if type_names:
        rebuilt.append(("typeNames", type_names))
    srs_name = existing.get("srsname") or existing.get("crs")
    if srs_name:
        rebuilt.append(("srsName", srs_name))
    if existing.get("bbox"):
        rebuilt.append(("bbox", existing["bbox"]))
    count = existing.get("maxfeatures") or existing.get("count")
    if count:
        rebuilt.append(("count", count))
    return with_query(url, rebuilt)


def is_getfeature_json_url(url: str) -> bool:
    """True for a pre-built ``request=GetFeature`` link asking for a JSON output format."""
    request = query_value(url, "request")
    output_format = query_value(url, "outputFormat")
    if not request or request.lower() != "getfeature" or not output_format:
        return False
    return "json" in output_format.lower()


# ----------------------------------------------------------------------
# ArcGIS REST
# ----------------------------------------------------------------------

def is_arcgis_service_url(url: str) -> bool:
    return bool(_ARCGIS_RE.search(url))


def arcgis_base_url(url: str) -> str:
    """Service URL ending at ``FeatureServer``/``MapServer``, without query or layer id."""
    parts = urlsplit(url)
    match = _ARCGIS_RE.search(parts.path)
    path = parts.path[:match.end()] if match else _TRAILING_LAYER_RE.sub("", parts.path)
    return urlunsplit(parts._replace(path=path.rstrip("/"), query="", fragment=""))


def arcgis_query_url(base_url: str, layer_id: int, record_count: int = 1000) -> str:
    """``<base>/<layer>/query`` returning every field of the layer as GeoJSON."""
    return with_query(
        f"{base_url.rstrip('/')}/{layer_id}/query",
        [
            ("where", "1=1"),
            ("outFields", "*"),
            ("f", "geojson"),
            ("resultRecordCount", str(record_count)),
        ],
    )


def convert_arcgis_to_geojson_url(url: str, record_count: int = 1000) -> str:
    """Best-effort rewrite of an ArcGIS layer or query URL into a GeoJSON query."""
    if query_value(url, "f") == "geojson":
        return url

    if "/query" in urlsplit(url).path:
        pairs = [(key, value) for key, value in query_pairs(url) if key != "f"]
        keys = {key for key, _ in pairs}
        pairs.append(("f", "geojson"))
        if "where" not in keys:
            pairs.append(("where", "1=1"))
        if "outFields" not in keys:
            pairs.append(("outFields", "*"))
        return with_query(url, pairs)

    if is_arcgis_service_url(url):
        match = _ARCGIS_LAYER_RE.search(urlsplit(url).path)
        layer_id = int(match.group(2)) if match else 0
        return arcgis_query_url(arcgis_base_url(url), layer_id, record_count)

    return url


# ----------------------------------------------------------------------
# XYZ
# ----------------------------------------------------------------------

def normalize_to_xyz_format(path: str) -> str:
    """
    Rewrite a tile path into a ``{z}/{x}/{y}`` template.

    >>> normalize_to_xyz_format("/tiles/10/20/30.png")
    '/tiles/{z}/{x}/{y}.png'
    >>> normalize_to_xyz_format("/tiles/")
    '/tiles/{z}/{x}/{y}.png'
    """
    path = unescape_braces(path)
    if "{z}" in path and "{x}" in path and "{y}" in path:
        return path
    if _XYZ_SUFFIX_RE.search(path):
        return _XYZ_SUFFIX_RE.sub(lambda match: "/{z}/{x}/{y}" + (match.group(4) or ""), path)
    return path.rstrip("/") + "/{z}/{x}/{y}.png"


def xyz_tile_url(template: str, z: int, x: int, y: int) -> str:
    return template.replace("{z}", str(z)).replace("{x}", str(x)).replace("{y}", str(y))


def xyz_extension(template: str) -> str:
    """Extension (with dot) following ``{y}`` in a template, or ``''``."""
    match = re.search(r"\{y\}(\.\w+)", template)
    return match.group(1) if match else ""


def xyz_with_extension(template: str, extension: str) -> str:
    return re.sub(r"\{y\}(\.\w+)?", "{y}" + extension, template, count=1)


def hostname(url: str) -> str:
    return urlsplit(url).hostname or url

