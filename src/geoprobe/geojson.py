"""
GeoJSON validation and content analysis.
"""

import json
import logging
from typing import Any, Iterable, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidGeoJSONError
from .types import GeoJSONAnalysis

logger = logging.getLogger(__name__)

GEOMETRY_TYPES = (
    "Point",
    "LineString",
    "Polygon",
    "MultiPoint",
    "MultiLineString",
    "MultiPolygon",
    "GeometryCollection",
)
GEOJSON_TYPES = ("Feature", "FeatureCollection") + GEOMETRY_TYPES


def load_geojson(content: Union[bytes, str]) -> Any:
    """Decode a JSON body, raising ``InvalidGeoJSONError`` on syntax errors."""
    try:
        return json.loads(content)
    except (ValueError, UnicodeDecodeError) as exc:
        raise InvalidGeoJSONError(f"JSON parsing error: {exc}", cause=exc) from exc


def validate_geojson(data: Any) -> dict:
    """
    Check that ``data`` has a GeoJSON top-level shape.

    Returns the object unchanged so calls can be chained.

    Raises:
        InvalidGeoJSONError: not an object, unknown ``type``, a
            FeatureCollection without a ``features`` list, or a Feature
            without a ``geometry`` member
    """
    if not isinstance(data, dict):
        raise InvalidGeoJSONError("Not a valid JSON object")

    geojson_type = data.get("type")
    if not geojson_type:
        raise InvalidGeoJSONError('Missing required "type" property')
    if geojson_type not in GEOJSON_TYPES:
        raise InvalidGeoJSONError(f"Invalid GeoJSON type: {geojson_type}")

    if geojson_type == "FeatureCollection" and not isinstance(data.get("features"), list):
        raise InvalidGeoJSONError("FeatureCollection must have a features array")
    if geojson_type == "Feature" and "geometry" not in data:
        raise InvalidGeoJSONError("Feature must have a geometry property")
    return data


def analyze_geojson(data: dict) -> GeoJSONAnalysis:
    """
    Summarize a validated GeoJSON object.

    Features lacking geometry or properties are counted but add nothing
    to the geometry-type and property-key sets.
    """
    geojson_type = data.get("type", "")
    geometry_types = set()
    properties = set()

    if geojson_type == "FeatureCollection":
        features = [feature for feature in data.get("features") or [] if isinstance(feature, dict)]
        feature_count = len(data.get("features") or [])
    elif geojson_type == "Feature":
        features = [data]
        feature_count = 1
    else:
        features = []
        feature_count = 1
        geometry_types.add(geojson_type)

    geometries = []
    for feature in features:
        geometry = feature.get("geometry")
        if isinstance(geometry, dict) and geometry.get("type"):
            geometry_types.add(geometry["type"])
            geometries.append(geometry)
        props = feature.get("properties")
        if isinstance(props, dict):
            properties.update(props.keys())

    if geojson_type in GEOMETRY_TYPES:
        geometries.append(data)

    return GeoJSONAnalysis(
        type=geojson_type,
        feature_count=feature_count,
        geometry_types=frozenset(geometry_types),
        properties=frozenset(properties),
        bounds=compute_bounds(geometries),
        crs=data.get("crs"),
    )


def compute_bounds(geometries: Iterable[dict]) -> Optional[List[float]]:
    """``[minx, miny, maxx, maxy]`` over every position, or None if there are none."""
    min_x = min_y = float("inf")
    max_x = max_y = float("-inf")
    found = False
    for x, y in _iter_positions(geometries):
        found = True
        min_x, max_x = min(min_x, x), max(max_x, x)
        min_y, max_y = min(min_y, y), max(max_y, y)
    if not found:
        return None
    return [min_x, min_y, max_x, max_y]


def _iter_positions(geometries: Iterable[dict]) -> Iterator[Tuple[float, float]]:
    for geometry in geometries:
        if not isinstance(geometry, dict):
            continue
        if geometry.get("type") == "GeometryCollection":
            yield from _iter_positions(geometry.get("geometries") or [])
            continue
        yield from _walk_coordinates(geometry.get("coordinates"))


def _walk_coordinates(coords: Any) -> Iterator[Tuple[float, float]]:
    if not isinstance(coords, list) or not coords:
        return
    if isinstance(coords[0], (int, float)) and not isinstance(coords[0], bool):
        if len(coords) >= 2 and isinstance(coords[1], (int, float)):
            yield float(coords[0]), float(coords[1])
        return
    for item in coords:
        yield from _walk_coordinates(item)


# ----------------------------------------------------------------------
# Map layer grouping
# ----------------------------------------------------------------------

class MapLayerKind(BaseModel):
    """One renderable layer derived from a GeoJSON source."""
    kind: str = Field(..., description="points, lines, polygons or polygon-outlines")
    render_type: str = Field(..., description="circle, line or fill")
    title: str
    geometries: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


def map_layer_kinds(geometry_types: Iterable[str]) -> List[MapLayerKind]:
    """Group geometry types into point, line and polygon map layers."""
    present = sorted(set(geometry_types))
    points = [name for name in present if name in ("Point", "MultiPoint")]
    lines = [name for name in present if name in ("LineString", "MultiLineString")]
    polygons = [name for name in present if name in ("Polygon", "MultiPolygon")]

    kinds: List[MapLayerKind] = []
    if points:
        kinds.append(MapLayerKind(kind="points", render_type="circle", title="Points", geometries=points))
    if lines:
        kinds.append(MapLayerKind(kind="lines", render_type="line", title="Lines", geometries=lines))
    if polygons:
        kinds.append(MapLayerKind(kind="polygons", render_type="fill", title="Areas", geometries=polygons))
        kinds.append(
            MapLayerKind(kind="polygon-outlines", render_type="line", title="Area Outlines", geometries=polygons)
        )
    return kinds
