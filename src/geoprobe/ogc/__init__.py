"""
OGC capabilities parsing.

The WMS, WMTS and WFS parsers live in ``geoprobe.ogc.wms``,
``geoprobe.ogc.wmts`` and ``geoprobe.ogc.wfs``; all three walk documents
with the local-name helpers in ``geoprobe.ogc.xml``. Only the record
models are re-exported here so that ``geoprobe.types`` can import them
without pulling in the parsers.
"""

from .types import (
    FeatureType,
    TileMatrix,
    TileMatrixSet,
    WFSCapabilities,
    WMSCapabilities,
    WMSLayer,
    WMTSCapabilities,
    WMTSLayer,
)

__all__ = [
    "FeatureType",
    "TileMatrix",
    "TileMatrixSet",
    "WFSCapabilities",
    "WMSCapabilities",
    "WMSLayer",
    "WMTSCapabilities",
    "WMTSLayer",
]
