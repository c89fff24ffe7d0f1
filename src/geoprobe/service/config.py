"""Configuration for a discovery run."""

from __future__ import annotations

import re
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

GEOJSON_ACCEPT = "application/json, application/geo+json, text/plain"


class DiscoveryConfig(BaseModel):
    """Timeouts, size guards and request options used while probing a URL."""

    force_https: bool = Field(
        True, description="Rewrite http:// URLs to https:// during normalization"
    )
    headers: Dict[str, str] = Field(
        default_factory=dict, description="Additional HTTP headers sent with every request"
    )
    api_keys: Dict[str, str] = Field(
        default_factory=dict,
        description="Values substituted for matching {name} placeholders in the input URL",
    )
    capabilities_timeout: float = Field(10.0, gt=0, description="Timeout for capabilities requests (seconds)")
    geojson_timeout: float = Field(10.0, gt=0, description="Timeout for GeoJSON requests (seconds)")
    arcgis_timeout: float = Field(8.0, gt=0, description="Timeout for ArcGIS service descriptions (seconds)")
    tile_timeout: float = Field(5.0, gt=0, description="Timeout for sample tile requests (seconds)")
    max_capabilities_bytes: int = Field(
        5_000_000, gt=0, description="Largest capabilities document that will be parsed"
    )
    max_geojson_bytes: int = Field(
        50_000_000, gt=0, description="Largest GeoJSON payload that will be parsed"
    )
    arcgis_record_count: int = Field(
        1000, gt=0, description="resultRecordCount used for ArcGIS GeoJSON queries"
    )
    wfs_version: str = Field("2.0.0", description="WFS version requested in GetCapabilities")

    model_config = ConfigDict(frozen=True)

    # ------------------------------------------------------------------
    # Helper accessors
    # ------------------------------------------------------------------
    def apply_api_keys(self, url: str) -> str:
        """Substitute known ``{name}`` placeholders; unknown ones (e.g. ``{z}``) are kept."""

        if not self.api_keys:
            return url
        return _PLACEHOLDER.sub(
            lambda match: self.api_keys.get(match.group(1), match.group(0)), url
        )

    def request_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Headers for a request: configured headers overlaid with ``extra``."""

        headers = dict(self.headers)
        headers.update(extra or {})
        return headers
