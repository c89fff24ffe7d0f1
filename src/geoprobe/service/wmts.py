"""WMTS (Web Map Tile Service) discovery."""

from __future__ import annotations

import logging
from typing import Optional

from .base import BaseService, register_service
from ..errors import ContentTooLargeError, GeoProbeError, InvalidDocumentError, InvalidURLError
from ..fetch import fetch_xml_document
from ..ogc.wmts import WMTSParser
from ..types import ServiceInfo, ServiceTypeEnum
from ..urls import wmts_base_url_from_capabilities_url, wmts_capabilities_candidates

logger = logging.getLogger(__name__)


@register_service(ServiceTypeEnum.WMTS)
class WMTSService(BaseService):
    """
    Fetches and parses WMTS capabilities.

    RESTful and KVP capabilities URLs are tried in sequence; the first
    document with a ``Contents`` section wins. An oversized or malformed
    document stops the search since other spellings of the same endpoint
    will not fare better.
    """

    parser = WMTSParser()

    def fetch(self, url: str) -> ServiceInfo:
        candidates = wmts_capabilities_candidates(url)
        if not candidates:
            raise InvalidURLError("Invalid URL for WMTS capabilities.")

        last_error: Optional[GeoProbeError] = None
        for candidate in candidates:
            logger.debug("Trying WMTS capabilities at %s", candidate)
            try:
                content = fetch_xml_document(
                    self.session,
                    candidate,
                    timeout=self.config.capabilities_timeout,
                    max_bytes=self.config.max_capabilities_bytes,
                    headers=self.config.request_headers(),
                )
            except ContentTooLargeError:
                raise
            except GeoProbeError as exc:
                last_error = exc
                continue

            capabilities = self.parser.parse_capabilities(content)
            if capabilities.contents is None:
                raise InvalidDocumentError("Invalid WMTS capabilities document.")

            identification = capabilities.service_identification
            title = identification.title if identification else None
            return self.resolved(wmts_base_url_from_capabilities_url(candidate), title, capabilities)

        raise last_error
