"""WFS (Web Feature Service) discovery."""

from __future__ import annotations

import logging

from .base import BaseService, register_service
from ..errors import InvalidDocumentError, InvalidURLError
from ..fetch import fetch_xml_document
from ..ogc.wfs import WFSParser
from ..types import ServiceInfo, ServiceTypeEnum
from ..urls import clean_capabilities_url, wfs_capabilities_url

logger = logging.getLogger(__name__)


@register_service(ServiceTypeEnum.WFS)
class WFSService(BaseService):
    """Fetches and parses WFS GetCapabilities."""

    parser = WFSParser()

    def fetch(self, url: str) -> ServiceInfo:
        capabilities_url = wfs_capabilities_url(url, self.config.wfs_version)
        if capabilities_url is None:
            raise InvalidURLError("Invalid URL for WFS capabilities.")

        content = fetch_xml_document(
            self.session,
            capabilities_url,
            timeout=self.config.capabilities_timeout,
            max_bytes=self.config.max_capabilities_bytes,
            headers=self.config.request_headers(),
        )
        capabilities = self.parser.parse_capabilities(content)
        if capabilities.feature_type_list is None:
            raise InvalidDocumentError("Invalid WFS capabilities document.")

        logger.debug(
            "WFS at %s lists %d feature types", url, len(capabilities.feature_type_list)
        )
        identification = capabilities.service_identification
        title = identification.title if identification else None
        return self.resolved(clean_capabilities_url(url), title, capabilities)
