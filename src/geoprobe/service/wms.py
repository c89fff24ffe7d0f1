"""WMS (Web Map Service) discovery."""

from __future__ import annotations

import logging

from .base import BaseService, register_service
from ..errors import InvalidURLError
from ..fetch import fetch_xml_document
from ..ogc.wms import WMSParser
from ..types import ServiceInfo, ServiceTypeEnum
from ..urls import wms_capabilities_url

logger = logging.getLogger(__name__)


@register_service(ServiceTypeEnum.WMS)
class WMSService(BaseService):
    """Fetches and parses WMS GetCapabilities."""

    parser = WMSParser()

    def fetch(self, url: str) -> ServiceInfo:
        capabilities_url = wms_capabilities_url(url)
        if capabilities_url is None:
            raise InvalidURLError("Invalid URL for WMS capabilities.")

        content = fetch_xml_document(
            self.session,
            capabilities_url,
            timeout=self.config.capabilities_timeout,
            max_bytes=self.config.max_capabilities_bytes,
            headers=self.config.request_headers(),
        )
        capabilities = self.parser.parse_capabilities(content)

        title = capabilities.service.title if capabilities.service else None
        return self.resolved(url, title, capabilities)
