"""Service registry and base abstractions for protocol fetchers."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import Dict, List, Optional, Type

import requests

from ..errors import GeoProbeError
from ..types import ServiceInfo, ServiceTypeEnum
from .config import DiscoveryConfig

__all__ = [
    "BaseService",
    "register_service",
    "registered_services",
    "get_service",
]

logger = logging.getLogger(__name__)


class BaseService(ABC):
    """
    Abstract base class for protocol-specific fetchers.

    A fetcher turns a normalized URL into a ``ServiceInfo``. Failures are
    reported through ``ServiceInfo.error``; ``probe`` never raises for
    network, content or parsing problems.
    """

    service_type: ServiceTypeEnum

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or DiscoveryConfig()
        self.session = session or requests.Session()

    @classmethod
    def from_url(
        cls,
        url: str,
        config: Optional[DiscoveryConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> ServiceInfo:
        """Probe ``url`` with a fresh fetcher instance."""

        return cls(config, session).probe(url)

    def probe(self, url: str) -> ServiceInfo:
        """Resolve ``url`` as this service type, capturing failures as ``error``."""

        logger.debug("Probing %s as %s", url, self.service_type.value)
        try:
            info = self.fetch(url)
        except GeoProbeError as exc:
            logger.debug("%s probe of %s failed: %s", self.service_type.value, url, exc)
            return ServiceInfo.failure(url, str(exc))
        except requests.RequestException as exc:
            logger.debug("%s probe of %s failed: %s", self.service_type.value, url, exc)
            return ServiceInfo.failure(url, f"Service not reachable: {exc}")

        if info.ok:
            logger.info("Resolved %s as %s", url, self.service_type.value)
        return info

    @abstractmethod
    def fetch(self, url: str) -> ServiceInfo:
        """Fetch and parse the service description for ``url``."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def resolved(self, service_url: str, title: Optional[str], capabilities) -> ServiceInfo:
        return ServiceInfo(
            service_url=service_url,
            service_title=title or service_url,
            type=self.service_type,
            capabilities=capabilities,
        )


# ----------------------------------------------------------------------
# Service registry utilities
# ----------------------------------------------------------------------

_SERVICE_REGISTRY: Dict[ServiceTypeEnum, Type[BaseService]] = {}


def register_service(service_type: ServiceTypeEnum):
    """Decorator for registering service implementations."""

    def decorator(cls: Type[BaseService]) -> Type[BaseService]:
        _SERVICE_REGISTRY[service_type] = cls
        cls.service_type = service_type
        return cls

    return decorator


def registered_services() -> List[ServiceTypeEnum]:
    return list(_SERVICE_REGISTRY)


def get_service(
    service_type: ServiceTypeEnum,
    config: Optional[DiscoveryConfig] = None,
    session: Optional[requests.Session] = None,
) -> BaseService:
    """Instantiate the fetcher registered for ``service_type``."""

    try:
        service_cls = _SERVICE_REGISTRY[ServiceTypeEnum(service_type)]
    except KeyError as exc:
        raise ValueError(f"No service registered for type {service_type}") from exc

    return service_cls(config, session)
