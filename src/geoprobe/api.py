"""
High-level discovery API for geoprobe.

``load_service`` takes whatever a user pasted into an "add layer" box and
returns a ``ServiceInfo`` describing the first protocol that answered:

    >>> info = load_service("https://example.com/geoserver/ows")   # doctest: +SKIP
    >>> info.type, info.service_title
    (<ServiceTypeEnum.WFS: 'WFS'>, 'Example GeoServer')

Failures are reported through ``ServiceInfo.error``; no exception escapes.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Sequence, Tuple

import requests

from .errors import InvalidURLError
from .service import GeoJSONService, WFSService, WMSService, WMTSService, XYZService
from .service.config import DiscoveryConfig
from .types import ServiceInfo
from .urls import is_getfeature_json_url, normalize_url

logger = logging.getLogger(__name__)

UNKNOWN_SERVICE_ERROR = "Unknown service type or error"

Prober = Callable[[str], ServiceInfo]


def cascade_probers(
    url: str,
    config: DiscoveryConfig,
    session: requests.Session,
) -> List[Tuple[str, Prober]]:
    """
    Ordered ``(name, prober)`` pairs tried for ``url``.

    A pre-built ``GetFeature`` link asking for JSON is tried as GeoJSON
    before anything else; then WFS, GeoJSON, WMS, WMTS and XYZ. The
    probers share ``session``; closing it is up to the caller.
    """

    probers: List[Tuple[str, Prober]] = []
    if is_getfeature_json_url(url):
        probers.append(("GetFeature", GeoJSONService(config, session).probe))
    probers.extend(
        [
            ("WFS", WFSService(config, session).probe),
            ("GeoJSON", GeoJSONService(config, session).probe),
            ("WMS", WMSService(config, session).probe),
            ("WMTS", WMTSService(config, session).probe),
            ("XYZ", XYZService(config, session).probe),
        ]
    )
    return probers


def run_cascade(probers: Sequence[Tuple[str, Prober]], url: str) -> ServiceInfo:
    """Return the first error-free result, else a failure carrying the last error."""
    last_error: Optional[str] = None
    for name, prober in probers:
        try:
            info = prober(url)
        except Exception as exc:
            logger.warning("%s probe of %s raised: %s", name, url, exc, exc_info=True)
            last_error = f"{name}: {exc}"
            continue

        if info.ok:
            logger.info("%s resolved as %s", url, name)
            return info
        logger.debug("%s probe of %s failed: %s", name, url, info.error)
        last_error = info.error

    return ServiceInfo.failure(url, last_error or UNKNOWN_SERVICE_ERROR)


def load_service(
    url: str,
    config: Optional[DiscoveryConfig] = None,
    session: Optional[requests.Session] = None,
) -> ServiceInfo:
    """
    Discover which protocol ``url`` speaks and parse its capabilities.

    Args:
        url: Raw user input; a missing scheme is tolerated
        config: Timeouts, size limits and request options
        session: Session to issue requests with; one is created and
            closed for the call when omitted

    Returns:
        ServiceInfo: resolved service, or a record with ``error`` set
    """
    config = config or DiscoveryConfig()
    raw = config.apply_api_keys(url)
    try:
        normalized = normalize_url(raw, force_https=config.force_https)
    except InvalidURLError as exc:
        logger.debug("Rejected URL %r: %s", url, exc)
        return ServiceInfo.failure(url, str(exc))

    own_session = session is None
    session = session or requests.Session()
    try:
        return run_cascade(cascade_probers(normalized, config, session), normalized)
    finally:
        if own_session:
            session.close()


async def load_service_async(
    url: str,
    config: Optional[DiscoveryConfig] = None,
    session: Optional[requests.Session] = None,
) -> ServiceInfo:
    """Run ``load_service`` on a worker thread."""
    return await asyncio.to_thread(load_service, url, config, session)
