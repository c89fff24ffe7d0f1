"""
HTTP retrieval with content-type and size guards.

All helpers take an explicit ``requests.Session`` and an explicit timeout;
failures are raised as ``GeoProbeError`` subclasses so fetchers can turn
them into ``ServiceInfo.error`` strings.
"""

import logging
import re
from typing import Callable, Dict, Optional, Tuple

import requests

from .errors import ContentTooLargeError, InvalidContentTypeError, UnreachableError
from .types import ContentInfo, ContentInfoMethod, ContentInfoStatus, MapServiceInfo, MapServiceKind

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
DEFAULT_MAX_SAFE_SIZE = 10 * 1024 * 1024
HEAD_UNSUPPORTED = (405, 501)


def content_length(response: requests.Response) -> Optional[int]:
    value = response.headers.get("Content-Length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logger.debug("Ignoring malformed Content-Length '%s'", value)
        return None


def content_type(response: requests.Response) -> str:
    return response.headers.get("Content-Type") or ""


def is_xml_content(value: str) -> bool:
    return "xml" in value.lower()


def is_json_content(value: str) -> bool:
    lowered = value.lower()
    return "json" in lowered or "text/" in lowered


def _unreachable(response: requests.Response) -> UnreachableError:
    return UnreachableError(f"HTTP {response.status_code}: {response.reason}")


def _check_headers(
    response: requests.Response,
    max_bytes: int,
    accept: Optional[Callable[[str], bool]],
) -> None:
    ctype = content_type(response)
    if accept is not None and not accept(ctype):
        raise InvalidContentTypeError(f"Invalid content type: {ctype or None}")
    length = content_length(response)
    if length is not None and length > max_bytes:
        raise ContentTooLargeError(f"Content too large: {length} bytes")


def read_limited(response: requests.Response, max_bytes: int) -> bytes:
    """Read a streamed body, aborting as soon as it grows past ``max_bytes``."""
    chunks = []
    total = 0
    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
        if not chunk:
            continue
        total += len(chunk)
        if total > max_bytes:
            raise ContentTooLargeError(f"Content too large: more than {max_bytes} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


def fetch_body(
    session: requests.Session,
    url: str,
    *,
    timeout: float,
    max_bytes: int,
    headers: Optional[Dict[str, str]] = None,
    accept: Optional[Callable[[str], bool]] = None,
) -> Tuple[bytes, str]:
    """
    GET ``url`` and return ``(body, content_type)``.

    Raises:
        UnreachableError: non-2xx response or network failure
        InvalidContentTypeError: ``accept`` rejects the Content-Type
        ContentTooLargeError: declared or actual size exceeds ``max_bytes``
    """
    logger.debug("GET %s", url)
    try:
        response = session.get(url, headers=headers, timeout=timeout, stream=True)
    except requests.RequestException as exc:
        raise UnreachableError(f"Network error: {exc}", cause=exc) from exc

    try:
        if not response.ok:
            raise _unreachable(response)
        _check_headers(response, max_bytes, accept)
        try:
            body = read_limited(response, max_bytes)
        except requests.RequestException as exc:
            raise UnreachableError(f"Network error: {exc}", cause=exc) from exc
        return body, content_type(response)
    finally:
        response.close()


def fetch_xml_document(
    session: requests.Session,
    url: str,
    *,
    timeout: float,
    max_bytes: int,
    headers: Optional[Dict[str, str]] = None,
) -> bytes:
    """
    Retrieve a capabilities document.

    A HEAD request validates Content-Type and Content-Length before any
    body is transferred. Servers that refuse HEAD (405/501) or fail on it
    are retried with GET, which applies the same checks.
    """
    logger.debug("HEAD %s", url)
    try:
        head = session.head(url, headers=headers, timeout=timeout, allow_redirects=True)
    except requests.RequestException as exc:
        logger.debug("HEAD %s failed, falling back to GET: %s", url, exc)
        head = None

    if head is not None:
        try:
            if head.status_code in HEAD_UNSUPPORTED:
                logger.debug("HEAD not supported by %s (HTTP %s)", url, head.status_code)
            elif not head.ok:
                raise _unreachable(head)
            else:
                _check_headers(head, max_bytes, is_xml_content)
        finally:
            head.close()

    body, _ = fetch_body(
        session,
        url,
        timeout=timeout,
        max_bytes=max_bytes,
        headers=headers,
        accept=is_xml_content,
    )
    return body


# ----------------------------------------------------------------------
# Content info probing
# ----------------------------------------------------------------------

_CONTENT_RANGE_TOTAL = re.compile(r"/(\d+)$")


def get_url_content_info(
    session: requests.Session,
    url: str,
    *,
    max_safe_size: int = DEFAULT_MAX_SAFE_SIZE,
    timeout: float = 10.0,
) -> ContentInfo:
    """
    Determine content type and size of ``url`` transferring as little as possible.

    Tries a two-byte range request, then HEAD, then a size-limited GET.
    Never raises for network problems; failures are reported in the
    returned record.
    """
    errors = []

    try:
        response = session.get(url, headers={"Range": "bytes=0-1"}, timeout=timeout, stream=True)
        try:
            ctype = response.headers.get("Content-Type") or None
            if response.status_code == 206:
                total = None
                match = _CONTENT_RANGE_TOTAL.search(response.headers.get("Content-Range", ""))
                if match:
                    total = int(match.group(1))
                return ContentInfo(
                    url=url,
                    content_type=ctype,
                    content_length=total,
                    method=ContentInfoMethod.RANGE,
                    status=ContentInfoStatus.SUCCESS,
                )
            if response.status_code == 200:
                length = content_length(response)
                if length is not None and length > max_safe_size:
                    return ContentInfo(
                        url=url,
                        content_type=ctype,
                        content_length=length,
                        method=ContentInfoMethod.RANGE_FALLBACK_LARGE,
                        status=ContentInfoStatus.SUCCESS,
                        error=f"File too large ({length} bytes), cancelled download",
                    )
                return ContentInfo(
                    url=url,
                    content_type=ctype,
                    content_length=length,
                    method=ContentInfoMethod.RANGE_FALLBACK_SMALL,
                    status=ContentInfoStatus.SUCCESS,
                )
            errors.append(f"Range request failed: HTTP {response.status_code}")
        finally:
            response.close()
    except requests.RequestException as exc:
        errors.append(f"Range request failed: {exc}")

    try:
        head = session.head(url, timeout=timeout, allow_redirects=True)
        try:
            if head.ok:
                return ContentInfo(
                    url=url,
                    content_type=head.headers.get("Content-Type") or None,
                    content_length=content_length(head),
                    method=ContentInfoMethod.HEAD,
                    status=ContentInfoStatus.SUCCESS,
                )
            errors.append(f"HEAD request failed: HTTP {head.status_code}")
        finally:
            head.close()
    except requests.RequestException as exc:
        errors.append(f"HEAD request failed: {exc}")

    try:
        response = session.get(url, timeout=timeout, stream=True)
        try:
            if not response.ok:
                raise _unreachable(response)
            ctype = response.headers.get("Content-Type") or None
            declared = content_length(response)
            if declared is not None and declared > max_safe_size:
                return ContentInfo(
                    url=url,
                    content_type=ctype,
                    content_length=declared,
                    method=ContentInfoMethod.GET_CANCELLED_LARGE,
                    status=ContentInfoStatus.SUCCESS,
                    error=f"File too large ({declared} bytes), cancelled download",
                )
            try:
                body = read_limited(response, max_safe_size)
            except ContentTooLargeError:
                return ContentInfo(
                    url=url,
                    content_type=ctype,
                    content_length=declared,
                    method=ContentInfoMethod.GET_SIZE_LIMITED,
                    status=ContentInfoStatus.SUCCESS,
                    error=f"Download stopped after {max_safe_size} bytes (size limit reached)",
                )
            return ContentInfo(
                url=url,
                content_type=ctype,
                content_length=declared if declared is not None else len(body),
                method=ContentInfoMethod.GET_COMPLETE,
                status=ContentInfoStatus.SUCCESS,
            )
        finally:
            response.close()
    except (requests.RequestException, UnreachableError) as exc:
        errors.append(f"GET request failed: {exc}")

    return ContentInfo(
        url=url,
        method=ContentInfoMethod.ALL_FAILED,
        status=ContentInfoStatus.INVALID,
        error=" | ".join(errors),
    )


def analyze_map_service_url(
    session: requests.Session,
    url: str,
    *,
    max_safe_size: int = DEFAULT_MAX_SAFE_SIZE,
    timeout: float = 10.0,
) -> MapServiceInfo:
    """Classify a URL by the content type it serves."""
    info = get_url_content_info(session, url, max_safe_size=max_safe_size, timeout=timeout)

    kind = MapServiceKind.UNKNOWN
    ctype = (info.content_type or "").lower()
    if "xml" in ctype:
        kind = MapServiceKind.OGC_SERVICE
    elif "tiff" in ctype:
        kind = MapServiceKind.COG
    elif "json" in ctype:
        kind = MapServiceKind.JSON_SERVICE
    elif "image/" in ctype:
        kind = MapServiceKind.RASTER

    is_safe = None
    if info.content_length:
        is_safe = info.content_length <= max_safe_size
    return MapServiceInfo(content=info, kind=kind, is_safe_size=is_safe)
