"""XYZ tile scheme inference."""

from __future__ import annotations

import logging
from io import BytesIO
from typing import List, Optional
from urllib.parse import urlsplit, urlunsplit

from PIL import Image

from .base import BaseService, register_service
from ..errors import GeoProbeError, InvalidContentTypeError
from ..fetch import fetch_body
from ..types import ServiceInfo, ServiceTypeEnum, TileSize, XYZCapabilities
from ..urls import hostname, normalize_to_xyz_format, unescape_braces, xyz_extension, xyz_tile_url, xyz_with_extension

logger = logging.getLogger(__name__)

TILE_EXTENSIONS = ("", ".png", ".jpg", ".jpeg", ".webp")


def expected_image_type(template: str) -> Optional[str]:
    """Content type implied by the template's extension, or None when it has none."""
    extension = xyz_extension(template)
    if not extension:
        return None
    name = extension[1:].lower()
    return "image/jpeg" if name == "jpg" else f"image/{name}"


def is_matching_image_type(content_type: str, template: str) -> bool:
    if not content_type.lower().startswith("image/"):
        return False
    expected = expected_image_type(template)
    return expected is None or content_type.lower() == expected


def read_tile_size(content: bytes) -> Optional[TileSize]:
    """Pixel size of an encoded tile image, or None if Pillow cannot decode it."""
    try:
        with BytesIO(content) as bio:
            with Image.open(bio) as img:
                width, height = img.size
    except OSError as exc:
        logger.warning("Could not determine tile dimensions: %s", exc)
        return None
    return TileSize(width=width, height=height)


def xyz_template(url: str) -> str:
    """``{z}/{x}/{y}`` template for ``url``, keeping its query and fragment."""
    parts = urlsplit(unescape_braces(url))
    path = normalize_to_xyz_format(parts.path)
    return unescape_braces(urlunsplit(parts._replace(path=path)))


def template_candidates(template: str) -> List[str]:
    """The template as given, then each other supported extension."""
    current = xyz_extension(template)
    candidates = [template]
    for extension in TILE_EXTENSIONS:
        if extension != current:
            candidates.append(xyz_with_extension(template, extension))
    return candidates


@register_service(ServiceTypeEnum.XYZ)
class XYZService(BaseService):
    """
    Infers an XYZ tile template and verifies it by fetching tile 0/0/0.

    Candidate extensions are tried in order until a tile comes back with
    an image content type matching the extension.
    """

    def fetch(self, url: str) -> ServiceInfo:
        template = xyz_template(url)
        errors: List[str] = []

        for candidate in template_candidates(template):
            sample_url = xyz_tile_url(candidate, 0, 0, 0)
            logger.debug("Trying XYZ sample tile %s", sample_url)
            try:
                content, content_type = fetch_body(
                    self.session,
                    sample_url,
                    timeout=self.config.tile_timeout,
                    max_bytes=self.config.max_capabilities_bytes,
                    headers=self.config.request_headers(),
                )
                if not is_matching_image_type(content_type, candidate):
                    raise InvalidContentTypeError(f"Unexpected content type: {content_type}")
            except GeoProbeError as exc:
                errors.append(f"{exc} for {sample_url}")
                continue

            capabilities = XYZCapabilities(format=content_type, tile_size=read_tile_size(content))
            return self.resolved(candidate, hostname(url), capabilities)

        return ServiceInfo.failure(url, f"No working format found. Errors: {'; '.join(errors)}")
