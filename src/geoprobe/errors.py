"""Custom exception hierarchy for geoprobe."""

from typing import Optional


class GeoProbeError(Exception):
    """Base exception for geoprobe."""

    kind = "Error"

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class InvalidURLError(GeoProbeError):
    """URL cannot be parsed or uses a scheme other than http(s)."""

    kind = "InvalidURL"


class UnreachableError(GeoProbeError):
    """Non-2xx response, network failure or timeout."""

    kind = "Unreachable"


class InvalidContentTypeError(GeoProbeError):
    """Response content type does not match the expected document type."""

    kind = "InvalidContentType"


class ContentTooLargeError(GeoProbeError):
    """Declared or actual payload size exceeds the configured limit."""

    kind = "ContentTooLarge"


class InvalidDocumentError(GeoProbeError):
    """XML could not be parsed or lacks a required subtree."""

    kind = "InvalidDocument"


class InvalidGeoJSONError(GeoProbeError):
    """Payload is not JSON or does not have a GeoJSON shape."""

    kind = "InvalidGeoJSON"


class NoMatchingProtocolError(GeoProbeError):
    """Every protocol probe failed."""

    kind = "NoMatchingProtocol"
