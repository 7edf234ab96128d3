"""
Server and registry API configuration.

Provides URL and timeout helpers shared by the server client and the
registry mirrors.
"""

from __future__ import annotations

import httpx

# Server API lives under this prefix on every instance
API_PREFIX = "/api"

DEFAULT_SERVER_URL = "http://localhost:11434"

REGISTRY_ACCEPT = (
    "application/vnd.docker.distribution.manifest.v2+json, "
    "application/vnd.oci.image.manifest.v1+json"
)


def api_path(*segments: str) -> str:
    """
    Build a server API path.

    Example:
        >>> api_path("blobs", "sha256:abc")
        '/api/blobs/sha256:abc'
    """
    return "/".join([API_PREFIX, *(s.strip("/") for s in segments)])


def make_timeout(seconds: float | None, connect: float = 30.0) -> httpx.Timeout:
    """
    Timeout for a request.

    Zero or None means no deadline at all; blob transfers of several
    gigabytes are expected to run for a long time.
    """
    if not seconds:
        return httpx.Timeout(None, connect=connect)
    return httpx.Timeout(seconds, connect=min(connect, seconds))


def normalize_base_url(url: str) -> str:
    return url.rstrip("/")


__all__ = [
    "API_PREFIX",
    "DEFAULT_SERVER_URL",
    "REGISTRY_ACCEPT",
    "api_path",
    "make_timeout",
    "normalize_base_url",
]
