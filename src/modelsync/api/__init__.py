"""
Model server HTTP API.

Usage:
    >>> from modelsync.api import ServerAPI
    >>>
    >>> api = ServerAPI("http://gpu-box:11434")
    >>> info = await api.show("llama3")
"""

from __future__ import annotations

from modelsync.api.client import ServerAPI
from modelsync.api.config import (
    API_PREFIX,
    DEFAULT_SERVER_URL,
    REGISTRY_ACCEPT,
    api_path,
    make_timeout,
)

__all__ = [
    "API_PREFIX",
    "DEFAULT_SERVER_URL",
    "REGISTRY_ACCEPT",
    "ServerAPI",
    "api_path",
    "make_timeout",
]
