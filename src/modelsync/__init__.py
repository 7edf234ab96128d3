"""
modelsync: copy models between local disk and model servers.

Usage:
    >>> from modelsync import CopyService
    >>>
    >>> report = CopyService().copy("llama3", "http://gpu-box:11434/llama3")
    >>> print(report)

Async:
    >>> from modelsync import AsyncCopyService
    >>>
    >>> report = await AsyncCopyService().copy(
    ...     "http://gpu-box:11434/llama3:8b",
    ...     "http://backup:11434/llama3:8b",
    ... )
"""

from modelsync.config import SyncSettings, configure_settings, get_settings, parse_size
from modelsync.exceptions import (
    CopyCancelledError,
    CreationError,
    ModelSyncError,
    ServerUnavailableError,
    TransferError,
)
from modelsync.services.copy import AsyncCopyService, CopyReport, CopyService

__version__ = "0.1.0"

__all__ = [
    "AsyncCopyService",
    "CopyCancelledError",
    "CopyReport",
    "CopyService",
    "CreationError",
    "ModelSyncError",
    "ServerUnavailableError",
    "SyncSettings",
    "TransferError",
    "__version__",
    "configure_settings",
    "get_settings",
    "parse_size",
]
