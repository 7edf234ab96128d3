"""
Local model storage.
"""

from modelsync.storage.local import LocalBlobStore

__all__ = ["LocalBlobStore"]
