"""
Copy service for modelsync.

Copies a model between the local store and remote servers:
- local -> remote: upload blobs from disk
- remote -> local: download blobs from registry mirrors into the store
- remote -> remote: relay registry downloads into destination uploads
"""

from modelsync.services.copy._aio import AsyncCopyService
from modelsync.services.copy._models import CopyReport
from modelsync.services.copy._sync import CopyService

__all__ = [
    "AsyncCopyService",
    "CopyReport",
    "CopyService",
]
