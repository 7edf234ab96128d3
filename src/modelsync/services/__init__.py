"""
modelsync services.
"""

from modelsync.services.copy import AsyncCopyService, CopyReport, CopyService

__all__ = ["AsyncCopyService", "CopyReport", "CopyService"]
