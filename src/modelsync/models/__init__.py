"""
Data models for modelsync.
"""

from modelsync.models.blob import BlobRole, Digest, TransferState, TransferTask
from modelsync.models.definition import ModelDefinition, ParameterValue
from modelsync.models.locator import (
    LocalLocator,
    Locator,
    ModelName,
    RemoteLocator,
    parse_locator,
)
from modelsync.models.manifest import Layer, Manifest

__all__ = [
    "BlobRole",
    "Digest",
    "Layer",
    "LocalLocator",
    "Locator",
    "Manifest",
    "ModelDefinition",
    "ModelName",
    "ParameterValue",
    "RemoteLocator",
    "TransferState",
    "TransferTask",
    "parse_locator",
]
