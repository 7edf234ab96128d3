"""
Model definition: files, template, system prompt and parameters.

Built once per copy from the source's metadata and consumed once when the
model is recreated on the destination.
"""

from __future__ import annotations

import json
from typing import Any, Union

from pydantic import BaseModel, Field

from modelsync.models.blob import Digest

ParameterValue = Union[str, int, float, bool, list[str]]

# Parameter name -> value type. Anything not listed stays a string.
INT_PARAMETERS = frozenset({
    "num_ctx",
    "num_batch",
    "num_gpu",
    "main_gpu",
    "num_thread",
    "num_keep",
    "num_predict",
    "repeat_last_n",
    "top_k",
    "seed",
    "mirostat",
})
FLOAT_PARAMETERS = frozenset({
    "temperature",
    "top_p",
    "min_p",
    "typical_p",
    "tfs_z",
    "repeat_penalty",
    "presence_penalty",
    "frequency_penalty",
    "mirostat_tau",
    "mirostat_eta",
})
BOOL_PARAMETERS = frozenset({
    "penalize_newline",
    "use_mmap",
    "use_mlock",
    "numa",
    "low_vram",
    "f16_kv",
    "vocab_only",
})
ARRAY_PARAMETERS = frozenset({"stop"})


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        try:
            decoded = json.loads(value)
        except ValueError:
            return value[1:-1]
        if isinstance(decoded, str):
            return decoded
    return value


def coerce_parameter(key: str, raw: str) -> str | int | float | bool:
    """Convert a raw parameter value using the static type table."""
    value = _unquote(raw)
    try:
        if key in INT_PARAMETERS:
            return int(value)
        if key in FLOAT_PARAMETERS:
            return float(value)
    except ValueError:
        return value
    if key in BOOL_PARAMETERS:
        lowered = value.lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
    return value


def parse_parameter_line(line: str) -> tuple[str, str] | None:
    """Split ``key value`` on the first run of whitespace."""
    parts = line.strip().split(None, 1)
    if len(parts) != 2:
        return None
    return parts[0], parts[1].strip()


def parameters_from_show(raw: Any) -> list[tuple[str, str]]:
    """
    Read the ``parameters`` field of a show response.

    The server sends either a newline-separated ``key value`` string or an
    object; list values in the object form expand to one pair per item.
    """
    pairs: list[tuple[str, str]] = []
    if isinstance(raw, str):
        for line in raw.splitlines():
            if not line.strip():
                continue
            pair = parse_parameter_line(line)
            if pair is not None:
                pairs.append(pair)
    elif isinstance(raw, dict):
        for key, value in raw.items():
            items = value if isinstance(value, list) else [value]
            for item in items:
                if isinstance(item, str):
                    pairs.append((key, item))
                else:
                    pairs.append((key, json.dumps(item)))
    return pairs


class ModelDefinition(BaseModel):
    """Everything needed to recreate a model on a destination."""

    files: dict[str, Digest] = Field(default_factory=dict)
    template: str | None = None
    system: str | None = None
    parameters: list[tuple[str, str]] = Field(default_factory=list)

    def typed_parameters(self) -> dict[str, ParameterValue]:
        """Fold parameter pairs into typed values; ``stop`` accumulates."""
        result: dict[str, ParameterValue] = {}
        for key, raw in self.parameters:
            if key in ARRAY_PARAMETERS:
                existing = result.get(key)
                if isinstance(existing, list):
                    existing.append(_unquote(raw))
                else:
                    result[key] = [_unquote(raw)]
            else:
                result[key] = coerce_parameter(key, raw)
        return result

    def to_create_request(self, name: str) -> dict[str, Any]:
        """Body of the create request for this definition."""
        payload: dict[str, Any] = {
            "model": name,
            "files": {filename: str(digest) for filename, digest in self.files.items()},
        }
        if self.template:
            payload["template"] = self.template
        if self.system:
            payload["system"] = self.system
        parameters = self.typed_parameters()
        if parameters:
            payload["parameters"] = parameters
        return payload


__all__ = [
    "ARRAY_PARAMETERS",
    "BOOL_PARAMETERS",
    "FLOAT_PARAMETERS",
    "INT_PARAMETERS",
    "ModelDefinition",
    "ParameterValue",
    "coerce_parameter",
    "parameters_from_show",
    "parse_parameter_line",
]
