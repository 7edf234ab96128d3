"""
Model recreation on the destination server.
"""

from __future__ import annotations

import json
from typing import Callable

from pydantic import BaseModel, Field

from modelsync.api.client import ServerAPI
from modelsync.exceptions import CreationError
from modelsync.logging import get_logger
from modelsync.models.definition import ModelDefinition

logger = get_logger(__name__)

SUCCESS_STATUS = "success"

# Called with every status line the server reports
StatusCallback = Callable[[str], None]


class CreationResult(BaseModel):
    """Summary of a create request's status stream."""

    model: str
    status: str | None = None
    statuses: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == SUCCESS_STATUS


class ModelRecreator:
    """
    Issues the create request once all blobs are present.

    The server answers with newline-delimited JSON objects; each may carry a
    ``status`` or an ``error``. Creation succeeded only if the last reported
    status is ``success``.
    """

    async def recreate(
        self,
        api: ServerAPI,
        name: str,
        definition: ModelDefinition,
        on_status: StatusCallback | None = None,
    ) -> CreationResult:
        """
        Create ``name`` on the server behind ``api``.

        Raises:
            CreationError: On a non-2xx answer or a final status other
                than ``success``.
        """
        payload = definition.to_create_request(name)
        logger.info(f"Creating model '{name}' on {api.base_url}")
        logger.debug(f"Create request: {payload}")

        result = CreationResult(model=name)
        async with api.create(payload) as response:
            if not response.is_success:
                body = (await response.aread()).decode("utf-8", errors="replace").strip()
                raise CreationError(name, status_code=response.status_code, detail=body or None)

            async for line in response.aiter_lines():
                self._consume_line(result, line, on_status)

        if not result.success:
            raise CreationError(name, status=result.status, detail="; ".join(result.errors) or None)

        logger.info(f"Model '{name}' created")
        return result

    def _consume_line(
        self,
        result: CreationResult,
        line: str,
        on_status: StatusCallback | None,
    ) -> None:
        line = line.strip()
        if not line:
            return
        try:
            message = json.loads(line)
        except ValueError:
            logger.debug(f"Skipping undecodable create line: {line!r}")
            return
        if not isinstance(message, dict):
            return

        error = message.get("error")
        if error:
            logger.warning(f"Create reported error: {error}")
            result.errors.append(str(error))

        status = message.get("status")
        if status:
            result.status = str(status)
            result.statuses.append(result.status)
            if on_status is not None:
                on_status(result.status)


__all__ = ["CreationResult", "ModelRecreator", "StatusCallback", "SUCCESS_STATUS"]
