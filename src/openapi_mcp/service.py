"""Tool invocation boundary."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from .errors import ExecutionError
from .executors import RequestExecutor, RequestMarshaler
from .logging import redact_payload
from .models import ToolDescriptor
from .tool_registry import ToolRegistry

logger = logging.getLogger(__name__)


class ToolService:
    """
    Runs tool calls against the live API.

    Every failure is turned into a textual result so that one bad call
    never reaches the transport layer as an exception.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        marshaler: RequestMarshaler,
        executor: RequestExecutor,
    ) -> None:
        self.registry = registry
        self.marshaler = marshaler
        self.executor = executor

    async def invoke(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        arguments = dict(arguments or {})
        logger.info("Invoking tool=%s arguments=%s", name, redact_payload(arguments))

        descriptor = self.registry.get(name)
        if descriptor is None:
            return self._format_error(f"Unknown tool: {name}")

        try:
            validated = self._validate(descriptor, arguments)
        except PydanticValidationError as exc:
            logger.warning("Invalid arguments for tool=%s: %s", name, exc)
            return self._format_error(f"Invalid arguments for {name}: {exc}")

        try:
            plan = self.marshaler.marshal(descriptor.operation, validated)
            result = await self.executor.execute(plan, descriptor.operation.base_url)
        except ExecutionError as exc:
            logger.error("Tool execution failed: tool=%s error=%s", name, exc)
            return self._format_error(str(exc))
        except Exception as exc:
            logger.exception("Unexpected failure in tool=%s", name)
            return self._format_error(str(exc) or exc.__class__.__name__)

        return self._format_result(result)

    def _validate(self, descriptor: ToolDescriptor, arguments: Dict[str, Any]) -> Dict[str, Any]:
        grouped = self._grouped_body_fields(descriptor, arguments)
        if not grouped:
            model = descriptor.input_model.model_validate(arguments)
            return model.model_dump(by_alias=True, exclude_unset=True)

        # body fields grouped under "body" are checked as top-level fields,
        # then handed back to the marshaler in their group
        view = {key: value for key, value in arguments.items() if key != "body"}
        view.update(grouped)
        validated = descriptor.input_model.model_validate(view).model_dump(
            by_alias=True, exclude_unset=True
        )
        body = dict(arguments["body"])
        for key in grouped:
            body[key] = validated[key] if key in validated else grouped[key]
            if key not in arguments:
                validated.pop(key, None)
        validated["body"] = body
        return validated

    def _grouped_body_fields(
        self, descriptor: ToolDescriptor, arguments: Mapping[str, Any]
    ) -> Dict[str, Any]:
        nested = arguments.get("body")
        if not isinstance(nested, Mapping) or "body" in descriptor.parameter_schema:
            return {}
        schema = descriptor.operation.request_body_schema or {}
        properties = schema.get("properties") if schema.get("type") == "object" else None
        if not isinstance(properties, dict):
            return {}
        return {key: value for key, value in nested.items() if key in properties}

    def _format_result(self, result: Any) -> Dict[str, Any]:
        text = result if isinstance(result, str) else json.dumps(result, indent=2)
        return {"content": [{"type": "text", "text": text}]}

    def _format_error(self, message: str) -> Dict[str, Any]:
        return {"content": [{"type": "text", "text": f"Error: {message}"}]}
