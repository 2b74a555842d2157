"""Tool registry built from an OpenAPI description."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Set

from .models import Operation, ToolDescriptor
from .openapi import extract_operations
from .schema import ParameterField, build_input_model, translate_operation


logger = logging.getLogger(__name__)


def compose_description(operation: Operation, fields: Dict[str, ParameterField]) -> str:
    description = (
        operation.summary
        or operation.description
        or f"{operation.method.upper()} {operation.path}"
    )
    if operation.summary and operation.description and operation.description != operation.summary:
        description += f"\n\n{operation.description}"

    documented = [(name, spec.description) for name, spec in fields.items() if spec.description]
    if documented:
        description += "\n\nParameters:"
        for name, text in documented:
            description += f"\n- {name}: {text}"

    request_body = operation.request_body
    if request_body is not None and request_body.required:
        required = (request_body.json_schema or {}).get("required") or []
        if required:
            description += "\n\nRequired fields: " + ", ".join(required)

    return description


def build_tool_descriptor(operation: Operation) -> ToolDescriptor:
    fields = translate_operation(operation)
    return ToolDescriptor(
        name=operation.operation_id,
        description=compose_description(operation, fields),
        parameter_schema=fields,
        path=operation.path,
        method=operation.method,
        operation=operation,
        input_model=build_input_model(operation.operation_id, fields),
    )


class ToolRegistry:
    """Read-only mapping of tool name to descriptor, built once at startup."""

    def __init__(self, tools: Dict[str, ToolDescriptor]) -> None:
        self._tools = dict(tools)

    @classmethod
    def from_document(
        cls, document: Dict[str, Any], allowlist: Optional[Set[str]] = None
    ) -> "ToolRegistry":
        tools: Dict[str, ToolDescriptor] = {}
        for operation in extract_operations(document):
            if allowlist and operation.operation_id not in allowlist:
                continue
            descriptor = build_tool_descriptor(operation)
            if descriptor.name in tools:
                logger.warning(
                    "Duplicate tool name %s (%s %s replaces %s %s)",
                    descriptor.name,
                    descriptor.method,
                    descriptor.path,
                    tools[descriptor.name].method,
                    tools[descriptor.name].path,
                )
            tools[descriptor.name] = descriptor
        logger.info("Built %s tools", len(tools))
        return cls(tools)

    def get(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
