"""OpenAPI operation extraction."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from .errors import ValidationError
from .models import HTTP_METHODS, PARAMETER_LOCATIONS, Operation, Parameter, RequestBody


logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w\s]")


def synthesize_operation_id(method: str, path: str) -> str:
    return f"{method.upper()}_{_NON_WORD.sub('_', path)}"


def extract_operations(document: Dict[str, Any]) -> List[Operation]:
    """Flatten the path table into one Operation per (path, method) pair."""
    paths = document.get("paths")
    if paths is None:
        raise ValidationError('Missing "paths" field in spec')
    if not isinstance(paths, dict):
        raise ValidationError('"paths" must be a mapping')

    operations: List[Operation] = []
    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        shared_parameters = _parse_parameters(path_item.get("parameters") or [])
        path_base_url = _first_server_url(path_item.get("servers"))

        for method, operation in path_item.items():
            if method.lower() not in HTTP_METHODS or not isinstance(operation, dict):
                continue
            operation_id = operation.get("operationId") or synthesize_operation_id(
                method, path
            )
            parameters = _merge_parameters(
                shared_parameters, _parse_parameters(operation.get("parameters") or [])
            )
            operations.append(
                Operation(
                    path=path,
                    method=method.upper(),
                    operation_id=operation_id,
                    summary=operation.get("summary"),
                    description=operation.get("description"),
                    parameters=tuple(parameters),
                    request_body=_parse_request_body(operation.get("requestBody")),
                    base_url=_first_server_url(operation.get("servers")) or path_base_url,
                )
            )

    logger.debug("Extracted %s operations from %s paths", len(operations), len(paths))
    return operations


def _parse_parameters(raw_parameters: Iterable[Any]) -> List[Parameter]:
    parameters: List[Parameter] = []
    for raw in raw_parameters:
        if not isinstance(raw, dict):
            continue
        name = raw.get("name")
        if not name:
            # unresolved $ref parameters carry no name
            continue
        location = raw.get("in", "query")
        if location not in PARAMETER_LOCATIONS:
            logger.warning("Skipping parameter %s with unknown location %s", name, location)
            continue
        parameters.append(
            Parameter(
                name=name,
                location=location,
                required=bool(raw.get("required", False)),
                schema=raw.get("schema") or {},
                description=raw.get("description"),
            )
        )
    return parameters


def _merge_parameters(shared: List[Parameter], own: List[Parameter]) -> List[Parameter]:
    overridden = {(param.name, param.location) for param in own}
    merged = [param for param in shared if (param.name, param.location) not in overridden]
    merged.extend(own)
    return merged


def _parse_request_body(raw: Any) -> Optional[RequestBody]:
    if not isinstance(raw, dict):
        return None
    content = raw.get("content") or {}
    return RequestBody(
        required=bool(raw.get("required", False)),
        content={
            content_type: media if isinstance(media, dict) else {}
            for content_type, media in content.items()
        },
        description=raw.get("description"),
    )


def _first_server_url(servers: Any) -> Optional[str]:
    if not servers or not isinstance(servers, list):
        return None
    server = servers[0]
    if isinstance(server, dict):
        return server.get("url")
    return None


def document_base_url(document: Dict[str, Any]) -> Optional[str]:
    return _first_server_url(document.get("servers"))
