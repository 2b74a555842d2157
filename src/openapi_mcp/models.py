"""Internal models for operations, tools and request plans."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel

if TYPE_CHECKING:
    from .schema import ParameterField


HTTP_METHODS = ("get", "post", "put", "delete", "patch", "options", "head")
PARAMETER_LOCATIONS = ("path", "query", "header", "cookie")

JSON_CONTENT_TYPE = "application/json"
MULTIPART_CONTENT_TYPE = "multipart/form-data"


@dataclass(frozen=True)
class Parameter:
    name: str
    location: str
    required: bool = False
    schema: Dict[str, Any] = field(default_factory=dict)
    description: Optional[str] = None


@dataclass(frozen=True)
class RequestBody:
    required: bool = False
    content: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    description: Optional[str] = None

    @property
    def content_types(self) -> List[str]:
        return list(self.content)

    def schema_for(self, content_type: str) -> Optional[Dict[str, Any]]:
        media = self.content.get(content_type) or {}
        schema = media.get("schema")
        return schema if isinstance(schema, dict) else None

    @property
    def json_schema(self) -> Optional[Dict[str, Any]]:
        return self.schema_for(JSON_CONTENT_TYPE)

    @property
    def multipart_schema(self) -> Optional[Dict[str, Any]]:
        return self.schema_for(MULTIPART_CONTENT_TYPE)

    @property
    def is_multipart(self) -> bool:
        return (
            MULTIPART_CONTENT_TYPE in self.content
            and JSON_CONTENT_TYPE not in self.content
        )


@dataclass(frozen=True)
class Operation:
    path: str
    method: str
    operation_id: str
    summary: Optional[str] = None
    description: Optional[str] = None
    parameters: Tuple[Parameter, ...] = ()
    request_body: Optional[RequestBody] = None
    base_url: Optional[str] = None

    @property
    def request_body_schema(self) -> Optional[Dict[str, Any]]:
        if self.request_body is None:
            return None
        return self.request_body.json_schema

    def parameters_in(self, location: str) -> List[Parameter]:
        return [param for param in self.parameters if param.location == location]


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    parameter_schema: Dict[str, "ParameterField"]
    path: str
    method: str
    operation: Operation
    input_model: Type[BaseModel]

    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema()


@dataclass(frozen=True)
class RequestPlan:
    url: str
    method: str
    query_params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    multipart: Optional[List[Tuple[str, Tuple[None, str]]]] = None

    @property
    def content_type(self) -> Optional[str]:
        if self.multipart is not None:
            return MULTIPART_CONTENT_TYPE
        return self.headers.get("Content-Type")
