"""Translate OpenAPI schema fragments into validation rules.

Handles:
- string / number / integer / boolean scalars
- string enums (closed literal sets)
- string date-time formats (ISO-8601 checked strings)
- arrays of scalars, degrading other item types to unconstrained values
- objects with properties, one level deep; deeper objects, property-less
  objects and $ref fragments become permissive objects
- anything else becomes an unconstrained value

Rules are plain tagged dataclasses. ``build_input_model`` turns a flat
field map into a pydantic model used both for argument validation and
for the JSON schema advertised to callers.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Type, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    WithJsonSchema,
    create_model,
)

from .models import Operation, Parameter, RequestBody


class ScalarKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATETIME = "date-time"


@dataclass(frozen=True)
class ScalarRule:
    kind: ScalarKind


@dataclass(frozen=True)
class EnumRule:
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class ArrayRule:
    element: "SchemaRule"


@dataclass(frozen=True)
class ObjectRule:
    fields: Dict[str, "ParameterField"] = field(default_factory=dict)


@dataclass(frozen=True)
class PermissiveRule:
    # True: any mapping with arbitrary keys. False: any value at all.
    structured: bool = False


SchemaRule = Union[ScalarRule, EnumRule, ArrayRule, ObjectRule, PermissiveRule]


@dataclass(frozen=True)
class ParameterField:
    rule: SchemaRule
    required: bool = False
    description: Optional[str] = None


_SCALAR_KINDS = {
    "string": ScalarKind.STRING,
    "number": ScalarKind.NUMBER,
    "integer": ScalarKind.INTEGER,
    "boolean": ScalarKind.BOOLEAN,
}

_ISO_DATETIME = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})$"
)


def translate_fragment(fragment: Any, depth: int = 0) -> SchemaRule:
    """Convert one schema fragment into a rule.

    Only fragments at ``depth`` 0 may expand into an ObjectRule; objects
    found below that degrade to a permissive object.
    """
    if not isinstance(fragment, dict):
        return PermissiveRule()
    if "$ref" in fragment:
        return PermissiveRule(structured=True)

    schema_type = fragment.get("type")
    if schema_type == "string":
        if fragment.get("format") == "date-time":
            return ScalarRule(ScalarKind.DATETIME)
        if fragment.get("enum"):
            return EnumRule(tuple(fragment["enum"]))
        return ScalarRule(ScalarKind.STRING)
    if schema_type in _SCALAR_KINDS:
        return ScalarRule(_SCALAR_KINDS[schema_type])
    if schema_type == "array":
        items = fragment.get("items")
        item_type = items.get("type") if isinstance(items, dict) else None
        if item_type in _SCALAR_KINDS and "$ref" not in items:
            return ArrayRule(ScalarRule(_SCALAR_KINDS[item_type]))
        return ArrayRule(PermissiveRule())
    if schema_type == "object":
        properties = fragment.get("properties")
        if depth == 0 and isinstance(properties, dict) and properties:
            return ObjectRule(translate_properties(fragment, depth + 1))
        return PermissiveRule(structured=True)
    return PermissiveRule()


def translate_properties(fragment: Dict[str, Any], depth: int) -> Dict[str, ParameterField]:
    required = set(fragment.get("required") or [])
    fields: Dict[str, ParameterField] = {}
    for name, prop in (fragment.get("properties") or {}).items():
        fields[name] = ParameterField(
            rule=translate_fragment(prop, depth),
            required=name in required,
            description=prop.get("description") if isinstance(prop, dict) else None,
        )
    return fields


def translate_parameter(parameter: Parameter) -> ParameterField:
    return ParameterField(
        rule=translate_fragment(parameter.schema),
        required=parameter.required,
        description=parameter.description,
    )


def translate_request_body(request_body: Optional[RequestBody]) -> Dict[str, ParameterField]:
    """Flatten a JSON request body into top-level fields.

    Non-JSON bodies contribute nothing.
    """
    if request_body is None:
        return {}
    schema = request_body.json_schema
    if schema is None:
        return {}

    if "$ref" in schema:
        return {"body": ParameterField(PermissiveRule(structured=True), True, "Request body")}
    schema_type = schema.get("type")
    if schema_type == "object":
        if schema.get("properties"):
            return translate_properties(schema, depth=1)
        return {"body": ParameterField(PermissiveRule(structured=True), True, "Request body")}
    if schema_type == "array":
        return {"body": ParameterField(ArrayRule(PermissiveRule()), True, "Array of items")}
    return {}


def translate_operation(operation: Operation) -> Dict[str, ParameterField]:
    fields: Dict[str, ParameterField] = {}
    for parameter in operation.parameters:
        fields[parameter.name] = translate_parameter(parameter)
    # body fields win over same-named parameters
    fields.update(translate_request_body(operation.request_body))
    return fields


_LITERAL_KINDS = (ScalarKind.NUMBER, ScalarKind.INTEGER, ScalarKind.BOOLEAN)


def coerce_array_value(value: Any, kind: Optional[ScalarKind] = None) -> Any:
    """Recover a list from a string some callers send for array fields.

    JSON array literals are parsed, anything else is split on commas.
    A string that yields no parts is wrapped as a single element. For
    numeric and boolean ``kind`` each split part is read as a JSON scalar
    when it is one.
    """
    if not isinstance(value, str):
        return value
    text = value.strip()
    if text.startswith("[") and text.endswith("]"):
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return parsed
    parts = [part.strip() for part in value.split(",") if part.strip()]
    if not parts:
        return [value]
    if kind in _LITERAL_KINDS:
        return [_parse_literal(part) for part in parts]
    return parts


def _parse_literal(part: str) -> Any:
    try:
        parsed = json.loads(part)
    except ValueError:
        return part
    if isinstance(parsed, (bool, int, float)):
        return parsed
    return part


def _check_datetime(value: str) -> str:
    if not _ISO_DATETIME.match(value):
        raise ValueError("Invalid ISO-8601 datetime")
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"Invalid ISO-8601 datetime: {exc}") from exc
    return value


_SCALAR_ANNOTATIONS: Dict[ScalarKind, Any] = {
    ScalarKind.STRING: StrictStr,
    ScalarKind.NUMBER: Annotated[
        Union[StrictInt, StrictFloat], WithJsonSchema({"type": "number"})
    ],
    ScalarKind.INTEGER: StrictInt,
    ScalarKind.BOOLEAN: StrictBool,
    ScalarKind.DATETIME: Annotated[
        StrictStr,
        AfterValidator(_check_datetime),
        WithJsonSchema({"type": "string", "format": "date-time"}),
    ],
}


def rule_annotation(rule: SchemaRule, model_name: str = "Object") -> Any:
    if isinstance(rule, ScalarRule):
        return _SCALAR_ANNOTATIONS[rule.kind]
    if isinstance(rule, EnumRule):
        return Literal[rule.values]
    if isinstance(rule, ArrayRule):
        element = rule_annotation(rule.element, model_name)
        if isinstance(rule.element, ScalarRule):
            kind = rule.element.kind
            return Annotated[
                List[element], BeforeValidator(lambda value: coerce_array_value(value, kind))
            ]
        return List[element]
    if isinstance(rule, ObjectRule):
        return build_input_model(model_name, rule.fields)
    if isinstance(rule, PermissiveRule):
        return Dict[str, Any] if rule.structured else Any
    raise TypeError(f"Unsupported schema rule: {rule!r}")


def build_input_model(model_name: str, fields: Dict[str, ParameterField]) -> Type[BaseModel]:
    """Build a pydantic model over ``fields``, keyed by their original names.

    Field names from the description are not always Python identifiers,
    so each one is stored positionally and exposed through its alias.
    Unknown keys are kept so callers can pass a grouped ``body``.
    """
    definitions: Dict[str, Tuple[Any, Any]] = {}
    base_name = _sanitize_name(model_name)
    for index, (name, spec) in enumerate(fields.items()):
        annotation = rule_annotation(spec.rule, f"{base_name}_{_sanitize_name(name)}")
        if spec.required:
            default = Field(..., alias=name, title=name, description=spec.description)
        else:
            annotation = Optional[annotation]
            default = Field(None, alias=name, title=name, description=spec.description)
        definitions[f"field_{index}"] = (annotation, default)

    model_config = ConfigDict(extra="allow")
    return create_model(f"{base_name}Input", __config__=model_config, **definitions)


def _sanitize_name(name: str) -> str:
    return "".join(ch if ch.isalnum() else "_" for ch in name)
