"""Request marshaling and HTTP execution for operation tools."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

import httpx

from .auth import AuthContext
from .errors import ApiError, NetworkError, TransportError
from .logging import redact_headers, redact_payload
from .models import JSON_CONTENT_TYPE, Operation, RequestPlan
from .schema import ArrayRule, ScalarKind, ScalarRule, coerce_array_value, translate_fragment


logger = logging.getLogger(__name__)

_PATH_TOKEN = re.compile(r"\{([^}]+)\}")


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


class RequestMarshaler:
    """Map invocation arguments onto a concrete request for one operation."""

    def __init__(
        self,
        auth: Optional[AuthContext] = None,
        default_headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.auth = auth or AuthContext()
        self.default_headers = self.auth.apply_headers(default_headers or {})

    def marshal(self, operation: Operation, arguments: Mapping[str, Any]) -> RequestPlan:
        url = self._build_path(operation.path, arguments)
        query = self._build_query(operation, arguments)
        headers = self._build_headers(operation, arguments)

        request_body = operation.request_body
        if request_body is not None and request_body.is_multipart:
            return RequestPlan(
                url=url,
                method=operation.method,
                query_params=query,
                headers=headers,
                multipart=self._build_multipart(operation, arguments),
            )

        headers["Content-Type"] = JSON_CONTENT_TYPE
        return RequestPlan(
            url=url,
            method=operation.method,
            query_params=query,
            headers=headers,
            body=self._build_json_body(operation, arguments),
        )

    def _build_path(self, path: str, arguments: Mapping[str, Any]) -> str:
        def substitute(match: "re.Match[str]") -> str:
            value = arguments.get(match.group(1))
            if value is None:
                return ""
            return quote(_stringify(value), safe="")

        return _PATH_TOKEN.sub(substitute, path)

    def _build_query(self, operation: Operation, arguments: Mapping[str, Any]) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        for parameter in operation.parameters_in("query"):
            value = arguments.get(parameter.name)
            if isinstance(value, dict):
                value = _stringify(value)
            if value is not None:
                query[parameter.name] = value
        query.update(self.auth.query_params())
        return query

    def _build_headers(self, operation: Operation, arguments: Mapping[str, Any]) -> Dict[str, str]:
        headers = dict(self.default_headers)
        for parameter in operation.parameters_in("header"):
            value = arguments.get(parameter.name)
            if value is not None:
                headers[parameter.name] = _stringify(value)

        cookies = [
            f"{parameter.name}={_stringify(arguments[parameter.name])}"
            for parameter in operation.parameters_in("cookie")
            if arguments.get(parameter.name) is not None
        ]
        if cookies:
            headers["Cookie"] = "; ".join(cookies)
        return headers

    def _field_source(self, arguments: Mapping[str, Any]) -> Mapping[str, Any]:
        nested = arguments.get("body")
        if isinstance(nested, Mapping):
            return nested
        return arguments

    def _build_json_body(self, operation: Operation, arguments: Mapping[str, Any]) -> Any:
        if operation.request_body is None:
            return None
        schema = operation.request_body_schema
        if schema is None or "$ref" in schema:
            return arguments.get("body")

        schema_type = schema.get("type")
        if schema_type == "array":
            return arguments.get("body")

        properties = schema.get("properties") if schema_type == "object" else None
        if not properties:
            return arguments.get("body")

        source = self._field_source(arguments)
        body: Dict[str, Any] = {}
        for name, prop in properties.items():
            value = source.get(name)
            if value is None:
                continue
            kind = _scalar_array_kind(prop)
            if kind is not None:
                value = coerce_array_value(value, kind)
            body[name] = value
        return body

    def _build_multipart(
        self, operation: Operation, arguments: Mapping[str, Any]
    ) -> List[Tuple[str, Tuple[None, str]]]:
        source = self._field_source(arguments)
        schema = operation.request_body.multipart_schema if operation.request_body else None
        properties = (schema or {}).get("properties") or {}

        if properties:
            names = list(properties)
        else:
            declared = {parameter.name for parameter in operation.parameters}
            names = [name for name in source if name not in declared and name != "body"]

        parts: List[Tuple[str, Tuple[None, str]]] = []
        for name in names:
            value = source.get(name)
            if value is None:
                continue
            kind = _scalar_array_kind(properties.get(name))
            if kind is not None:
                value = coerce_array_value(value, kind)
            values = value if isinstance(value, list) else [value]
            for item in values:
                parts.append((name, (None, _stringify(item))))
        return parts


def _scalar_array_kind(fragment: Any) -> Optional[ScalarKind]:
    rule = translate_fragment(fragment, depth=1)
    if isinstance(rule, ArrayRule) and isinstance(rule.element, ScalarRule):
        return rule.element.kind
    return None


class RequestExecutor:
    """Send request plans over one shared connection pool."""

    def __init__(
        self,
        default_base_url: Optional[str] = None,
        base_url_override: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.default_base_url = default_base_url or ""
        self.base_url_override = base_url_override
        self._client = client or httpx.AsyncClient()

    def resolve_base_url(self, operation_base_url: Optional[str] = None) -> str:
        return self.base_url_override or operation_base_url or self.default_base_url

    async def execute(self, plan: RequestPlan, operation_base_url: Optional[str] = None) -> Any:
        url = self._build_url(self.resolve_base_url(operation_base_url), plan.url)
        logger.debug(
            "%s %s params=%s headers=%s",
            plan.method,
            url,
            redact_payload(plan.query_params),
            redact_headers(plan.headers),
        )

        try:
            request_kwargs = self._request_kwargs(plan)
            response = await self._client.request(plan.method, url, **request_kwargs)
        except httpx.UnsupportedProtocol as exc:
            raise TransportError(f"Invalid request URL {url!r}: {exc}") from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"No response received from {url}: {exc}") from exc
        except Exception as exc:
            raise TransportError(str(exc)) from exc

        if not response.is_success:
            logger.warning("%s %s returned %s", plan.method, url, response.status_code)
            raise ApiError(response.status_code, response.text, response.reason_phrase)

        return self._decode(response)

    def _request_kwargs(self, plan: RequestPlan) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"params": plan.query_params, "headers": plan.headers}
        if plan.multipart is not None:
            kwargs["files"] = plan.multipart
        elif plan.body is not None:
            kwargs["content"] = json.dumps(plan.body)
        return kwargs

    async def aclose(self) -> None:
        await self._client.aclose()

    def _build_url(self, base_url: str, path: str) -> str:
        if not base_url:
            return path
        return base_url.rstrip("/") + path

    def _decode(self, response: httpx.Response) -> Any:
        if not response.content:
            return ""
        try:
            return response.json()
        except ValueError:
            return response.text
