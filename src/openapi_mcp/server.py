"""MCP server setup for an OpenAPI description."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastmcp import FastMCP
from fastmcp.tools import Tool
from fastmcp.tools.tool import ToolResult
from mcp.types import TextContent
from pydantic import PrivateAttr

from .auth import AuthContext
from .config import Settings
from .executors import RequestExecutor, RequestMarshaler
from .models import ToolDescriptor
from .openapi import document_base_url
from .service import ToolService
from .tool_registry import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_SERVER_NAME = "OpenAPI MCP Server"
DEFAULT_SERVER_VERSION = "1.0.0"


class OperationTool(Tool):
    """A tool whose input schema comes from an OpenAPI operation."""

    _service: Any = PrivateAttr(default=None)

    @classmethod
    def from_descriptor(cls, descriptor: ToolDescriptor, service: ToolService) -> "OperationTool":
        tool = cls(
            name=descriptor.name,
            description=descriptor.description,
            parameters=descriptor.input_schema(),
        )
        tool._service = service
        return tool

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        result = await self._service.invoke(self.name, arguments)
        return ToolResult(
            content=[TextContent(type="text", text=item["text"]) for item in result["content"]]
        )


def server_identity(settings: Settings, document: Dict[str, Any]) -> tuple[str, str]:
    info = document.get("info") or {}
    name = settings.server_name or info.get("title") or DEFAULT_SERVER_NAME
    version = settings.server_version or info.get("version") or DEFAULT_SERVER_VERSION
    return str(name), str(version)


def build_service(
    settings: Settings,
    document: Dict[str, Any],
    auth: AuthContext,
    client: Optional[Any] = None,
) -> ToolService:
    registry = ToolRegistry.from_document(document, allowlist=settings.allowed_tools())
    marshaler = RequestMarshaler(auth=auth, default_headers=settings.headers)
    executor = RequestExecutor(
        default_base_url=document_base_url(document),
        base_url_override=settings.base_url,
        client=client,
    )
    return ToolService(registry, marshaler, executor)


def build_server(
    settings: Settings,
    document: Dict[str, Any],
    auth: AuthContext,
) -> tuple[FastMCP, object | None, ToolService]:
    service = build_service(settings, document, auth)
    name, version = server_identity(settings, document)

    mcp = FastMCP(name, instructions=_instructions(document), version=version)
    for descriptor in service.registry:
        mcp.add_tool(OperationTool.from_descriptor(descriptor, service))
        logger.info("Registered tool: %s (%s %s)", descriptor.name, descriptor.method, descriptor.path)

    app = _get_http_app(mcp, settings)
    _attach_healthcheck(app, service)
    return mcp, app, service


def _instructions(document: Dict[str, Any]) -> str:
    info = document.get("info") or {}
    title = info.get("title") or "an OpenAPI service"
    instructions = f"Tools generated from the OpenAPI description of {title}."
    if info.get("description"):
        instructions += f"\n\n{info['description']}"
    return instructions


def _attach_healthcheck(app, service: ToolService) -> None:  # type: ignore[no-untyped-def]
    if not app:
        return

    async def healthcheck(_request):  # type: ignore[no-untyped-def]
        from starlette.responses import JSONResponse

        return JSONResponse({"status": "ok", "tools": len(service.registry)})

    app.add_route("/health", healthcheck, methods=["GET"])


def _get_http_app(mcp: FastMCP, settings: Settings):  # type: ignore[no-untyped-def]
    transport = settings.transport.lower()
    if transport in {"http"}:
        return mcp.http_app(transport="http", stateless_http=True, json_response=True)
    if transport in {"streamable-http", "streamablehttp"}:
        return mcp.http_app(transport="streamable-http", stateless_http=True, json_response=True)
    if transport in {"sse"}:
        return mcp.http_app(transport="sse")
    return None
