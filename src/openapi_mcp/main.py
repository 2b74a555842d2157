"""CLI entry point for the OpenAPI MCP bridge."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from typing import Any, Dict, List, Optional, Tuple

import uvicorn

from .auth import AuthContext, resolve_auth
from .config import Settings, get_settings
from .errors import AuthenticationRequiredError, OpenAPIMcpError
from .loader import load_document
from .logging import configure_logging
from .registration import build_server_args, default_server_name, register_server
from .server import build_server

logger = logging.getLogger(__name__)


def parse_header(value: str) -> Tuple[str, str]:
    name, separator, header_value = value.partition(":")
    if not separator or not name.strip():
        raise argparse.ArgumentTypeError(f"Header must look like 'Name: Value', got {value!r}")
    return name.strip(), header_value.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openapi-mcp",
        description="Serve every operation of an OpenAPI spec as an MCP tool",
    )
    parser.add_argument("spec", nargs="?", help="Path or URL to the OpenAPI specification file")
    parser.add_argument("-n", "--name", help="Name of the MCP server")
    parser.add_argument("-v", "--version", help="Version of the MCP server")
    parser.add_argument("-u", "--base-url", help="Base URL for the API")
    parser.add_argument("-k", "--api-key", help="API key for authentication")
    parser.add_argument(
        "-H",
        "--header",
        action="append",
        type=parse_header,
        default=[],
        help='HTTP header to include with requests (format: "Name: Value"), repeatable',
    )
    parser.add_argument("-r", "--register", action="store_true", help="Register with Claude Desktop")
    parser.add_argument("-s", "--server-name", help="Server name used in Claude Desktop")
    parser.add_argument(
        "-t",
        "--transport",
        choices=["stdio", "http", "streamable-http", "sse"],
        help="MCP transport (default: stdio)",
    )
    parser.add_argument("--log-level", help="Logging level (default: INFO)")
    return parser


def settings_from_args(args: argparse.Namespace, base: Optional[Settings] = None) -> Settings:
    base = base or get_settings()
    headers: Dict[str, str] = dict(base.headers)
    headers.update(dict(args.header or []))
    return base.with_overrides(
        server_name=args.name,
        server_version=args.version,
        base_url=args.base_url,
        api_key=args.api_key,
        headers=headers,
        transport=args.transport,
        log_level=args.log_level,
    )


def _prompt(question: str) -> str:
    sys.stderr.write(question)
    sys.stderr.flush()
    return sys.stdin.readline().strip()


def _prompt_secret(question: str) -> str:
    return getpass.getpass(question, stream=sys.stderr).strip()


def resolve_startup_auth(document: Dict[str, Any], settings: Settings) -> Tuple[AuthContext, Settings]:
    """Resolve credentials, asking for one when the API requires it."""
    try:
        return resolve_auth(document, settings.api_key, settings.headers), settings
    except AuthenticationRequiredError:
        if not sys.stdin.isatty():
            raise
        logger.warning("API requires authentication")
        api_key = _prompt_secret("Enter API key: ")
        if not api_key:
            raise
        settings = settings.with_overrides(api_key=api_key)
        return resolve_auth(document, api_key, settings.headers), settings


async def _run(args: argparse.Namespace) -> None:
    settings = settings_from_args(args)
    configure_logging(settings.log_level)

    spec_path = args.spec or _prompt("Enter the URL or file path to your OpenAPI spec: ")
    if not spec_path:
        raise OpenAPIMcpError("No OpenAPI spec path provided")

    document = await load_document(spec_path)
    auth, settings = resolve_startup_auth(document, settings)

    if args.register:
        server_name = default_server_name(spec_path, document, args.server_name, settings.server_name)
        register_server(
            server_name,
            build_server_args(
                spec_path,
                api_key=settings.api_key,
                name=settings.server_name,
                version=settings.server_version,
                base_url=settings.base_url,
                headers=settings.headers,
            ),
        )
        logger.info("Restart Claude Desktop for the changes to take effect")

    mcp, app, service = build_server(settings, document, auth)
    try:
        transport = settings.transport.lower()
        if transport == "stdio":
            await mcp.run_stdio_async()
            return
        if not app:
            raise RuntimeError(f"HTTP app unavailable for transport={transport}")
        config = uvicorn.Config(app, host=settings.host, port=settings.port)
        server = uvicorn.Server(config)
        await server.serve()
    finally:
        await service.executor.aclose()


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        asyncio.run(_run(args))
    except OpenAPIMcpError as exc:
        logger.error("Error: %s", exc)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
