"""Register a generated server in the Claude Desktop configuration."""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

COMMAND_NAME = "openapi-mcp"
CONFIG_FILENAME = "claude_desktop_config.json"


def candidate_config_paths(
    home: Optional[Path] = None,
    platform: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> List[Path]:
    home = home or Path.home()
    platform = platform or sys.platform
    environ = os.environ if environ is None else environ

    if platform == "darwin":
        return [home / "Library" / "Application Support" / "Claude" / CONFIG_FILENAME]
    if platform == "win32":
        return [home / "AppData" / "Roaming" / "Claude" / CONFIG_FILENAME]
    if platform.startswith("linux"):
        paths = [
            home / ".config" / "Claude" / CONFIG_FILENAME,
            home / ".claude" / CONFIG_FILENAME,
        ]
        if environ.get("XDG_CONFIG_HOME"):
            paths.insert(0, Path(environ["XDG_CONFIG_HOME"]) / "Claude" / CONFIG_FILENAME)
        return paths
    return []


def find_config_path(**kwargs: Any) -> Optional[Path]:
    """Return the first existing config file, else the most likely location."""
    paths = candidate_config_paths(**kwargs)
    for path in paths:
        if path.exists():
            return path
    return paths[0] if paths else None


def default_server_name(
    spec_path: str,
    document: Mapping[str, Any],
    server_name: Optional[str] = None,
    name: Optional[str] = None,
) -> str:
    if server_name:
        return server_name
    if name:
        return name
    title = (document.get("info") or {}).get("title")
    if title:
        return re.sub(r"[^a-z0-9]", "_", str(title).lower())
    return Path(spec_path).stem


def build_server_args(
    spec_path: str,
    api_key: Optional[str] = None,
    name: Optional[str] = None,
    version: Optional[str] = None,
    base_url: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> List[str]:
    args = [spec_path]
    if api_key:
        args.extend(["-k", api_key])
    if name:
        args.extend(["-n", name])
    if version:
        args.extend(["-v", version])
    if base_url:
        args.extend(["-u", base_url])
    for header, value in (headers or {}).items():
        args.extend(["-H", f"{header}: {value}"])
    return args


def register_server(
    server_name: str,
    args: List[str],
    config_path: Optional[Path] = None,
) -> Optional[Path]:
    """Add or replace ``mcpServers[server_name]``. Failures are logged, not raised."""
    config_path = config_path or find_config_path()
    if config_path is None:
        logger.warning("Could not find Claude Desktop config file. Continuing without registration.")
        return None

    config: Dict[str, Any] = {}
    try:
        config = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        config = {}
    if not isinstance(config, dict):
        config = {}

    servers = config.get("mcpServers")
    if not isinstance(servers, dict):
        servers = {}
    servers[server_name] = {"command": COMMAND_NAME, "args": args}
    config["mcpServers"] = servers

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(json.dumps(config, indent=2), encoding="utf-8")
    except OSError as exc:
        logger.warning("Failed to register with Claude Desktop: %s", exc)
        return None

    logger.info("Registered %s in %s", server_name, config_path)
    return config_path
