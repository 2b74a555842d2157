"""OpenAPI document loading and validation."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

import httpx
import yaml

from .errors import LoadError, ValidationError


logger = logging.getLogger(__name__)


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


async def fetch_text(source: str, timeout: float = 30) -> str:
    if is_url(source):
        try:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                response = await client.get(source)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise LoadError(f"Failed to fetch OpenAPI spec from URL: {exc}") from exc
        return response.text

    try:
        return Path(source).read_text(encoding="utf-8")
    except OSError as exc:
        raise LoadError(f"Failed to read OpenAPI spec file: {exc}") from exc


def parse_document(content: str, source: str) -> Any:
    """Parse YAML for .yaml/.yml sources, JSON for everything else."""
    try:
        if source.lower().endswith((".yaml", ".yml")):
            return yaml.safe_load(content)
        return json.loads(content)
    except (yaml.YAMLError, ValueError) as exc:
        raise LoadError(f"Failed to parse OpenAPI spec: {exc}") from exc


def validate_document(document: Any) -> Dict[str, Any]:
    if document is None:
        raise ValidationError("OpenAPI spec is undefined or null")
    if not isinstance(document, dict):
        raise ValidationError("OpenAPI spec must be an object")
    for key in ("openapi", "info", "paths"):
        if document.get(key) in (None, ""):
            raise ValidationError(f'Missing "{key}" field in spec')
    return document


async def load_document(source: str) -> Dict[str, Any]:
    logger.info("Loading OpenAPI spec from %s", source)
    content = await fetch_text(source)
    document = validate_document(parse_document(content, source))
    info = document.get("info") or {}
    logger.info("Loaded %s %s", info.get("title", "OpenAPI spec"), info.get("version", ""))
    return document
