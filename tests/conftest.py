"""Shared fixtures for the openapi-mcp test-suite.

HTTP traffic never leaves the process: every client is an
``httpx.AsyncClient`` wired to an ``httpx.MockTransport``.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Callable, Dict, List

import httpx
import pytest
import yaml


FIXTURES = Path(__file__).parent / "fixtures"
PETSTORE_PATH = FIXTURES / "petstore.yaml"


@pytest.fixture(scope="session")
def _petstore_document() -> Dict[str, Any]:
    return yaml.safe_load(PETSTORE_PATH.read_text(encoding="utf-8"))


@pytest.fixture
def petstore(_petstore_document) -> Dict[str, Any]:
    """A fresh copy of the petstore description for each test."""
    return copy.deepcopy(_petstore_document)


@pytest.fixture
def minimal_document() -> Dict[str, Any]:
    return {
        "openapi": "3.0.0",
        "info": {"title": "Minimal", "version": "0.1.0"},
        "paths": {},
    }


class RecordingTransport:
    """Answer every request with ``responder`` and remember what was sent."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self.responder = responder
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def recorder() -> Callable[..., RecordingTransport]:
    def _make(
        responder: Callable[[httpx.Request], httpx.Response] | None = None,
    ) -> RecordingTransport:
        return RecordingTransport(responder or (lambda request: httpx.Response(200, json={"ok": True})))

    return _make
