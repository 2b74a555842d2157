"""Security scheme detection and credential placement."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .errors import AuthenticationRequiredError
from .models import HTTP_METHODS


logger = logging.getLogger(__name__)

BEARER = "bearer"
API_KEY = "apiKey"
OAUTH2 = "oauth2"
UNKNOWN = "unknown"

BEARER_HEADER = "bearer-header"
NAMED_HEADER = "named-header"
NAMED_QUERY = "named-query"

_AUTH_HEADERS = {"authorization", "x-api-key", "api-key"}


@dataclass(frozen=True)
class SecurityScheme:
    key: str
    kind: str
    name: Optional[str] = None
    location: Optional[str] = None


@dataclass(frozen=True)
class Placement:
    kind: str
    name: str


@dataclass(frozen=True)
class AuthContext:
    credential: Optional[str] = None
    placement: Optional[Placement] = None

    def apply_headers(self, headers: Mapping[str, str]) -> Dict[str, str]:
        merged = dict(headers)
        if not self.credential or self.placement is None:
            return merged
        if self.placement.kind == BEARER_HEADER:
            merged[self.placement.name] = f"Bearer {self.credential}"
        elif self.placement.kind == NAMED_HEADER:
            merged[self.placement.name] = self.credential
        return merged

    def query_params(self) -> Dict[str, str]:
        if self.credential and self.placement and self.placement.kind == NAMED_QUERY:
            return {self.placement.name: self.credential}
        return {}


def classify_schemes(document: Dict[str, Any]) -> List[SecurityScheme]:
    components = document.get("components") or {}
    raw_schemes = components.get("securitySchemes") or {}

    schemes: List[SecurityScheme] = []
    for key, scheme in raw_schemes.items():
        if not isinstance(scheme, dict):
            continue
        scheme_type = scheme.get("type")
        if scheme_type == "http" and str(scheme.get("scheme", "")).lower() == "bearer":
            schemes.append(SecurityScheme(key=key, kind=BEARER))
        elif scheme_type == "apiKey":
            schemes.append(
                SecurityScheme(
                    key=key,
                    kind=API_KEY,
                    name=scheme.get("name") or "api_key",
                    location=scheme.get("in") or "header",
                )
            )
        elif scheme_type == "oauth2":
            schemes.append(SecurityScheme(key=key, kind=OAUTH2))
        else:
            schemes.append(SecurityScheme(key=key, kind=UNKNOWN))
    return schemes


def select_scheme(schemes: List[SecurityScheme]) -> Optional[SecurityScheme]:
    """apiKey wins over every other scheme; otherwise the first declared one."""
    for scheme in schemes:
        if scheme.kind == API_KEY:
            return scheme
    return schemes[0] if schemes else None


def requires_authentication(document: Dict[str, Any]) -> bool:
    if document.get("security"):
        return True
    for path_item in (document.get("paths") or {}).values():
        if not isinstance(path_item, dict):
            continue
        for method, operation in path_item.items():
            if method.lower() in HTTP_METHODS and isinstance(operation, dict):
                if operation.get("security"):
                    return True
    return False


def has_auth_header(headers: Mapping[str, str]) -> bool:
    return any(name.lower() in _AUTH_HEADERS for name in headers)


def resolve_auth(
    document: Dict[str, Any],
    credential: Optional[str],
    headers: Optional[Mapping[str, str]] = None,
) -> AuthContext:
    headers = headers or {}
    if not credential:
        if requires_authentication(document) and not has_auth_header(headers):
            raise AuthenticationRequiredError("API requires authentication")
        return AuthContext()

    scheme = select_scheme(classify_schemes(document))
    if scheme is None:
        logger.warning("Credential supplied but the OpenAPI description declares no security scheme")
        return AuthContext(credential=credential)

    if scheme.kind == BEARER:
        logger.info("Using Bearer authentication (%s)", scheme.key)
        return AuthContext(credential, Placement(BEARER_HEADER, "Authorization"))
    if scheme.kind == API_KEY:
        if scheme.location == "header":
            logger.info("Using API key authentication in header %s", scheme.name)
            return AuthContext(credential, Placement(NAMED_HEADER, scheme.name or "api_key"))
        if scheme.location == "query":
            logger.info("API key will be sent as query parameter %s", scheme.name)
            return AuthContext(credential, Placement(NAMED_QUERY, scheme.name or "api_key"))
        logger.warning("API key location %s is not supported", scheme.location)
        return AuthContext(credential=credential)

    logger.warning(
        "Security scheme %s (%s) is not handled automatically; supply the header yourself",
        scheme.key,
        scheme.kind,
    )
    return AuthContext(credential=credential)
