"""Error taxonomy for spec conversion and tool execution."""

from __future__ import annotations

from typing import Optional


class OpenAPIMcpError(Exception):
    pass


class ValidationError(OpenAPIMcpError):
    """The API description is malformed or incomplete."""


class LoadError(OpenAPIMcpError):
    """The API description could not be fetched or parsed."""


class AuthenticationRequiredError(OpenAPIMcpError):
    """The API requires a credential and none was supplied."""


class ExecutionError(OpenAPIMcpError):
    pass


class ApiError(ExecutionError):
    def __init__(self, status_code: int, body: str, reason: Optional[str] = None) -> None:
        self.status_code = status_code
        self.body = body
        self.reason = reason
        message = f"API request failed with status {status_code}"
        if reason:
            message += f" {reason}"
        super().__init__(f"{message}: {body}")


class NetworkError(ExecutionError):
    pass


class TransportError(ExecutionError):
    pass
