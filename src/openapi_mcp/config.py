"""Configuration for the OpenAPI MCP bridge."""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Optional, Set

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="OPENAPI_MCP_", case_sensitive=False, frozen=True
    )

    server_name: Optional[str] = Field(default=None)
    server_version: Optional[str] = Field(default=None)

    base_url: Optional[str] = Field(default=None)
    api_key: Optional[str] = Field(default=None)
    headers: Dict[str, str] = Field(default_factory=dict)

    transport: str = Field(default="stdio")
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)

    tool_allowlist: Optional[str] = Field(default=None)

    log_level: str = Field(default="INFO")

    def allowed_tools(self) -> Set[str]:
        if not self.tool_allowlist:
            return set()
        return {item.strip() for item in self.tool_allowlist.split(",") if item.strip()}

    def with_overrides(self, **overrides: object) -> "Settings":
        """Return a copy with every non-None override applied."""
        update = {key: value for key, value in overrides.items() if value is not None}
        if not update:
            return self
        return self.model_copy(update=update)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
