"""
Configuration module for Bitbucket Pull Request MCP Server.

Handles environment variables and settings using Pydantic.
"""

from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Bitbucket API Configuration
    bitbucket_api_url: str = "https://api.bitbucket.org/2.0"
    bitbucket_token: str = ""

    # Default workspace used when a tool call omits owner/workspace
    bitbucket_workspace: Optional[str] = None

    # Outbound request timeout in seconds (httpx default when unset)
    bitbucket_timeout: Optional[float] = None

    # Logging
    log_level: str = "INFO"
    log_structured: bool = False
    log_file: Optional[str] = None

    # REST variant
    api_host: str = "127.0.0.1"
    api_port: int = 3000

    @field_validator("bitbucket_workspace", "log_file", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("bitbucket_timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("bitbucket_timeout must be > 0")
        return v

    def model_post_init(self, __context) -> None:
        """Validate that authentication is properly configured."""
        if not self.bitbucket_token.strip():
            raise ValueError("BITBUCKET_TOKEN is required")
