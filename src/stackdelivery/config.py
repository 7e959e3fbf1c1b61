from __future__ import annotations

from enum import Enum
from typing import Callable, Literal, Optional, Tuple

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_HOST = "cdn.contentstack.io"
REGIONAL_HOST = "cdn.contentstack.com"


class Region(str, Enum):
    """Data-centre regions the delivery API is served from."""

    US = "us"
    EU = "eu"
    AZURE_NA = "azure-na"
    AZURE_EU = "azure-eu"
    GCP_NA = "gcp-na"


class BackoffStrategy(str, Enum):
    FIXED = "fixed"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


class RetryOptions(BaseModel):
    """Retry policy applied by the transport on transient failures."""

    enabled: bool = True
    retry_limit: int = Field(default=3, ge=0, le=10)
    retry_delay: float = Field(default=1.0, ge=0)  # seconds
    backoff_strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    retryable_status_codes: Tuple[int, ...] = (408, 429, 502, 503, 504)
    # custom_backoff(attempt, status_code, exception) -> seconds; status is -1 on transport errors
    custom_backoff: Optional[Callable[[int, int, Optional[BaseException]], float]] = None

    @field_validator("retryable_status_codes")
    @classmethod
    def _check_codes(cls, codes: Tuple[int, ...]) -> Tuple[int, ...]:
        for code in codes:
            if code < 100 or code > 599:
                raise ValueError(f"Invalid HTTP status code: {code}. Must be between 100 and 599.")
        return codes

    def delay_for(self, attempt: int, status_code: int = -1, exc: Optional[BaseException] = None) -> float:
        if self.custom_backoff is not None:
            return float(self.custom_backoff(attempt, status_code, exc))
        if self.backoff_strategy is BackoffStrategy.LINEAR:
            return self.retry_delay * (attempt + 1)
        if self.backoff_strategy is BackoffStrategy.EXPONENTIAL:
            return self.retry_delay * (2**attempt)
        return self.retry_delay


class LivePreviewConfig(BaseModel):
    """Live preview settings; the hash and content type are set at runtime."""

    enabled: bool = False
    host: Optional[str] = None
    management_token: Optional[str] = None
    preview_token: Optional[str] = None
    live_preview: Optional[str] = None
    content_type_uid: Optional[str] = None


class StackConfig(BaseModel):
    """Connection values for one stack."""

    api_key: Optional[str] = None
    delivery_token: Optional[str] = None
    environment: Optional[str] = None
    region: Region = Region.US
    host: str = DEFAULT_HOST
    scheme: str = "https://"
    version: str = "v3"
    branch: Optional[str] = None
    timeout: float = 30.0
    retry: RetryOptions = Field(default_factory=RetryOptions)
    live_preview: LivePreviewConfig = Field(default_factory=LivePreviewConfig)

    def resolved_host(self) -> str:
        """Host for regular delivery calls after applying the region."""
        host = self.host
        if self.region is not Region.US:
            if host == DEFAULT_HOST:
                host = REGIONAL_HOST
            host = f"{self.region.value}-{host}"
        return host

    def base_url(self, host: Optional[str] = None) -> str:
        return f"{self.scheme}{host or self.resolved_host()}"


class McpConfig(BaseModel):
    """Settings for the bundled MCP server."""

    log_level: str = "INFO"
    # Transport settings for FastMCP: "stdio" (default), "http", or "sse"
    transport: Literal["stdio", "http", "sse"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 8000


class Settings(BaseSettings):
    """Top-level settings loaded from environment variables and .env only."""

    model_config = SettingsConfigDict(
        env_prefix="STACKDELIVERY_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    stack: StackConfig = StackConfig()
    mcp: McpConfig = McpConfig()


def load_settings() -> Settings:
    """Load settings from environment variables and .env only."""
    return Settings()  # type: ignore[call-arg]
