"""Configuration management for the Finnhub data source."""

from functools import lru_cache
from typing import Optional, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FinnhubSettings(BaseSettings):
    """Provider endpoints, credentials and streaming limits."""
    
    model_config = SettingsConfigDict(env_prefix="FINNHUB_", extra="ignore")
    
    api_token: Optional[str] = Field(default=None)
    base_url: str = Field(default="https://finnhub.io/api/v1")
    websocket_url: str = Field(default="wss://ws.finnhub.io")
    
    # Streaming
    stream_buffer_capacity: int = Field(default=1000, gt=0)
    stream_close_code: int = Field(default=1001)
    
    # REST transport
    request_timeout: float = Field(default=30.0, gt=0)
    
    # Connectivity probe
    probe_symbol: str = Field(default="AAPL")
    
    @field_validator('base_url', 'websocket_url', mode='before')
    @classmethod
    def strip_trailing_slash(cls, v):
        if isinstance(v, str):
            return v.strip().rstrip('/')
        return v
    
    @field_validator('api_token', mode='before')
    @classmethod
    def blank_token_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v
    
    @property
    def stream_url(self) -> str:
        """Websocket endpoint with the auth token appended."""
        return f"{self.websocket_url}?token={self.api_token or ''}"


class Settings(BaseSettings):
    """Main application settings."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
    )
    
    # Environment
    environment: str = Field(default="development")
    
    # Service configuration
    service_name: str = Field(default="finnhub-datasource")
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)
    
    # Sub-configurations
    finnhub: FinnhubSettings = Field(default_factory=FinnhubSettings)

    def validate_config(self) -> List[str]:
        """Return a list of configuration issues."""
        issues = []
        if not self.finnhub.api_token:
            issues.append("WARNING: No Finnhub API token configured - set FINNHUB_API_TOKEN")
        if not self.finnhub.base_url.startswith(("http://", "https://")):
            issues.append("CRITICAL: FINNHUB_BASE_URL must be an http(s) URL")
        if not self.finnhub.websocket_url.startswith(("ws://", "wss://")):
            issues.append("CRITICAL: FINNHUB_WEBSOCKET_URL must be a ws(s) URL")
        return issues


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
