"""Custom exceptions for the Finnhub data source."""

from typing import Optional, Dict, Any


class DataSourceError(Exception):
    """Base exception for all data source errors."""
    
    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
    
    def __str__(self) -> str:
        parts = [self.message]
        if self.error_code:
            parts.append(f"[{self.error_code}]")
        return " ".join(parts)


class ConfigError(DataSourceError):
    """Raised when configuration is invalid."""
    
    def __init__(self, message: str, setting: Optional[str] = None) -> None:
        context = {}
        if setting:
            context["setting"] = setting
        
        super().__init__(
            message=message,
            error_code="CONFIG_ERROR",
            context=context,
        )


class ProviderRequestError(DataSourceError):
    """Raised when a structured REST request to the provider fails."""
    
    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        status: Optional[int] = None,
        symbol: Optional[str] = None,
    ) -> None:
        context: Dict[str, Any] = {}
        if kind:
            context["kind"] = kind
        if status is not None:
            context["status"] = status
        if symbol:
            context["symbol"] = symbol
        
        super().__init__(
            message=message,
            error_code="PROVIDER_REQUEST_ERROR",
            context=context,
        )
        self.kind = kind
        self.status = status


class StreamError(DataSourceError):
    """Raised when a streaming subscription hits a transport problem."""
    
    def __init__(
        self,
        message: str,
        ref_id: Optional[str] = None,
        symbol: Optional[str] = None,
    ) -> None:
        context = {}
        if ref_id:
            context["ref_id"] = ref_id
        if symbol:
            context["symbol"] = symbol
        
        super().__init__(
            message=message,
            error_code="STREAM_ERROR",
            context=context,
        )
