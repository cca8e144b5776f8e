"""Finnhub data source - query routing and response normalization for dashboards."""

from .config import get_settings, Settings, FinnhubSettings
from .logging import get_logger, setup_logging
from .exceptions import DataSourceError, ConfigError, ProviderRequestError, StreamError
from .models import (
    QueryKind, TargetType, TargetQuery, CandleQuery, MetricQuery, TimeRange,
    QueryRequest, QueryResponse, Table, Column, TimeSeries, StreamFrame,
    StreamUpdate, RollingBuffer, Sample, parse_target,
)
from .query_builder import build
from .classifier import classify
from .normalizer import normalize
from .dispatcher import RequestDispatcher
from .streaming import StreamingSessionManager, Subscription, SubscriptionState
from .datasource import FinnhubDataSource, create_datasource

__version__ = "1.0.0-dev"

__all__ = [
    "get_settings", "Settings", "FinnhubSettings",
    "get_logger", "setup_logging",
    "DataSourceError", "ConfigError", "ProviderRequestError", "StreamError",
    "QueryKind", "TargetType", "TargetQuery", "CandleQuery", "MetricQuery",
    "TimeRange", "QueryRequest", "QueryResponse", "Table", "Column",
    "TimeSeries", "StreamFrame", "StreamUpdate", "RollingBuffer", "Sample",
    "parse_target", "build", "classify", "normalize",
    "RequestDispatcher", "StreamingSessionManager", "Subscription",
    "SubscriptionState", "FinnhubDataSource", "create_datasource",
]
