"""Query, provider response and normalized output models."""

from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class QueryKind(str, Enum):
    """Query kinds understood by the data source."""
    PROFILE = "profile"
    CANDLE = "candle"
    METRIC = "metric"
    QUOTE = "quote"
    QUOTE_STREAM = "quote-stream"
    EARNINGS = "earnings"
    FREE_TEXT = "free-text"


class TargetType(str, Enum):
    """Output shape a target is rendered as."""
    TABLE = "table"
    TIME_SERIES = "timeseries"


# Values merged under every host target before validation
DEFAULT_TARGET: Dict[str, Any] = {
    "kind": QueryKind.PROFILE.value,
    "resolution": "D",
    "metric": "all",
}


class TargetQuery(BaseModel):
    """One query unit of a batch; variants below add kind-specific fields."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)
    
    ref_id: Optional[str] = Field(None, alias="refId", description="Caller correlation id")
    kind: str = Field(QueryKind.PROFILE.value, description="Query kind tag")
    symbol: Optional[str] = Field(None, description="Ticker symbol, uppercased")
    query_text: Optional[str] = Field(None, alias="queryText", description="Raw free-text override")
    
    @field_validator('symbol', mode='before')
    @classmethod
    def normalize_symbol(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v
    
    @property
    def free_text(self) -> bool:
        return bool(self.query_text)


class CandleQuery(TargetQuery):
    """Windowed OHLC history."""
    kind: str = QueryKind.CANDLE.value
    resolution: str = Field("D", description="Candle resolution (1, 5, 15, 30, 60, D, W, M)")


class MetricQuery(TargetQuery):
    """Basic financials lookup."""
    kind: str = QueryKind.METRIC.value
    metric: str = Field("all", description="Metric group requested from the provider")


_TARGET_VARIANTS = {
    QueryKind.CANDLE.value: CandleQuery,
    QueryKind.METRIC.value: MetricQuery,
}


def _unwrap_option(value: Any) -> Any:
    """Host selects arrive either as plain values or as {'value': ...} options."""
    if isinstance(value, Mapping):
        return value.get("value")
    return value


def parse_target(raw: Mapping[str, Any]) -> TargetQuery:
    """Build the tagged target variant for a host-shaped target dict."""
    merged: Dict[str, Any] = dict(DEFAULT_TARGET)
    for key, value in raw.items():
        if value is None:
            continue
        if key in ("type", "queryKind"):
            key = "kind"
        merged[key] = _unwrap_option(value)
    
    kind = str(merged["kind"])
    merged["kind"] = kind
    variant = _TARGET_VARIANTS.get(kind, TargetQuery)
    fields = set(variant.model_fields) | {"refId", "queryText"}
    return variant.model_validate({k: v for k, v in merged.items() if k in fields})


class TimeRange(BaseModel):
    """Immutable query window."""
    model_config = ConfigDict(frozen=True)
    
    start: datetime
    end: datetime
    
    @property
    def start_unix(self) -> int:
        return int(_aware(self.start).timestamp())
    
    @property
    def end_unix(self) -> int:
        return int(_aware(self.end).timestamp())


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class QueryRequest(BaseModel):
    """Batch of targets sharing one time range."""
    targets: List[Dict[str, Any]]
    range: TimeRange


# Provider responses, validated at the boundary

class CandleResponse(BaseModel):
    """Candle payload: parallel arrays keyed by single letters."""
    model_config = ConfigDict(extra="allow")
    
    t: List[int] = Field(default_factory=list)
    o: List[float] = Field(default_factory=list)
    c: List[float] = Field(default_factory=list)


class QuoteResponse(BaseModel):
    """Real-time quote payload."""
    model_config = ConfigDict(extra="allow")
    
    c: Optional[float] = Field(None, description="Current price")
    t: Optional[int] = Field(None, description="Quote timestamp, unix seconds")


class EarningsRow(BaseModel):
    """One earnings period; every extra field becomes its own series."""
    model_config = ConfigDict(extra="allow")
    
    period: str
    symbol: Optional[str] = None
    
    @property
    def period_ms(self) -> int:
        return int(_aware(datetime.fromisoformat(self.period)).timestamp() * 1000)
    
    def values(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class TradeTick(BaseModel):
    """One trade from a streaming message."""
    model_config = ConfigDict(extra="allow")
    
    t: int
    p: float


# Normalized outputs

class Column(BaseModel):
    text: str
    type: str


class Table(BaseModel):
    """Tabular output; an empty payload yields no columns and no rows."""
    columns: List[Column] = Field(default_factory=list)
    rows: List[List[Any]] = Field(default_factory=list)
    
    @property
    def is_empty(self) -> bool:
        return not self.columns and not self.rows


class TimeSeries(BaseModel):
    """Named series of (value, timestamp-ms) pairs."""
    target: str
    datapoints: List[Tuple[Any, Optional[int]]] = Field(default_factory=list)


NormalizedOutput = Union[Table, TimeSeries]


class Sample(BaseModel):
    model_config = ConfigDict(frozen=True)
    
    ts: int
    value: float


class RollingBuffer:
    """Fixed-capacity sample window; the oldest samples are evicted first."""
    
    def __init__(self, capacity: int = 1000):
        self.capacity = capacity
        self._samples: Deque[Sample] = deque(maxlen=capacity)
    
    def add(self, ts: int, value: float) -> Sample:
        sample = Sample(ts=ts, value=value)
        self._samples.append(sample)
        return sample
    
    def snapshot(self) -> List[Sample]:
        return list(self._samples)
    
    def __len__(self) -> int:
        return len(self._samples)


class StreamFrame(BaseModel):
    """Snapshot of one subscription's rolling buffer."""
    ref_id: Optional[str]
    field_names: Tuple[str, str] = ("ts", "value")
    samples: List[Sample] = Field(default_factory=list)


class StreamUpdate(BaseModel):
    """One emission of the merged streaming feed."""
    key: Optional[str]
    data: List[StreamFrame]


class QueryResponse(BaseModel):
    """Flattened outputs of a REST batch, in target order."""
    data: List[Union[Table, TimeSeries]] = Field(default_factory=list)
