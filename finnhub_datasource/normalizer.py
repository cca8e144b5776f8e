"""Fold provider payloads into Table or TimeSeries outputs."""

from typing import Any, List, Union

from .classifier import classify
from .logging import get_logger
from .models import (
    CandleResponse, Column, EarningsRow, QueryKind, QuoteResponse, Table,
    TargetType, TimeSeries,
)

logger = get_logger(__name__)

EARNINGS_EXCLUDED_FIELDS = ("period", "symbol")
CANDLE_SERIES = (("open price", "o"), ("close price", "c"))


def ensure_array(payload: Any) -> List[Any]:
    """Wrap a single object in a list; None becomes an empty list."""
    if payload is None:
        return []
    if isinstance(payload, list):
        return payload
    return [payload]


def unwrap_envelope(payload: Any) -> Any:
    """Basic financials arrive as ``{"metric": {...}, ...}``; keep only the inner object."""
    if isinstance(payload, dict) and isinstance(payload.get("metric"), dict):
        return payload["metric"]
    return payload


def _column(text: str, value: Any) -> Column:
    return Column(text=text, type="string" if isinstance(value, str) else "number")


def table_response(rows: List[Any]) -> Table:
    """Columns come from the first row's keys, rows from every entry's values.

    A list of scalars (e.g. peer tickers) becomes a single ``value`` column.
    """
    if not rows:
        return Table()
    if not isinstance(rows[0], dict):
        return Table(columns=[_column("value", rows[0])], rows=[[row] for row in rows])
    rows = [row for row in rows if isinstance(row, dict)]
    columns = [_column(key, value) for key, value in rows[0].items()]
    return Table(columns=columns, rows=[list(row.values()) for row in rows])


def ts_response(payload: Any, kind: str) -> List[TimeSeries]:
    """Decode a time-series payload; unknown kinds yield no series."""
    if kind == QueryKind.EARNINGS.value:
        return _earnings_series(payload)
    if kind == QueryKind.QUOTE.value:
        return _quote_series(payload)
    if kind == QueryKind.CANDLE.value:
        return _candle_series(payload)
    return []


def _earnings_series(payload: Any) -> List[TimeSeries]:
    rows = [EarningsRow.model_validate(row) for row in ensure_array(payload)]
    if not rows:
        return []
    keys = [key for key in rows[0].values() if key not in EARNINGS_EXCLUDED_FIELDS]
    return [
        TimeSeries(
            target=key,
            datapoints=[(row.values().get(key), row.period_ms) for row in rows],
        )
        for key in keys
    ]


def _quote_series(payload: Any) -> List[TimeSeries]:
    """Always exactly one sample; a quote without ``t`` has no timestamp."""
    quote = QuoteResponse.model_validate(payload or {})
    ts = quote.t * 1000 if quote.t is not None else None
    return [TimeSeries(target="current price", datapoints=[(quote.c, ts)])]


def _candle_series(payload: Any) -> List[TimeSeries]:
    candles = CandleResponse.model_validate(payload or {})
    series = []
    for name, field in CANDLE_SERIES:
        values = getattr(candles, field)
        series.append(TimeSeries(
            target=name,
            datapoints=[(value, int(ts * 1000)) for ts, value in zip(candles.t, values)],
        ))
    return series


def normalize(payload: Any, kind: str, free_text: bool = False) -> Union[Table, List[TimeSeries]]:
    """Decode one raw provider payload into its normalized output."""
    payload = unwrap_envelope(payload)
    if classify(kind, free_text) == TargetType.TABLE:
        return table_response(ensure_array(payload))
    try:
        return ts_response(payload, kind)
    except ValueError as e:
        logger.warning("Unexpected payload shape", kind=kind, error=str(e))
        return []
