"""Translate target queries into provider request payloads."""

from typing import Any, Dict, Optional

from .models import CandleQuery, MetricQuery, TargetQuery, TimeRange

ProviderRequest = Dict[str, Any]


def build(target: TargetQuery, time_range: Optional[TimeRange] = None) -> ProviderRequest:
    """Build the flat request payload for one target.

    Only candle targets read the time range; without one their bounds stay
    unset. Kinds without a dedicated branch get the default
    ``{symbol, refId}`` shape.
    """
    symbol = target.symbol.upper() if target.symbol else target.symbol

    if isinstance(target, CandleQuery):
        return {
            "symbol": symbol,
            "resolution": target.resolution,
            "from": time_range.start_unix if time_range else None,
            "to": time_range.end_unix if time_range else None,
            "refId": target.ref_id,
        }
    if isinstance(target, MetricQuery):
        return {"symbol": symbol, "metric": target.metric, "refId": target.ref_id}
    return {"symbol": symbol, "refId": target.ref_id}
