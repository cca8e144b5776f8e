"""Decide whether a target renders as a table or as time series."""

from .models import QueryKind, TargetType

TABLE_KINDS = frozenset({QueryKind.METRIC.value, QueryKind.FREE_TEXT.value})


def classify(kind: str, free_text: bool = False) -> TargetType:
    """Free-text results are always tabular; otherwise the kind decides."""
    if free_text or kind in TABLE_KINDS:
        return TargetType.TABLE
    return TargetType.TIME_SERIES
