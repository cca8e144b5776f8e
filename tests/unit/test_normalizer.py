#!/usr/bin/env python3
"""
Unit tests for response shape normalization.
"""

import pytest
from datetime import datetime, timezone

from finnhub_datasource.models import Column, Table, TimeSeries
from finnhub_datasource.normalizer import (
    ensure_array, normalize, table_response, ts_response, unwrap_envelope,
)


class TestTableResponse:

    def test_empty_payload_yields_empty_table(self):
        table = table_response([])

        assert table.columns == []
        assert table.rows == []
        assert table.is_empty

    def test_column_types_inferred_from_first_row(self):
        table = table_response([{"a": 1, "b": "x"}])

        assert table.columns == [Column(text="a", type="number"), Column(text="b", type="string")]
        assert table.rows == [[1, "x"]]

    def test_rows_keep_payload_order(self):
        table = table_response([{"a": 1, "b": "x"}, {"a": 2, "b": "y"}])

        assert table.rows == [[1, "x"], [2, "y"]]

    def test_scalar_rows_become_value_column(self):
        table = table_response(["AAPL", "DELL", "HPQ"])

        assert table.columns == [Column(text="value", type="string")]
        assert table.rows == [["AAPL"], ["DELL"], ["HPQ"]]


class TestTimeSeriesResponse:

    def test_candle_series(self):
        series = ts_response({"t": [100, 200], "o": [10, 11], "c": [12, 13]}, "candle")

        assert [s.target for s in series] == ["open price", "close price"]
        assert series[0].datapoints == [(10, 100000), (11, 200000)]
        assert series[1].datapoints == [(12, 100000), (13, 200000)]

    def test_candle_tolerates_extra_fields(self):
        series = ts_response({"t": [100], "o": [1], "c": [2], "h": [3], "v": [4], "s": "ok"}, "candle")

        assert len(series) == 2

    def test_earnings_series_skip_period_and_symbol(self):
        series = ts_response(
            [{"period": "2020-01-01", "symbol": "AAPL", "actual": 1.1, "estimate": 1.0}],
            "earnings",
        )
        expected_ts = int(datetime(2020, 1, 1, tzinfo=timezone.utc).timestamp() * 1000)

        assert [s.target for s in series] == ["actual", "estimate"]
        assert series[0].datapoints == [(1.1, expected_ts)]
        assert series[1].datapoints == [(1.0, expected_ts)]
        assert not any(s.target in ("period", "symbol") for s in series)

    def test_earnings_multiple_periods_in_payload_order(self):
        series = ts_response(
            [
                {"period": "2020-04-01", "symbol": "AAPL", "actual": 2.0},
                {"period": "2020-01-01", "symbol": "AAPL", "actual": 1.0},
            ],
            "earnings",
        )

        assert [value for value, _ in series[0].datapoints] == [2.0, 1.0]

    def test_empty_earnings(self):
        assert ts_response([], "earnings") == []

    def test_quote_series(self):
        series = ts_response({"c": 250.5, "h": 251, "t": 1690000000}, "quote")

        assert series == [TimeSeries(target="current price", datapoints=[(250.5, 1690000000000)])]

    def test_quote_without_timestamp_keeps_one_sample(self):
        series = ts_response({"c": 250.5}, "quote")

        assert series == [TimeSeries(target="current price", datapoints=[(250.5, None)])]

    @pytest.mark.parametrize("kind", ["profile", "unknown"])
    def test_unrecognized_kind_yields_no_series(self, kind):
        assert ts_response({"name": "Apple"}, kind) == []


class TestNormalize:

    def test_metric_envelope_unwrapped_into_table(self):
        result = normalize({"metric": {"beta": 1.2, "currency": "USD"}, "metricType": "all"}, "metric")

        assert isinstance(result, Table)
        assert result.columns == [Column(text="beta", type="number"), Column(text="currency", type="string")]
        assert result.rows == [[1.2, "USD"]]

    def test_free_text_is_table_regardless_of_kind(self):
        result = normalize([{"symbol": "AAPL", "price": 1}], "candle", free_text=True)

        assert isinstance(result, Table)
        assert result.rows == [["AAPL", 1]]

    def test_missing_free_text_payload_is_empty_table(self):
        result = normalize(None, "profile", free_text=True)

        assert isinstance(result, Table)
        assert result.is_empty

    def test_malformed_earnings_payload_yields_no_series(self):
        assert normalize([{"actual": 1.0}], "earnings") == []

    def test_helpers(self):
        assert ensure_array(None) == []
        assert ensure_array({"a": 1}) == [{"a": 1}]
        assert unwrap_envelope({"metric": "price"}) == {"metric": "price"}
