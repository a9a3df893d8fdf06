"""Tests for hf_neutral.panel alignment and merging."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from hf_neutral.panel import build_panel, common_sample, merge_sources, to_month_end


class TestToMonthEnd:
    def test_index(self):
        idx = pd.DatetimeIndex(["2021-01-01", "2021-02-15", "2021-03-31"])
        out = to_month_end(idx)
        assert list(out) == list(pd.to_datetime(["2021-01-31", "2021-02-28", "2021-03-31"]))

    def test_duplicates_keep_last(self):
        s = pd.Series([1.0, 2.0, 3.0], index=pd.to_datetime(["2021-01-01", "2021-01-29", "2021-02-01"]))
        out = to_month_end(s)
        assert len(out) == 2
        assert out.loc[pd.Timestamp("2021-01-31")] == 2.0
        assert out.index.name == "Date"

    def test_unsorted_input_sorted(self):
        s = pd.Series([2.0, 1.0], index=pd.to_datetime(["2021-02-10", "2021-01-10"]))
        out = to_month_end(s)
        assert list(out.values) == [1.0, 2.0]


class TestMergeSources:
    def test_different_day_conventions_align(self):
        first = pd.Series([0.01, 0.02], index=pd.to_datetime(["2021-01-01", "2021-02-01"]), name="fund")
        last = pd.Series([0.03, 0.04], index=pd.to_datetime(["2021-01-29", "2021-02-26"]), name="mkt")
        out = merge_sources({"fund": first, "mkt": last})
        assert out.shape == (2, 2)
        assert out.notna().all().all()
        assert out.index[0] == pd.Timestamp("2021-01-31")

    def test_unnamed_series_uses_source_name(self):
        s = pd.Series([0.01], index=pd.to_datetime(["2021-01-01"]))
        out = merge_sources({"rf": s})
        assert list(out.columns) == ["rf"]

    def test_outer_join_keeps_all_months(self):
        a = pd.Series([1.0], index=pd.to_datetime(["2021-01-31"]), name="a")
        b = pd.Series([2.0], index=pd.to_datetime(["2021-02-28"]), name="b")
        out = merge_sources({"a": a, "b": b})
        assert len(out) == 2
        assert np.isnan(out.loc[pd.Timestamp("2021-02-28"), "a"])

    def test_duplicate_columns_rejected(self):
        a = pd.Series([1.0], index=pd.to_datetime(["2021-01-31"]), name="x")
        b = pd.Series([2.0], index=pd.to_datetime(["2021-01-31"]), name="x")
        with pytest.raises(ValueError, match="appears in both"):
            merge_sources({"a": a, "b": b})

    def test_empty_and_bad_sources(self):
        with pytest.raises(ValueError):
            merge_sources({})
        with pytest.raises(TypeError):
            merge_sources({"a": [1, 2, 3]})


class TestBuildPanel:
    def test_full_sources(self, synthetic_sources):
        s = synthetic_sources
        panel = build_panel(
            funds=s["funds"],
            rf=s["rf"],
            market=s["market"],
            inflation=s["inflation"],
            crypto=s["crypto"],
            factors=s["factors"],
        )
        assert len(panel) == 120
        for col in ["Neutral Fund", "Beta Fund", "RF", "MKT", "INFLATION", "BTC", "ETH", "Mkt-RF", "Mom"]:
            assert col in panel.columns
        # optional crypto keeps its leading NaNs
        assert panel["BTC"].isna().sum() == 48

    def test_drops_months_missing_required(self, synthetic_sources):
        s = synthetic_sources
        funds = s["funds"].copy()
        funds.iloc[5, 0] = np.nan
        rf = s["rf"].iloc[:-3]
        panel = build_panel(funds=funds, rf=rf, market=s["market"])
        assert len(panel) == 120 - 1 - 3
        assert panel[["Neutral Fund", "Beta Fund", "RF", "MKT"]].notna().all().all()

    def test_window_slice(self, synthetic_sources):
        s = synthetic_sources
        panel = build_panel(funds=s["funds"], rf=s["rf"], market=s["market"], start="2012-01", end="2012-12")
        assert len(panel) == 12
        assert panel.index.min() == pd.Timestamp("2012-01-31")

    def test_empty_result_raises(self, synthetic_sources):
        s = synthetic_sources
        with pytest.raises(ValueError, match="empty"):
            build_panel(funds=s["funds"], rf=s["rf"], market=s["market"], start="1990-01", end="1990-12")

    def test_empty_inputs_raise(self, synthetic_sources):
        s = synthetic_sources
        with pytest.raises(ValueError):
            build_panel(funds=s["funds"].iloc[0:0], rf=s["rf"], market=s["market"])
        with pytest.raises(ValueError):
            build_panel(funds=s["funds"], rf=s["rf"].iloc[0:0], market=s["market"])

    def test_unknown_required_column(self, synthetic_sources):
        s = synthetic_sources
        with pytest.raises(ValueError, match="Required"):
            build_panel(funds=s["funds"], rf=s["rf"], market=s["market"], required=["NOPE"])


def test_common_sample(synthetic_sources):
    s = synthetic_sources
    panel = build_panel(funds=s["funds"], rf=s["rf"], market=s["market"], crypto=s["crypto"])
    assert common_sample(panel, ["Beta Fund", "MKT"]) == ("2010-01", "2019-12")
    assert common_sample(panel, ["BTC", "MKT"]) == ("2014-01", "2019-12")
    with pytest.raises(ValueError):
        common_sample(panel, ["missing"])
