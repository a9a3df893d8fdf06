"""Tests for hf_neutral.market_data (yfinance mocked)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np
import pandas as pd
import pytest

from hf_neutral.market_data import (
    download_monthly_returns,
    load_crypto_monthly,
    load_equity_index_monthly,
    prices_to_monthly_returns,
)


def _daily_close(month_levels, start="2021-01-01"):
    """Business-day closes that sit at a constant level within each month."""
    days = pd.bdate_range(start, periods=len(month_levels) * 31)
    months = days.to_period("M")
    first = months[0]
    levels = [month_levels[(m - first).n] if (m - first).n < len(month_levels) else np.nan for m in months]
    return pd.Series(levels, index=days).dropna()


def _fake_yfinance(frames):
    """frames: ticker -> DataFrame, or an Exception to raise."""

    def download(ticker, **kwargs):
        result = frames[ticker]
        if isinstance(result, Exception):
            raise result
        return result

    module = MagicMock()
    module.download.side_effect = download
    return module


def test_prices_to_monthly_returns():
    out = prices_to_monthly_returns(_daily_close([100.0, 110.0, 99.0]))
    assert list(out.index) == list(pd.to_datetime(["2021-02-28", "2021-03-31"]))
    assert out.tolist() == pytest.approx([0.10, -0.10])


def test_prices_with_timezone():
    close = _daily_close([100.0, 105.0])
    close.index = close.index.tz_localize("America/New_York")
    out = prices_to_monthly_returns(close)
    assert out.index.tz is None
    assert out.iloc[0] == pytest.approx(0.05)


class TestDownload:
    def test_returns_and_window(self):
        frames = {"^GSPC": pd.DataFrame({"Close": _daily_close([100.0, 110.0, 99.0])})}
        fake = _fake_yfinance(frames)
        with patch.dict("sys.modules", {"yfinance": fake}):
            df = download_monthly_returns({"MKT": "^GSPC"}, "2021-02", "2021-03")
        assert df["MKT"].tolist() == pytest.approx([0.10, -0.10])
        kwargs = fake.download.call_args.kwargs
        assert kwargs["start"] == pd.Timestamp("2021-01-01")
        assert kwargs["end"] == pd.Timestamp("2021-04-01")
        assert kwargs["auto_adjust"] is True

    def test_multiindex_columns(self):
        close = _daily_close([100.0, 120.0])
        hist = pd.DataFrame({("Close", "BTC-USD"): close, ("Volume", "BTC-USD"): 1.0})
        hist.columns = pd.MultiIndex.from_tuples(hist.columns)
        with patch.dict("sys.modules", {"yfinance": _fake_yfinance({"BTC-USD": hist})}):
            df = download_monthly_returns({"BTC": "BTC-USD"}, "2021-02", "2021-02")
        assert df["BTC"].iloc[0] == pytest.approx(0.20)

    def test_failing_ticker_keeps_column(self, capsys):
        frames = {
            "BTC-USD": pd.DataFrame({"Close": _daily_close([100.0, 110.0])}),
            "ETH-USD": RuntimeError("rate limited"),
        }
        with patch.dict("sys.modules", {"yfinance": _fake_yfinance(frames)}):
            df = download_monthly_returns({"BTC": "BTC-USD", "ETH": "ETH-USD"}, "2021-02", "2021-02")
        assert list(df.columns) == ["BTC", "ETH"]
        assert df["BTC"].iloc[0] == pytest.approx(0.10)
        assert df["ETH"].isna().all()
        assert "Warning: failed to load ETH-USD" in capsys.readouterr().out

    def test_empty_history_warns(self, capsys):
        with patch.dict("sys.modules", {"yfinance": _fake_yfinance({"X": pd.DataFrame()})}):
            df = download_monthly_returns({"X": "X"}, "2021-02", "2021-03")
        assert df["X"].isna().all()
        assert "Warning: no data for X" in capsys.readouterr().out


class TestLoaders:
    def test_equity_index_empty_raises(self):
        with patch.dict("sys.modules", {"yfinance": _fake_yfinance({"^GSPC": pd.DataFrame()})}):
            with pytest.raises(RuntimeError, match="No market returns"):
                load_equity_index_monthly("2021-02", "2021-03", use_cache=False)

    def test_equity_index_series(self):
        frames = {"^GSPC": pd.DataFrame({"Close": _daily_close([100.0, 110.0, 99.0])})}
        with patch.dict("sys.modules", {"yfinance": _fake_yfinance(frames)}):
            mkt = load_equity_index_monthly("2021-02", "2021-03", use_cache=False)
        assert mkt.name == "MKT"
        assert len(mkt) == 2

    def test_crypto_cache(self, data_dirs):
        frames = {
            "BTC-USD": pd.DataFrame({"Close": _daily_close([100.0, 110.0, 121.0])}),
            "ETH-USD": pd.DataFrame({"Close": _daily_close([10.0, 9.0, 9.0])}),
        }
        fake = _fake_yfinance(frames)
        with patch.dict("sys.modules", {"yfinance": fake}):
            first = load_crypto_monthly("2021-02", "2021-03")
            second = load_crypto_monthly("2021-03", "2021-03")
        assert fake.download.call_count == 2  # one per ticker, cache hit afterwards
        assert (data_dirs["processed"] / "crypto_monthly_2021-02_2021-03.csv").exists()
        assert first["ETH"].tolist() == pytest.approx([-0.10, 0.0])
        assert len(second) == 1
        assert second["BTC"].iloc[0] == pytest.approx(0.10)

    def test_wider_window_downloads_again(self, data_dirs):
        levels = [100.0, 110.0, 99.0, 99.0, 108.9, 108.9]
        frames = {"^GSPC": pd.DataFrame({"Close": _daily_close(levels)})}
        fake = _fake_yfinance(frames)
        with patch.dict("sys.modules", {"yfinance": fake}):
            narrow = load_equity_index_monthly("2021-05", "2021-06")
            wide = load_equity_index_monthly("2021-02", "2021-06")
            inner = load_equity_index_monthly("2021-03", "2021-04")
        assert len(narrow) == 2
        assert len(wide) == 5
        assert wide.tolist() == pytest.approx([0.10, -0.10, 0.0, 0.10, 0.0])
        assert len(inner) == 2
        # narrow and wide download; inner is served by the wide cache
        assert fake.download.call_count == 2
        cached = sorted(p.name for p in data_dirs["processed"].glob("market_GSPC_monthly_*.csv"))
        assert cached == ["market_GSPC_monthly_2021-02_2021-06.csv", "market_GSPC_monthly_2021-05_2021-06.csv"]

    def test_no_cache_skips_files(self, data_dirs):
        frames = {"^GSPC": pd.DataFrame({"Close": _daily_close([100.0, 110.0])})}
        with patch.dict("sys.modules", {"yfinance": _fake_yfinance(frames)}):
            load_equity_index_monthly("2021-02", "2021-02", use_cache=False)
        assert not data_dirs["processed"].exists()
