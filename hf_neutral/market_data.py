"""
Monthly returns for the equity index and the crypto assets.

Dependencies
-----------
- yfinance : pip install yfinance
  Used to fetch adjusted close prices; we then compute monthly net returns.

Design choices
--------------
- Equity indices trade on business days, crypto trades every calendar day.
  Both are resampled to the last close of each calendar month, so a month
  always maps to the same month-end key regardless of the trading calendar.
- A ticker that fails or returns nothing yields an empty column and a printed
  warning; the rest of the batch still loads.
- Optional cache: save/load from PROCESSED_DIR to avoid repeated API calls and
  to make the analysis reproducible.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from .config import COL_MARKET, CRYPTO_TICKERS, EQUITY_INDEX_TICKER, PROCESSED_DIR
from .panel import to_month_end


def _close_series(hist: pd.DataFrame) -> pd.Series:
    """Extract the (adjusted) close column from a yfinance history frame."""
    # yfinance can return MultiIndex columns for single ticker in some versions
    if isinstance(hist.columns, pd.MultiIndex):
        return hist["Close"].iloc[:, 0]
    return hist["Close"] if "Close" in hist.columns else hist["Adj Close"]


def prices_to_monthly_returns(close: pd.Series) -> pd.Series:
    """
    Month-end last close -> monthly net return (close_t / close_{t-1} - 1).
    """
    close = close.sort_index()
    if getattr(close.index, "tz", None) is not None:
        close.index = close.index.tz_localize(None)
    monthly = close.resample("ME").last().dropna()
    return monthly.pct_change().dropna()


def download_monthly_returns(
    tickers: Dict[str, str],
    start: str,
    end: str,
) -> pd.DataFrame:
    """
    Download monthly net returns for several tickers.

    Parameters
    ----------
    tickers : dict
        Mapping from column label -> Yahoo Finance ticker.
    start, end : str
        'YYYY-MM' or 'YYYY-MM-DD'. One extra month before `start` is requested
        so the first month has a return.

    Returns
    -------
    DataFrame
        Index: month-end dates. Columns: labels. May contain NaN where a ticker
        has no history yet.
    """
    try:
        import yfinance as yf
    except ImportError:
        raise ImportError("yfinance is required for market data. Install with: pip install yfinance")

    start_d = pd.Timestamp(start) - pd.offsets.MonthBegin(1)
    # yfinance treats `end` as exclusive; move to the first day after the end month.
    end_d = pd.Timestamp(end) + pd.offsets.MonthEnd(0) + pd.Timedelta(days=1)

    out: Dict[str, pd.Series] = {}
    for label, ticker in tickers.items():
        try:
            hist = yf.download(
                ticker,
                start=start_d,
                end=end_d,
                progress=False,
                auto_adjust=True,
            )
            if hist is None or hist.empty:
                print(f"  Warning: no data for {ticker} ({label})")
                out[label] = pd.Series(dtype=float, index=pd.DatetimeIndex([]))
                continue
            out[label] = prices_to_monthly_returns(_close_series(hist))
            print(f"  ✓ {label} ({ticker}): {len(out[label])} monthly returns")
        except Exception as e:
            # If one ticker fails, store empty series so we still get a column
            out[label] = pd.Series(dtype=float, index=pd.DatetimeIndex([]))
            print(f"  Warning: failed to load {ticker} ({label}): {e}")

    df = pd.DataFrame(out)
    df = to_month_end(df)
    return df.loc[start:end]


def _month(value) -> pd.Period:
    return pd.Period(pd.Timestamp(value), freq="M")


def _find_cache(stem: str, start: str, end: str) -> Optional[Path]:
    """Cached file whose stored window covers [start, end], if any."""
    lo, hi = _month(start), _month(end)
    pattern = re.compile(rf"{re.escape(stem)}_(\d{{4}}-\d{{2}})_(\d{{4}}-\d{{2}})")
    for path in sorted(PROCESSED_DIR.glob(f"{stem}_*.csv")):
        m = pattern.fullmatch(path.stem)
        if m and _month(m.group(1)) <= lo and hi <= _month(m.group(2)):
            return path
    return None


def _load_with_cache(
    stem: str,
    tickers: Dict[str, str],
    start: str,
    end: str,
    use_cache: bool,
) -> pd.DataFrame:
    """
    Read from a cache whose window covers the request, else download.

    Caches are named '<stem>_<YYYY-MM>_<YYYY-MM>.csv' after the window that
    was downloaded, so a wider request never gets a truncated sample.
    """
    cache_path = _find_cache(stem, start, end) if use_cache else None

    if cache_path is not None:
        df = pd.read_csv(cache_path, index_col=0, parse_dates=True)
        df = to_month_end(df)
        missing = [label for label in tickers if label not in df.columns]
        if not missing:
            return df[list(tickers)].loc[start:end]
        print(f"  Cached {cache_path.name} lacks {missing}; downloading again.")

    df = download_monthly_returns(tickers, start, end)

    if use_cache:
        PROCESSED_DIR.mkdir(parents=True, exist_ok=True)
        df.to_csv(PROCESSED_DIR / f"{stem}_{_month(start)}_{_month(end)}.csv")
    return df


def load_equity_index_monthly(
    start: str,
    end: str,
    ticker: str = EQUITY_INDEX_TICKER,
    use_cache: bool = True,
) -> pd.Series:
    """
    Monthly net returns of the equity index (S&P 500 by default) as `MKT`.
    """
    safe = "".join(c for c in ticker if c.isalnum())
    df = _load_with_cache(f"market_{safe}_monthly", {COL_MARKET: ticker}, start, end, use_cache)
    series = df[COL_MARKET].dropna()
    if series.empty:
        raise RuntimeError(f"No market returns for {ticker} between {start} and {end}")
    return series


def load_crypto_monthly(
    start: str,
    end: str,
    tickers: Optional[Dict[str, str]] = None,
    use_cache: bool = True,
) -> pd.DataFrame:
    """
    Monthly net returns of the crypto assets (BTC, ETH by default).

    Months before an asset existed are NaN.
    """
    tickers = tickers or CRYPTO_TICKERS
    return _load_with_cache("crypto_monthly", tickers, start, end, use_cache)
