"""
Risk-free rate and inflation from FRED (Federal Reserve Economic Data).

Series used:
- TB3MS    : 3-month Treasury bill, secondary market rate, percent per annum.
             Converted to a monthly decimal rate by geometric de-annualisation.
- CPIAUCSL : CPI for all urban consumers (index level, seasonally adjusted).
             Converted to monthly inflation CPI_t / CPI_{t-1} - 1.

Requires a FRED API key (free registration), passed explicitly or via the
FRED_API_KEY environment variable.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd

from .config import (
    COL_INFLATION,
    COL_RF,
    CPI_SERIES,
    FRED_API_KEY,
    MONTHS_PER_YEAR,
    PROCESSED_DIR,
    RISK_FREE_SERIES,
)
from .panel import to_month_end


def _fred_client(api_key: Optional[str] = None):
    key = api_key or FRED_API_KEY
    if not key:
        raise RuntimeError(
            "FRED API key missing. Pass api_key=... or set the FRED_API_KEY environment variable."
        )
    try:
        from fredapi import Fred
    except ImportError:
        raise ImportError("fredapi is required for FRED data. Install with: pip install fredapi")
    return Fred(api_key=key)


def fetch_fred_series(
    series_id: str,
    start: Optional[str] = None,
    end: Optional[str] = None,
    api_key: Optional[str] = None,
) -> pd.Series:
    """
    Download one FRED series as a float Series indexed by observation date.
    """
    fred = _fred_client(api_key)
    print(f"  Fetching FRED series {series_id} ...")
    kwargs = {}
    if start is not None:
        kwargs["observation_start"] = pd.Timestamp(start)
    if end is not None:
        # Include the whole end month.
        kwargs["observation_end"] = pd.Timestamp(end) + pd.offsets.MonthEnd(0)

    series = fred.get_series(series_id, **kwargs)
    if series is None or series.empty:
        raise RuntimeError(f"FRED returned no observations for {series_id}")

    series = pd.to_numeric(series, errors="coerce").dropna()
    series.index = pd.DatetimeIndex(series.index)
    series.name = series_id
    print(f"  ✓ {series_id}: {len(series)} observations ({series.index.min():%Y-%m} -> {series.index.max():%Y-%m})")
    return series


def risk_free_monthly(annual_pct: pd.Series, periods: int = MONTHS_PER_YEAR) -> pd.Series:
    """
    Convert an annualised percent yield to a monthly decimal rate.

    r_month = (1 + y / 100) ** (1 / 12) - 1
    """
    monthly = (1.0 + annual_pct / 100.0) ** (1.0 / periods) - 1.0
    return to_month_end(monthly.rename(COL_RF))


def inflation_monthly(cpi_index: pd.Series) -> pd.Series:
    """
    Month-on-month inflation from a CPI index level: CPI_t / CPI_{t-1} - 1.

    The first month has no predecessor and is dropped.
    """
    cpi = to_month_end(cpi_index)
    infl = cpi.pct_change().iloc[1:]
    return infl.rename(COL_INFLATION)


def _load_cached(cache_name: str, start, end) -> Optional[pd.Series]:
    cache_path = PROCESSED_DIR / cache_name
    if not cache_path.exists():
        return None
    df = pd.read_csv(cache_path, index_col=0, parse_dates=True)
    return to_month_end(df.iloc[:, 0]).loc[start:end]


def _save_cache(series: pd.Series, cache_name: str) -> None:
    PROCESSED_DIR.mkdir(parents=True, exist_ok=True)
    path = PROCESSED_DIR / cache_name
    series.to_frame().to_csv(path)
    print(f"    ✓ Saved {series.name} to {path}")


def load_risk_free_monthly(
    start: Optional[str] = None,
    end: Optional[str] = None,
    api_key: Optional[str] = None,
    series_id: str = RISK_FREE_SERIES,
    use_cache: bool = True,
) -> pd.Series:
    """
    Monthly risk-free rate (net, decimal) from the FRED T-bill series.
    """
    cache_name = f"fred_{series_id}_rf_monthly.csv"
    if use_cache:
        cached = _load_cached(cache_name, start, end)
        if cached is not None:
            return cached.rename(COL_RF)

    # Fetch the full history so the cache serves any later window.
    rf = risk_free_monthly(fetch_fred_series(series_id, api_key=api_key))
    if use_cache:
        _save_cache(rf, cache_name)
    return rf.loc[start:end]


def load_inflation_monthly(
    start: Optional[str] = None,
    end: Optional[str] = None,
    api_key: Optional[str] = None,
    series_id: str = CPI_SERIES,
    use_cache: bool = True,
) -> pd.Series:
    """
    Monthly CPI inflation (net, decimal) from FRED.
    """
    cache_name = f"fred_{series_id}_inflation_monthly.csv"
    if use_cache:
        cached = _load_cached(cache_name, start, end)
        if cached is not None:
            return cached.rename(COL_INFLATION)

    infl = inflation_monthly(fetch_fred_series(series_id, api_key=api_key))
    if use_cache:
        _save_cache(infl, cache_name)
    return infl.loc[start:end]
