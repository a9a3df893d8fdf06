"""
Return arithmetic for monthly series.

This module provides the small set of transformations the analysis needs:
- excess returns over the risk-free rate (risk premia),
- real returns deflated by monthly inflation,
- annualization of monthly returns, volatilities and rates,
- cumulative growth and maximum drawdown.

All functions work on *net* monthly returns in decimal form (0.02 = 2%) and
accept either a pandas Series or a DataFrame (column-wise). Missing values
are skipped in aggregates; an all-NaN input gives NaN.
"""

from __future__ import annotations

from typing import Iterable, Union

import numpy as np
import pandas as pd

from .config import EXCESS_SUFFIX, MONTHS_PER_YEAR, REAL_SUFFIX

SeriesOrFrame = Union[pd.Series, pd.DataFrame]


def _align_rate(returns: SeriesOrFrame, rate: pd.Series) -> pd.Series:
    """Reindex a per-period rate onto the dates of `returns`."""
    if not isinstance(rate, pd.Series):
        raise TypeError("rate must be a pandas Series indexed by date")
    return rate.reindex(returns.index)


def excess_returns(returns: SeriesOrFrame, rf: pd.Series) -> SeriesOrFrame:
    """
    Subtract the risk-free rate from returns on matching dates.

    Dates present in `returns` but missing in `rf` become NaN.
    """
    rf_aligned = _align_rate(returns, rf)
    if isinstance(returns, pd.DataFrame):
        return returns.sub(rf_aligned, axis=0)
    return returns - rf_aligned


def real_returns(returns: SeriesOrFrame, inflation: pd.Series) -> SeriesOrFrame:
    """
    Deflate nominal returns by inflation: (1 + r) / (1 + pi) - 1.
    """
    pi = _align_rate(returns, inflation)
    if isinstance(returns, pd.DataFrame):
        return (1.0 + returns).div(1.0 + pi, axis=0) - 1.0
    return (1.0 + returns) / (1.0 + pi) - 1.0


def _annualize_geometric(r: pd.Series, periods: int) -> float:
    r = r.dropna()
    n = len(r)
    if n == 0:
        return np.nan
    growth = float(np.prod(1.0 + r.values))
    if growth <= 0:
        # Wiped out at some point; the compound rate is -100%.
        return -1.0
    return growth ** (periods / n) - 1.0


def annualize_return(
    monthly: SeriesOrFrame,
    method: str = "geometric",
    periods: int = MONTHS_PER_YEAR,
):
    """
    Annualize monthly returns.

    Parameters
    ----------
    monthly : Series or DataFrame
        Net monthly returns.
    method : {'geometric', 'arithmetic'}
        'geometric' compounds the realised path: prod(1 + r) ** (12 / n) - 1.
        'arithmetic' scales the mean: 12 * mean(r).
    periods : int, default 12
        Periods per year.

    Returns
    -------
    float for a Series, Series (one value per column) for a DataFrame.
    """
    if method not in ("geometric", "arithmetic"):
        raise ValueError("method must be 'geometric' or 'arithmetic'")

    if isinstance(monthly, pd.DataFrame):
        return monthly.apply(lambda col: annualize_return(col, method=method, periods=periods))

    if method == "arithmetic":
        mean = monthly.mean(skipna=True)
        return float(mean * periods) if pd.notna(mean) else np.nan
    return _annualize_geometric(monthly, periods)


def annualize_volatility(monthly: SeriesOrFrame, periods: int = MONTHS_PER_YEAR):
    """Annualized volatility: sample std (ddof=1) * sqrt(12)."""
    vol = monthly.std(ddof=1, skipna=True) * np.sqrt(periods)
    if isinstance(vol, pd.Series):
        return vol
    return float(vol) if pd.notna(vol) else np.nan


def annualize_rate(monthly_rate: SeriesOrFrame, periods: int = MONTHS_PER_YEAR) -> SeriesOrFrame:
    """Convert a per-month rate to its compounded annual equivalent."""
    return (1.0 + monthly_rate) ** periods - 1.0


def cumulative_returns(monthly: SeriesOrFrame) -> SeriesOrFrame:
    """
    Cumulative return path: cumprod(1 + r) - 1.

    Missing months are treated as flat (zero return) so the path is defined
    from the first observation onwards; leading NaNs are preserved.
    """
    filled = monthly.fillna(0.0)
    wealth = (1.0 + filled).cumprod()
    out = wealth - 1.0
    # Keep NaN before each series' first valid observation.
    if isinstance(monthly, pd.DataFrame):
        started = monthly.notna().cummax()
        return out.where(started)
    return out.where(monthly.notna().cummax())


def max_drawdown(monthly: SeriesOrFrame):
    """
    Maximum peak-to-trough decline of the cumulative wealth path (<= 0).
    """
    if isinstance(monthly, pd.DataFrame):
        return monthly.apply(max_drawdown)

    r = monthly.dropna()
    if r.empty:
        return np.nan
    wealth = (1.0 + r).cumprod()
    # Start from an initial wealth of 1 so a first-month loss counts.
    peak = np.maximum.accumulate(np.concatenate([[1.0], wealth.values]))[1:]
    drawdown = wealth.values / peak - 1.0
    return float(drawdown.min())


def add_excess_columns(
    panel: pd.DataFrame,
    columns: Iterable[str],
    rf_col: str,
    suffix: str = EXCESS_SUFFIX,
) -> pd.DataFrame:
    """Return a copy of `panel` with `<col>_excess` columns appended."""
    if rf_col not in panel.columns:
        raise ValueError(f"Risk-free column {rf_col!r} not in panel")
    out = panel.copy()
    for col in columns:
        if col not in out.columns:
            raise ValueError(f"Column {col!r} not in panel")
        out[f"{col}{suffix}"] = out[col] - out[rf_col]
    return out


def add_real_columns(
    panel: pd.DataFrame,
    columns: Iterable[str],
    inflation_col: str,
    suffix: str = REAL_SUFFIX,
) -> pd.DataFrame:
    """Return a copy of `panel` with inflation-deflated `<col>_real` columns appended."""
    if inflation_col not in panel.columns:
        raise ValueError(f"Inflation column {inflation_col!r} not in panel")
    out = panel.copy()
    for col in columns:
        if col not in out.columns:
            raise ValueError(f"Column {col!r} not in panel")
        out[f"{col}{suffix}"] = (1.0 + out[col]) / (1.0 + out[inflation_col]) - 1.0
    return out
