"""
Descriptive statistics for the merged monthly panel.

Produces the tables that precede the regressions: annualised return and
volatility, Sharpe ratio, drawdown and higher moments per series, the
correlation matrix, and a Sharpe comparison of each fund against the market.
"""

from __future__ import annotations

from typing import Iterable, List

import numpy as np
import pandas as pd

from .config import COL_MARKET_EXCESS, EXCESS_SUFFIX, MONTHS_PER_YEAR
from .returns import annualize_return, annualize_volatility, excess_returns, max_drawdown
from .sharpe_tests import jobson_korkie_test, sharpe_ratio


def summary_statistics(panel: pd.DataFrame, columns: Iterable[str], rf_col: str) -> pd.DataFrame:
    """
    One row per series with annualised performance and distribution stats.

    Sharpe ratios use returns in excess of `rf_col` on each series' own
    sample. Skew and kurtosis are computed on monthly returns; kurtosis is
    excess kurtosis (normal = 0).
    """
    columns = list(columns)
    missing = [c for c in [*columns, rf_col] if c not in panel.columns]
    if missing:
        raise ValueError(f"Columns not in panel: {missing}")

    rows = []
    for col in columns:
        r = panel[col].dropna()
        if r.empty:
            raise ValueError(f"Column {col!r} has no observations")
        ex = excess_returns(r, panel[rf_col]).dropna()
        rows.append(
            {
                "series": col,
                "n_obs": int(len(r)),
                "start": r.index.min().strftime("%Y-%m"),
                "end": r.index.max().strftime("%Y-%m"),
                "ann_return": annualize_return(r, method="geometric"),
                "ann_arith_return": annualize_return(r, method="arithmetic"),
                "ann_vol": annualize_volatility(r),
                "sharpe": sharpe_ratio(ex, annualize=True),
                "max_drawdown": max_drawdown(r),
                "skew": float(r.skew()) if len(r) > 2 else np.nan,
                "kurtosis": float(r.kurt()) if len(r) > 3 else np.nan,
                "min": float(r.min()),
                "max": float(r.max()),
            }
        )
    return pd.DataFrame(rows).set_index("series")


def correlation_matrix(panel: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """Pairwise-complete Pearson correlations."""
    columns = list(columns)
    missing = [c for c in columns if c not in panel.columns]
    if missing:
        raise ValueError(f"Columns not in panel: {missing}")
    return panel[columns].corr(method="pearson")


def sharpe_vs_market(
    panel: pd.DataFrame,
    funds: Iterable[str],
    market_excess_col: str = COL_MARKET_EXCESS,
) -> pd.DataFrame:
    """
    Jobson–Korkie–Memmel test of each fund's Sharpe ratio against the market's.

    Sharpe ratios in the table are annualised (monthly * sqrt(12)).
    """
    rows: List[dict] = []
    for fund in funds:
        col = f"{fund}{EXCESS_SUFFIX}"
        if col not in panel.columns:
            raise ValueError(f"Excess-return column {col!r} not in panel")
        jk = jobson_korkie_test(panel[col], panel[market_excess_col])
        rows.append(
            {
                "fund": fund,
                "sharpe_fund": jk.sharpe1 * np.sqrt(MONTHS_PER_YEAR),
                "sharpe_market": jk.sharpe2 * np.sqrt(MONTHS_PER_YEAR),
                "correlation": jk.correlation,
                "n_obs": jk.n_obs,
                "z": jk.statistic,
                "p_value": jk.pvalue_two_sided,
            }
        )
    return pd.DataFrame(rows).set_index("fund")
