"""
Section-level workflow entry points for the market-neutrality analysis.

Design goal: keep notebooks and the CLI to descriptive function calls, with
data loading, cleaning and estimation delegated to reusable module code.
Each run_* function returns a plain dict of DataFrames / results.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .config import (
    COL_INFLATION,
    COL_MARKET,
    COL_MARKET_EXCESS,
    COL_RF,
    CRYPTO_TICKERS,
    DEFAULT_END,
    DEFAULT_START,
    REAL_SUFFIX,
)
from .fred_data import load_inflation_monthly, load_risk_free_monthly
from .fund_data import load_fund_returns
from .market_data import load_crypto_monthly, load_equity_index_monthly
from .panel import build_panel, common_sample
from .process_french import load_ff5_monthly, load_momentum_monthly
from .regressions import MODELS, neutrality_table, results_table, run_model_suite
from .returns import add_excess_columns, add_real_columns, annualize_rate
from .summary import correlation_matrix, sharpe_vs_market, summary_statistics


def load_all_sources(
    start: str = DEFAULT_START,
    end: str = DEFAULT_END,
    funds: Optional[Sequence[str]] = None,
    fund_source: Optional[str] = None,
    fund_units: str = "auto",
    include_crypto: bool = True,
    include_factors: bool = True,
    api_key: Optional[str] = None,
    use_cache: bool = True,
) -> Dict[str, Any]:
    """
    Fetch every input series for the analysis.

    Factors are read from the processed Fama–French files, so the setup step
    (python -m hf_neutral.setup_data) must have run when include_factors=True.

    Returns
    -------
    dict with keys 'funds', 'rf', 'market', 'inflation', 'crypto', 'factors'
    (the last two are None when excluded).
    """
    print("\nLoading hedge fund returns ...")
    fund_df = load_fund_returns(
        start, end, funds=funds, source=fund_source, use_cache=use_cache, units=fund_units
    )

    print("\nLoading risk-free rate and inflation from FRED ...")
    rf = load_risk_free_monthly(start, end, api_key=api_key, use_cache=use_cache)
    inflation = load_inflation_monthly(start, end, api_key=api_key, use_cache=use_cache)

    print("\nLoading equity index ...")
    market = load_equity_index_monthly(start, end, use_cache=use_cache)

    crypto = None
    if include_crypto:
        print("\nLoading crypto assets ...")
        crypto = load_crypto_monthly(start, end, use_cache=use_cache)

    factors = None
    if include_factors:
        print("\nLoading Fama–French factors ...")
        ff5, _ = load_ff5_monthly(start, end)
        mom = load_momentum_monthly(start, end)
        factors = ff5.join(mom, how="outer")

    return {
        "funds": fund_df,
        "rf": rf,
        "market": market,
        "inflation": inflation,
        "crypto": crypto,
        "factors": factors,
    }


def run_data_pipeline(
    sources: Dict[str, Any],
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> pd.DataFrame:
    """
    Merge the raw sources and add derived columns.

    Adds `<col>_excess` for every fund, the market and the crypto assets, and
    `<col>_real` for every fund and the market when inflation is available.
    The resulting panel carries `attrs['funds']` and `attrs['crypto']` with
    the names of those column groups.
    """
    funds_df: pd.DataFrame = sources["funds"]
    crypto: Optional[pd.DataFrame] = sources.get("crypto")
    inflation: Optional[pd.Series] = sources.get("inflation")

    print("\nMerging sources into a monthly panel ...")
    panel = build_panel(
        funds=funds_df,
        rf=sources["rf"],
        market=sources["market"],
        inflation=inflation,
        crypto=crypto,
        factors=sources.get("factors"),
        start=start,
        end=end,
    )

    fund_cols = list(funds_df.columns)
    crypto_cols = [c for c in (crypto.columns if crypto is not None else []) if c in panel.columns]

    panel = add_excess_columns(panel, [*fund_cols, COL_MARKET, *crypto_cols], rf_col=COL_RF)
    if inflation is not None and COL_INFLATION in panel.columns:
        panel = add_real_columns(panel, [*fund_cols, COL_MARKET], inflation_col=COL_INFLATION)

    panel.attrs["funds"] = fund_cols
    panel.attrs["crypto"] = crypto_cols
    return panel


def run_summary(panel: pd.DataFrame, funds: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """
    Descriptive statistics for funds, market, risk-free, inflation and crypto.

    Returns a dict with:
    - inputs: sample metadata
    - summary_tables: stats / real_stats / correlation / sharpe_vs_market
    """
    funds = list(funds) if funds is not None else list(panel.attrs.get("funds", []))
    if not funds:
        raise ValueError("No fund columns given and panel.attrs['funds'] is empty")

    crypto = [
        c
        for c in panel.attrs.get("crypto", CRYPTO_TICKERS.keys())
        if c in panel.columns and panel[c].notna().any()
    ]
    nominal = [*funds, COL_MARKET, *crypto]

    stats = summary_statistics(panel, nominal, rf_col=COL_RF)

    tables: Dict[str, pd.DataFrame] = {"stats": stats}
    real_cols = [f"{c}{REAL_SUFFIX}" for c in [*funds, COL_MARKET] if f"{c}{REAL_SUFFIX}" in panel.columns]
    if real_cols:
        # Real Sharpe ratios are not meaningful against a nominal RF; report returns only.
        tables["real_stats"] = summary_statistics(panel, real_cols, rf_col=COL_RF)[
            ["n_obs", "ann_return", "ann_vol", "max_drawdown"]
        ]

    corr_cols = [*funds, COL_MARKET, *crypto]
    if COL_INFLATION in panel.columns:
        corr_cols.append(COL_INFLATION)
    tables["correlation"] = correlation_matrix(panel, corr_cols)
    tables["sharpe_vs_market"] = sharpe_vs_market(panel, funds, market_excess_col=COL_MARKET_EXCESS)

    start, end = common_sample(panel, [*funds, COL_MARKET, COL_RF])
    return {
        "inputs": {
            "start": start,
            "end": end,
            "n_obs": int(len(panel)),
            "funds": funds,
            "crypto": crypto,
            "rf_mean_annual": float(annualize_rate(panel[COL_RF].mean())),
        },
        "summary_tables": tables,
    }


def run_regressions(
    panel: pd.DataFrame,
    funds: Optional[Sequence[str]] = None,
    models: Optional[Iterable[str]] = None,
    cov_type: str = "HAC",
    hac_lags: Optional[int] = 6,
    significance: float = 0.05,
) -> Dict[str, Any]:
    """
    Run the canned regression suite and the market-neutrality tests.

    Returns a dict with:
    - inputs: settings used
    - results: list of RegressionResult
    - summary_tables: regressions (coefficients) / neutrality (beta tests)
    """
    funds = list(funds) if funds is not None else list(panel.attrs.get("funds", []))
    if not funds:
        raise ValueError("No fund columns given and panel.attrs['funds'] is empty")
    models = list(models) if models is not None else list(MODELS)

    print(f"\nRunning regressions ({cov_type} standard errors) ...")
    results = run_model_suite(panel, funds, models=models, cov_type=cov_type, hac_lags=hac_lags)
    if not results:
        raise ValueError(f"None of the models {models} could run on this panel")

    return {
        "inputs": {
            "funds": funds,
            "models": models,
            "models_run": sorted({r.name for r in results}, key=models.index),
            "cov_type": cov_type,
            "hac_lags": hac_lags,
            "significance": significance,
        },
        "results": results,
        "summary_tables": {
            "regressions": results_table(results),
            "neutrality": neutrality_table(results, significance=significance),
        },
    }


def print_neutrality_commentary(neutrality: pd.DataFrame) -> None:
    """
    Print simple rule-based verdicts on the market-neutral claim per fund.

    Parameters
    ----------
    neutrality : DataFrame
        Output of regressions.neutrality_table().
    """
    if neutrality.empty:
        print("No regression results; nothing to comment on.")
        return

    for fund, rows in neutrality.groupby("fund", sort=False):
        verdicts: List[str] = []
        for _, row in rows.iterrows():
            if row["market_neutral"]:
                if max(abs(row["ci_low"]), abs(row["ci_high"])) < 0.1:
                    comment = "beta indistinguishable from zero and tightly bounded"
                else:
                    comment = "beta not significant, but the confidence interval is wide"
            elif row["beta_mkt"] > 0:
                comment = "significant positive market exposure"
            else:
                comment = "significant negative market exposure"
            verdicts.append(
                f"    [{row['model']}] beta={row['beta_mkt']:+.3f} "
                f"(t={row['t_mkt']:.2f}, p={row['p_mkt']:.3f}) → {comment}"
            )

        n_neutral = int(rows["market_neutral"].sum())
        overall = (
            "consistent with the market-neutral claim"
            if n_neutral == len(rows)
            else "NOT consistent with the market-neutral claim"
            if n_neutral == 0
            else "mixed evidence on the market-neutral claim"
        )
        print(f"{fund}: {overall} ({n_neutral}/{len(rows)} models)")
        for line in verdicts:
            print(line)
