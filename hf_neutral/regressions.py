"""
CAPM and multi-factor regressions for testing a market-neutral claim.

A fund is "market neutral" if its excess return has no statistically
significant loading on the market's excess return. We estimate

    r_fund - rf = alpha + sum_k beta_k * f_k + e

by OLS (statsmodels) for a set of canned factor models and test
H0: beta_market = 0. Newey–West (HAC) standard errors are available since
hedge fund returns are often autocorrelated (return smoothing of illiquid
positions).

Canned models
-------------
- capm        : market excess return
- ff3         : Fama–French Mkt-RF, SMB, HML
- carhart     : FF3 + momentum
- ff5         : Fama–French Mkt-RF, SMB, HML, RMW, CMA
- capm_crypto : market + Bitcoin + Ether excess returns
- macro       : market excess return + inflation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm

from .config import COL_INFLATION, COL_MARKET_EXCESS, EXCESS_SUFFIX

MODELS: Dict[str, List[str]] = {
    "capm": [COL_MARKET_EXCESS],
    "ff3": ["Mkt-RF", "SMB", "HML"],
    "carhart": ["Mkt-RF", "SMB", "HML", "Mom"],
    "ff5": ["Mkt-RF", "SMB", "HML", "RMW", "CMA"],
    "capm_crypto": [COL_MARKET_EXCESS, f"BTC{EXCESS_SUFFIX}", f"ETH{EXCESS_SUFFIX}"],
    "macro": [COL_MARKET_EXCESS, COL_INFLATION],
}

# Which regressor measures equity-market exposure in each model.
MARKET_FACTOR: Dict[str, str] = {
    "capm": COL_MARKET_EXCESS,
    "ff3": "Mkt-RF",
    "carhart": "Mkt-RF",
    "ff5": "Mkt-RF",
    "capm_crypto": COL_MARKET_EXCESS,
    "macro": COL_MARKET_EXCESS,
}

COV_TYPES = ("nonrobust", "HC1", "HAC")


@dataclass
class RegressionResult:
    """Estimates of one fund-on-factors regression."""

    name: str
    dependent: str
    factors: List[str]
    alpha: float
    alpha_t: float
    alpha_p: float
    betas: Dict[str, float]
    t_values: Dict[str, float]
    p_values: Dict[str, float]
    r_squared: float
    adj_r_squared: float
    n_obs: int
    cov_type: str
    start: str
    end: str
    summary_text: str = ""
    model: Any = field(default=None, repr=False)

    def to_row(self) -> Dict[str, Any]:
        """Flatten into one table row: alpha, then beta_/t_/p_ per factor."""
        row: Dict[str, Any] = {
            "model": self.name,
            "fund": self.dependent,
            "start": self.start,
            "end": self.end,
            "n_obs": self.n_obs,
            "alpha": self.alpha,
            "alpha_annual": self.alpha * 12,
            "t_alpha": self.alpha_t,
            "p_alpha": self.alpha_p,
        }
        for f in self.factors:
            row[f"beta_{f}"] = self.betas[f]
            row[f"t_{f}"] = self.t_values[f]
            row[f"p_{f}"] = self.p_values[f]
        row["r_squared"] = self.r_squared
        row["adj_r_squared"] = self.adj_r_squared
        row["cov_type"] = self.cov_type
        return row


def fit_ols(
    y: pd.Series,
    X: pd.DataFrame,
    add_constant: bool = True,
    cov_type: str = "nonrobust",
    hac_lags: Optional[int] = None,
):
    """
    Fit OLS of `y` on `X`, dropping months with missing values.

    Parameters
    ----------
    cov_type : {'nonrobust', 'HC1', 'HAC'}
        Covariance estimator. 'HAC' is Newey–West with `hac_lags` lags
        (default: floor(4 * (T/100) ** (2/9))).

    Returns
    -------
    statsmodels RegressionResults
    """
    if cov_type not in COV_TYPES:
        raise ValueError(f"cov_type must be one of {COV_TYPES}")
    if isinstance(X, pd.Series):
        X = X.to_frame()

    data = pd.concat([y.rename("__y__"), X], axis=1).dropna(how="any")
    n_params = X.shape[1] + (1 if add_constant else 0)
    if len(data) <= n_params:
        raise ValueError(
            f"Only {len(data)} complete observations for {n_params} parameters "
            f"(regressors: {list(X.columns)})."
        )

    exog = data[X.columns]
    if add_constant:
        exog = sm.add_constant(exog, has_constant="add")
    model = sm.OLS(data["__y__"], exog)

    if cov_type == "HAC":
        if hac_lags is None:
            hac_lags = int(np.floor(4 * (len(data) / 100.0) ** (2.0 / 9.0)))
        return model.fit(cov_type="HAC", cov_kwds={"maxlags": hac_lags})
    if cov_type == "HC1":
        return model.fit(cov_type="HC1")
    return model.fit()


def _result_from_fit(name: str, dependent: str, factors: List[str], fit, cov_type: str) -> RegressionResult:
    idx = fit.model.data.row_labels
    return RegressionResult(
        name=name,
        dependent=dependent,
        factors=list(factors),
        alpha=float(fit.params["const"]),
        alpha_t=float(fit.tvalues["const"]),
        alpha_p=float(fit.pvalues["const"]),
        betas={f: float(fit.params[f]) for f in factors},
        t_values={f: float(fit.tvalues[f]) for f in factors},
        p_values={f: float(fit.pvalues[f]) for f in factors},
        r_squared=float(fit.rsquared),
        adj_r_squared=float(fit.rsquared_adj),
        n_obs=int(fit.nobs),
        cov_type=cov_type,
        start=pd.Timestamp(idx.min()).strftime("%Y-%m"),
        end=pd.Timestamp(idx.max()).strftime("%Y-%m"),
        summary_text=str(fit.summary()),
        model=fit,
    )


def _dependent_column(panel: pd.DataFrame, fund: str) -> str:
    excess = f"{fund}{EXCESS_SUFFIX}"
    if excess in panel.columns:
        return excess
    raise ValueError(
        f"Excess-return column {excess!r} not in panel; add it with returns.add_excess_columns first."
    )


def run_factor_model(
    panel: pd.DataFrame,
    fund: str,
    factors: Sequence[str],
    name: str = "custom",
    cov_type: str = "nonrobust",
    hac_lags: Optional[int] = None,
) -> RegressionResult:
    """
    Regress the fund's excess return on `factors` (columns of `panel`).
    """
    factors = list(factors)
    missing = [f for f in factors if f not in panel.columns]
    if missing:
        raise ValueError(f"Factor column(s) {missing} not in panel for model {name!r}")

    dep = _dependent_column(panel, fund)
    fit = fit_ols(panel[dep], panel[factors], cov_type=cov_type, hac_lags=hac_lags)
    return _result_from_fit(name, fund, factors, fit, cov_type)


def run_capm(
    panel: pd.DataFrame,
    fund: str,
    cov_type: str = "nonrobust",
    hac_lags: Optional[int] = None,
) -> RegressionResult:
    """CAPM: fund excess return on the market excess return."""
    return run_factor_model(panel, fund, MODELS["capm"], name="capm", cov_type=cov_type, hac_lags=hac_lags)


def run_model_suite(
    panel: pd.DataFrame,
    funds: Iterable[str],
    models: Optional[Iterable[str]] = None,
    cov_type: str = "nonrobust",
    hac_lags: Optional[int] = None,
) -> List[RegressionResult]:
    """
    Run every requested canned model for every fund.

    Models whose factor columns are absent from the panel are skipped with a
    printed note (e.g. no crypto data was loaded).
    """
    funds = list(funds)
    models = list(models) if models is not None else list(MODELS)
    unknown = [m for m in models if m not in MODELS]
    if unknown:
        raise ValueError(f"Unknown model(s) {unknown}; choose from {list(MODELS)}")

    results: List[RegressionResult] = []
    for model_name in models:
        factors = MODELS[model_name]
        absent = [f for f in factors if f not in panel.columns]
        if absent:
            print(f"  Skipping {model_name}: panel lacks {absent}")
            continue
        for fund in funds:
            n_complete = int(panel[[_dependent_column(panel, fund), *factors]].notna().all(axis=1).sum())
            if n_complete <= len(factors) + 1:
                print(f"  Skipping {model_name} for {fund}: only {n_complete} complete months")
                continue
            res = run_factor_model(panel, fund, factors, name=model_name, cov_type=cov_type, hac_lags=hac_lags)
            results.append(res)
            print(
                f"  ✓ {model_name:<12} {fund:<20} alpha={res.alpha:+.4f} "
                f"beta_mkt={res.betas[MARKET_FACTOR[model_name]]:+.3f} R²={res.r_squared:.2f} (N={res.n_obs})"
            )
    return results


def results_table(results: Iterable[RegressionResult]) -> pd.DataFrame:
    """One row per (model, fund) with coefficients, t-stats and fit."""
    rows = [r.to_row() for r in results]
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows)


@dataclass
class NeutralityTest:
    """Outcome of H0: beta_market = 0 for one regression."""

    model: str
    fund: str
    market_factor: str
    beta: float
    t_stat: float
    p_value: float
    ci_low: float
    ci_high: float
    significance: float
    neutral: bool


def market_neutrality_test(
    result: RegressionResult,
    market_factor: Optional[str] = None,
    significance: float = 0.05,
) -> NeutralityTest:
    """
    Test H0: beta_market = 0.

    The fund is judged market neutral when H0 is not rejected at
    `significance`. Note that failing to reject is weaker evidence than a
    tight confidence interval around zero, so the CI is reported as well.
    """
    market_factor = market_factor or MARKET_FACTOR.get(result.name) or result.factors[0]
    if market_factor not in result.betas:
        raise ValueError(f"{market_factor!r} is not a regressor of model {result.name!r}")

    ci = result.model.conf_int(alpha=significance).loc[market_factor]
    p = result.p_values[market_factor]
    return NeutralityTest(
        model=result.name,
        fund=result.dependent,
        market_factor=market_factor,
        beta=result.betas[market_factor],
        t_stat=result.t_values[market_factor],
        p_value=p,
        ci_low=float(ci.iloc[0]),
        ci_high=float(ci.iloc[1]),
        significance=significance,
        neutral=bool(p >= significance),
    )


def joint_exposure_test(result: RegressionResult, factors: Optional[Sequence[str]] = None) -> Dict[str, float]:
    """
    Wald/F test that all listed slopes are jointly zero (default: all factors).

    Returns dict with 'statistic', 'p_value', 'df_num', 'df_denom'.
    """
    factors = list(factors) if factors is not None else list(result.factors)
    unknown = [f for f in factors if f not in result.betas]
    if unknown:
        raise ValueError(f"{unknown} not regressors of model {result.name!r}")

    fit = result.model
    names = list(fit.params.index)
    R = np.zeros((len(factors), len(names)))
    for i, f in enumerate(factors):
        R[i, names.index(f)] = 1.0
    test = fit.f_test(R)
    return {
        "statistic": float(np.squeeze(test.fvalue)),
        "p_value": float(np.squeeze(test.pvalue)),
        "df_num": float(test.df_num),
        "df_denom": float(test.df_denom),
    }


def neutrality_table(results: Iterable[RegressionResult], significance: float = 0.05) -> pd.DataFrame:
    """Market-beta test for every result, plus the joint test of all slopes."""
    rows = []
    for res in results:
        nt = market_neutrality_test(res, significance=significance)
        joint = joint_exposure_test(res)
        rows.append(
            {
                "model": nt.model,
                "fund": nt.fund,
                "market_factor": nt.market_factor,
                "beta_mkt": nt.beta,
                "t_mkt": nt.t_stat,
                "p_mkt": nt.p_value,
                "ci_low": nt.ci_low,
                "ci_high": nt.ci_high,
                "joint_F": joint["statistic"],
                "joint_p": joint["p_value"],
                "market_neutral": nt.neutral,
            }
        )
    return pd.DataFrame(rows)


def rolling_beta(
    panel: pd.DataFrame,
    fund: str,
    market_col: str = COL_MARKET_EXCESS,
    window: int = 36,
    min_periods: Optional[int] = None,
) -> pd.Series:
    """
    Rolling CAPM beta: cov(fund excess, market excess) / var(market excess)
    over a trailing window of months.
    """
    dep = _dependent_column(panel, fund)
    if market_col not in panel.columns:
        raise ValueError(f"Market column {market_col!r} not in panel")
    if window < 3:
        raise ValueError("window must be at least 3 months")

    min_periods = min_periods or window
    y = panel[dep]
    x = panel[market_col]
    cov = y.rolling(window, min_periods=min_periods).cov(x)
    var = x.rolling(window, min_periods=min_periods).var()
    beta = cov / var
    beta.name = f"{fund}_beta_{window}m"
    return beta
