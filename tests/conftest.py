"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

N_MONTHS = 120
NEUTRAL_FUND = "Neutral Fund"
BETA_FUND = "Beta Fund"


def _orthogonalize(noise: np.ndarray, regressors: np.ndarray) -> np.ndarray:
    """Remove the projection of `noise` on [1, regressors]."""
    X = np.column_stack([np.ones(len(noise)), regressors])
    coef, *_ = np.linalg.lstsq(X, noise, rcond=None)
    return noise - X @ coef


@pytest.fixture
def synthetic_sources():
    """
    Ten years of synthetic monthly data laid out like the real downloads.

    - funds and FRED series use first-of-month dates, market and crypto use
      month-end dates, factors use month-end dates;
    - 'Neutral Fund' has zero exposure to every regressor over the full sample
      (its noise is orthogonalised against them), 'Beta Fund' has a market
      beta of exactly one plus small noise;
    - crypto only exists for the last six years.
    """
    rng = np.random.RandomState(7)
    month_start = pd.date_range("2010-01-01", periods=N_MONTHS, freq="MS")
    month_end = pd.date_range("2010-01-31", periods=N_MONTHS, freq="ME")

    rf = 0.001 + 0.0005 * rng.rand(N_MONTHS)
    mkt = rng.normal(0.008, 0.04, N_MONTHS)
    infl = rng.normal(0.002, 0.002, N_MONTHS)
    mkt_ex = mkt - rf

    factors = pd.DataFrame(
        {
            "Mkt-RF": mkt_ex,
            "SMB": rng.normal(0.001, 0.02, N_MONTHS),
            "HML": rng.normal(0.0, 0.02, N_MONTHS),
            "RMW": rng.normal(0.002, 0.015, N_MONTHS),
            "CMA": rng.normal(0.001, 0.015, N_MONTHS),
            "Mom": rng.normal(0.004, 0.03, N_MONTHS),
        },
        index=month_end,
    )

    regressors = np.column_stack([factors.values, infl])
    neutral_noise = _orthogonalize(rng.normal(0.0, 0.01, N_MONTHS), regressors)

    funds = pd.DataFrame(
        {
            NEUTRAL_FUND: rf + 0.003 + neutral_noise,
            BETA_FUND: rf + 0.001 + 1.0 * mkt_ex + rng.normal(0.0, 0.005, N_MONTHS),
        },
        index=month_start,
    )

    crypto = pd.DataFrame(
        {
            "BTC": rng.normal(0.05, 0.2, N_MONTHS),
            "ETH": rng.normal(0.06, 0.25, N_MONTHS),
        },
        index=month_end,
    )
    crypto.iloc[:48] = np.nan

    return {
        "funds": funds,
        "rf": pd.Series(rf, index=month_start, name="TB3MS"),
        "market": pd.Series(mkt, index=month_end, name="MKT"),
        "inflation": pd.Series(infl, index=month_start, name="INFLATION"),
        "crypto": crypto,
        "factors": factors,
    }


@pytest.fixture
def synthetic_panel(synthetic_sources):
    """Merged panel with excess/real columns, as produced by the data pipeline."""
    from hf_neutral.workflows import run_data_pipeline

    return run_data_pipeline(synthetic_sources)


@pytest.fixture
def data_dirs(tmp_path, monkeypatch):
    """Redirect RAW_DIR / PROCESSED_DIR of every module to a temp directory."""
    raw = tmp_path / "raw"
    processed = tmp_path / "processed"
    for module in (
        "hf_neutral.fund_data",
        "hf_neutral.fred_data",
        "hf_neutral.market_data",
        "hf_neutral.download_french",
        "hf_neutral.process_french",
    ):
        mod = __import__(module, fromlist=["_"])
        if hasattr(mod, "RAW_DIR"):
            monkeypatch.setattr(mod, "RAW_DIR", raw)
        if hasattr(mod, "PROCESSED_DIR"):
            monkeypatch.setattr(mod, "PROCESSED_DIR", processed)
    return {"raw": raw, "processed": processed}
