"""Tests for hf_neutral.regressions on the synthetic panel."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from hf_neutral.regressions import (
    MODELS,
    fit_ols,
    joint_exposure_test,
    market_neutrality_test,
    neutrality_table,
    results_table,
    rolling_beta,
    run_capm,
    run_factor_model,
    run_model_suite,
)

NEUTRAL = "Neutral Fund"
BETA = "Beta Fund"


class TestFitOLS:
    def test_recovers_coefficients(self):
        rng = np.random.RandomState(0)
        x = pd.Series(rng.normal(size=200), name="x")
        y = 0.5 + 2.0 * x + rng.normal(scale=0.01, size=200)
        fit = fit_ols(y, x)
        assert fit.params["const"] == pytest.approx(0.5, abs=0.01)
        assert fit.params["x"] == pytest.approx(2.0, abs=0.01)

    def test_drops_missing_rows(self):
        x = pd.Series([1.0, 2.0, 3.0, np.nan, 5.0, 6.0], name="x")
        y = pd.Series([2.0, 4.1, 5.9, 8.0, np.nan, 12.1])
        assert int(fit_ols(y, x).nobs) == 4

    def test_too_few_observations(self):
        x = pd.DataFrame({"a": [1.0, 2.0], "b": [0.0, 1.0]})
        with pytest.raises(ValueError, match="complete observations"):
            fit_ols(pd.Series([1.0, 2.0]), x)

    def test_bad_cov_type(self):
        with pytest.raises(ValueError):
            fit_ols(pd.Series([1.0, 2.0, 3.0]), pd.Series([1.0, 2.0, 4.0], name="x"), cov_type="HC9")

    @pytest.mark.parametrize("cov_type", ["HC1", "HAC"])
    def test_robust_covariances(self, cov_type):
        rng = np.random.RandomState(1)
        x = pd.Series(rng.normal(size=100), name="x")
        y = x + rng.normal(size=100)
        fit = fit_ols(y, x, cov_type=cov_type, hac_lags=3)
        assert fit.cov_type == cov_type
        assert fit.bse["x"] > 0


class TestCAPM:
    def test_beta_fund(self, synthetic_panel):
        res = run_capm(synthetic_panel, BETA)
        assert res.name == "capm"
        assert res.dependent == BETA
        assert res.betas["MKT_excess"] == pytest.approx(1.0, abs=0.05)
        assert res.r_squared > 0.9
        assert res.n_obs == 120
        assert (res.start, res.end) == ("2010-01", "2019-12")
        nt = market_neutrality_test(res)
        assert not nt.neutral
        assert nt.p_value < 0.001
        assert nt.ci_low < 1.0 < nt.ci_high

    def test_neutral_fund(self, synthetic_panel):
        res = run_capm(synthetic_panel, NEUTRAL, cov_type="HAC", hac_lags=6)
        assert abs(res.betas["MKT_excess"]) < 1e-8
        assert res.alpha == pytest.approx(0.003, abs=1e-8)
        nt = market_neutrality_test(res)
        assert nt.neutral
        assert nt.ci_low < 0.0 < nt.ci_high
        assert "OLS Regression Results" in res.summary_text

    def test_missing_excess_column(self, synthetic_panel):
        with pytest.raises(ValueError, match="Excess-return column"):
            run_capm(synthetic_panel, "Ghost Fund")

    def test_missing_factor(self, synthetic_panel):
        with pytest.raises(ValueError, match="not in panel"):
            run_factor_model(synthetic_panel, BETA, ["NOPE"])


class TestFactorModels:
    def test_ff5_joint_test(self, synthetic_panel):
        res = run_factor_model(synthetic_panel, NEUTRAL, MODELS["ff5"], name="ff5")
        joint = joint_exposure_test(res)
        assert joint["df_num"] == 5
        assert joint["p_value"] > 0.05

        beta_res = run_factor_model(synthetic_panel, BETA, MODELS["ff5"], name="ff5")
        assert joint_exposure_test(beta_res)["p_value"] < 0.001
        assert market_neutrality_test(beta_res).market_factor == "Mkt-RF"

    def test_joint_test_subset_and_unknown(self, synthetic_panel):
        res = run_factor_model(synthetic_panel, BETA, MODELS["carhart"], name="carhart")
        assert joint_exposure_test(res, ["SMB", "Mom"])["df_num"] == 2
        with pytest.raises(ValueError):
            joint_exposure_test(res, ["RMW"])
        with pytest.raises(ValueError):
            market_neutrality_test(res, market_factor="CMA")

    def test_crypto_model_uses_crypto_subsample(self, synthetic_panel):
        res = run_factor_model(synthetic_panel, BETA, MODELS["capm_crypto"], name="capm_crypto")
        assert res.n_obs == 72
        assert res.start == "2014-01"


class TestSuite:
    def test_runs_every_model(self, synthetic_panel):
        results = run_model_suite(synthetic_panel, [NEUTRAL, BETA], cov_type="HAC", hac_lags=6)
        assert len(results) == len(MODELS) * 2
        table = results_table(results)
        for col in ["model", "fund", "alpha", "alpha_annual", "t_alpha", "beta_Mkt-RF", "r_squared", "cov_type"]:
            assert col in table.columns
        assert set(table["cov_type"]) == {"HAC"}

    def test_skips_absent_columns(self, synthetic_panel, capsys):
        panel = synthetic_panel.drop(columns=["Mom", "BTC_excess"])
        results = run_model_suite(panel, iter([BETA]))
        names = {r.name for r in results}
        assert "carhart" not in names
        assert "capm_crypto" not in names
        assert "capm" in names
        assert "Skipping carhart" in capsys.readouterr().out

    def test_skips_short_samples(self, synthetic_panel):
        panel = synthetic_panel.copy()
        panel.loc[panel.index[:-3], "ETH_excess"] = np.nan
        results = run_model_suite(panel, [BETA], models=["capm_crypto"])
        assert results == []

    def test_unknown_model(self, synthetic_panel):
        with pytest.raises(ValueError, match="Unknown model"):
            run_model_suite(synthetic_panel, [BETA], models=["apt"])

    def test_neutrality_table(self, synthetic_panel):
        results = run_model_suite(synthetic_panel, [NEUTRAL, BETA], models=["capm", "ff3"])
        table = neutrality_table(results)
        assert len(table) == 4
        verdict = table.set_index(["model", "fund"])["market_neutral"]
        assert verdict[("capm", NEUTRAL)]
        assert not verdict[("capm", BETA)]
        assert not verdict[("ff3", BETA)]

    def test_empty_results_table(self):
        assert results_table([]).empty


class TestRollingBeta:
    def test_window(self, synthetic_panel):
        beta = rolling_beta(synthetic_panel, BETA, window=36)
        assert beta.name == "Beta Fund_beta_36m"
        assert beta.iloc[:35].isna().all()
        assert beta.iloc[-1] == pytest.approx(1.0, abs=0.1)

    def test_invalid_window(self, synthetic_panel):
        with pytest.raises(ValueError):
            rolling_beta(synthetic_panel, BETA, window=2)
        with pytest.raises(ValueError):
            rolling_beta(synthetic_panel, BETA, market_col="NOPE")
