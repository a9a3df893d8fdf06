"""
Run the full market-neutrality analysis end to end.

    python -m hf_neutral.run_analysis --funds "Fund A" "Fund B" --start 2010-01

Steps: fetch -> clean -> merge -> transform -> summarize -> regress -> plot.
Tables are printed; charts are saved under the output directory.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

import pandas as pd

from .config import COL_MARKET, DEFAULT_END, DEFAULT_START, OUTPUT_DIR
from .fund_data import UNITS
from .plots import (
    plot_capm_scatter,
    plot_cumulative_returns,
    plot_factor_loadings,
    plot_rolling_beta,
    save_figure,
)
from .regressions import MODELS
from .workflows import (
    load_all_sources,
    print_neutrality_commentary,
    run_data_pipeline,
    run_regressions,
    run_summary,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Test a hedge fund market-neutral claim with CAPM and factor regressions."
    )
    parser.add_argument("--start", type=str, default=DEFAULT_START, help="Sample start month (YYYY-MM).")
    parser.add_argument("--end", type=str, default=DEFAULT_END, help="Sample end month (YYYY-MM).")
    parser.add_argument("--funds", nargs="+", default=None, help="Fund columns to analyse (default: all).")
    parser.add_argument(
        "--funds-csv",
        type=str,
        default=None,
        help="URL or path of the fund returns CSV (default: HF_NEUTRAL_FUNDS_CSV).",
    )
    parser.add_argument(
        "--fund-units",
        type=str,
        default="auto",
        choices=list(UNITS),
        help="Units of the fund CSV values; 'auto' detects percent columns.",
    )
    parser.add_argument(
        "--models",
        nargs="+",
        default=list(MODELS),
        choices=list(MODELS),
        help="Regression models to run.",
    )
    parser.add_argument(
        "--cov-type",
        type=str,
        default="HAC",
        choices=["nonrobust", "HC1", "HAC"],
        help="Standard-error estimator.",
    )
    parser.add_argument("--hac-lags", type=int, default=6, help="Newey–West lags for --cov-type HAC.")
    parser.add_argument("--rolling-window", type=int, default=36, help="Months in the rolling-beta window.")
    parser.add_argument("--no-crypto", action="store_true", help="Skip the crypto assets.")
    parser.add_argument("--no-factors", action="store_true", help="Skip the Fama–French factor models.")
    parser.add_argument("--no-cache", action="store_true", help="Ignore cached downloads.")
    parser.add_argument("--no-plots", action="store_true", help="Do not render charts.")
    parser.add_argument("--output-dir", type=Path, default=OUTPUT_DIR, help="Where to save charts and tables.")
    return parser


def main(argv: Optional[List[str]] = None) -> dict:
    args = build_parser().parse_args(argv)

    models = list(args.models)
    if args.no_factors:
        models = [m for m in models if m not in ("ff3", "carhart", "ff5")]

    sources = load_all_sources(
        start=args.start,
        end=args.end,
        funds=args.funds,
        fund_source=args.funds_csv,
        fund_units=args.fund_units,
        include_crypto=not args.no_crypto,
        include_factors=not args.no_factors,
        use_cache=not args.no_cache,
    )
    panel = run_data_pipeline(sources, start=args.start, end=args.end)
    funds = panel.attrs["funds"]

    summary = run_summary(panel, funds)
    with pd.option_context("display.width", 160, "display.max_columns", 20, "display.float_format", "{:.4f}".format):
        print(f"\nSample: {summary['inputs']['start']} -> {summary['inputs']['end']}")
        print("\nSummary statistics (annualised):")
        print(summary["summary_tables"]["stats"])
        if "real_stats" in summary["summary_tables"]:
            print("\nReal (inflation-deflated) returns:")
            print(summary["summary_tables"]["real_stats"])
        print("\nCorrelations:")
        print(summary["summary_tables"]["correlation"])
        print("\nSharpe ratio vs market (Jobson–Korkie–Memmel):")
        print(summary["summary_tables"]["sharpe_vs_market"])

    regs = run_regressions(panel, funds, models=models, cov_type=args.cov_type, hac_lags=args.hac_lags)
    for res in regs["results"]:
        print(f"\n===== {res.name} : {res.dependent} =====")
        print(res.summary_text)

    print("\nMarket-neutrality verdicts:")
    print_neutrality_commentary(regs["summary_tables"]["neutrality"])

    args.output_dir.mkdir(parents=True, exist_ok=True)
    regs["summary_tables"]["regressions"].to_csv(args.output_dir / "regressions.csv", index=False)
    regs["summary_tables"]["neutrality"].to_csv(args.output_dir / "neutrality.csv", index=False)
    summary["summary_tables"]["stats"].to_csv(args.output_dir / "summary_statistics.csv")
    print(f"\n✓ Tables saved to {args.output_dir}")

    if not args.no_plots:
        print("\nRendering charts ...")
        crypto = panel.attrs.get("crypto", [])
        save_figure(plot_cumulative_returns(panel, [*funds, COL_MARKET, *crypto], funds=funds, log_scale=True),
                    "cumulative_returns", args.output_dir)
        save_figure(plot_capm_scatter(panel, funds, regs["results"]), "capm_scatter", args.output_dir)
        save_figure(plot_rolling_beta(panel, funds, window=args.rolling_window), "rolling_beta", args.output_dir)
        for model in regs["inputs"]["models_run"]:
            if model == "capm":
                continue
            save_figure(plot_factor_loadings(regs["summary_tables"]["regressions"], model, funds),
                        f"loadings_{model}", args.output_dir)

    return {"panel": panel, "summary": summary, "regressions": regs}


if __name__ == "__main__":
    main()
