"""
One-shot setup script for the market-neutrality analysis data.

Usage (from the project root):

    python -m hf_neutral.setup_data

This will:
1. Download the Fama–French 5-factor and momentum ZIPs and process them into
   tidy CSVs under `hf_neutral_data/processed/`.
2. Download the hedge fund returns CSV (HF_NEUTRAL_FUNDS_CSV).
3. Fetch the risk-free rate and CPI from FRED (FRED_API_KEY).
4. Fetch the equity index and crypto prices from Yahoo Finance.
5. Print basic diagnostics so you can verify the date ranges and shapes.

Everything is cached, so re-running only downloads what is missing.
"""

from __future__ import annotations

from .config import DATA_ROOT, DEFAULT_END, DEFAULT_START, PROCESSED_DIR, RAW_DIR
from .download_french import download_all_factor_zips
from .fred_data import load_inflation_monthly, load_risk_free_monthly
from .fund_data import load_fund_returns
from .market_data import load_crypto_monthly, load_equity_index_monthly
from .process_french import load_ff5_monthly, load_momentum_monthly, process_zip_file


def _describe(name: str, obj) -> None:
    print(f"\n{name}:")
    print(f"  Shape: {obj.shape}")
    valid = obj.dropna(how="all") if obj.ndim == 2 else obj.dropna()
    if valid.empty:
        print("  ⚠ No observations")
        return
    print(f"  Date range: {valid.index.min().date()} -> {valid.index.max().date()}")


def main(start: str = DEFAULT_START, end: str = DEFAULT_END) -> None:
    """Run the full data-setup pipeline."""
    print(f"hf_neutral data root: {DATA_ROOT}")
    DATA_ROOT.mkdir(parents=True, exist_ok=True)
    RAW_DIR.mkdir(parents=True, exist_ok=True)
    PROCESSED_DIR.mkdir(parents=True, exist_ok=True)

    print("\nStep 1: Downloading and processing Fama–French factor ZIPs ...")
    ff5_zip, mom_zip = download_all_factor_zips()
    process_zip_file(ff5_zip)
    process_zip_file(mom_zip)

    print("\nStep 2: Hedge fund returns ...")
    funds = load_fund_returns(start, end)

    print("\nStep 3: FRED risk-free rate and inflation ...")
    rf = load_risk_free_monthly(start, end)
    inflation = load_inflation_monthly(start, end)

    print("\nStep 4: Equity index and crypto from Yahoo Finance ...")
    market = load_equity_index_monthly(start, end)
    crypto = load_crypto_monthly(start, end)

    print("\nStep 5: Quick sanity checks ...")
    ff5, _ = load_ff5_monthly(start, end)
    mom = load_momentum_monthly(start, end)
    _describe("Hedge funds (net monthly returns)", funds)
    _describe("Risk-free (monthly rate)", rf)
    _describe("Inflation (monthly)", inflation)
    _describe("Equity index (monthly returns)", market)
    _describe("Crypto (monthly returns)", crypto)
    _describe("FF5 factors", ff5)
    _describe("Momentum", mom)

    print("\n✓ hf_neutral data setup complete.")


if __name__ == "__main__":
    main()
