"""
Configuration for the hedge fund market-neutrality analysis.

Centralises paths and data-source identifiers so that all downloaded and
processed data lives under a single `hf_neutral_data/` directory at the
project root (override with the HF_NEUTRAL_DATA_ROOT environment variable).
"""

import os
from pathlib import Path

# Project root = parent of this `hf_neutral` package
PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_ROOT = Path(os.environ.get("HF_NEUTRAL_DATA_ROOT", PROJECT_ROOT / "hf_neutral_data"))
RAW_DIR = DATA_ROOT / "raw"              # Downloaded CSV / ZIP files
PROCESSED_DIR = DATA_ROOT / "processed"  # Tidy monthly CSVs
OUTPUT_DIR = DATA_ROOT / "output"        # Saved charts and tables

# NOTE: Directory creation is done by the download/processing code,
# not at import time.

DEFAULT_START = "2000-01"
DEFAULT_END = "2025-12"

# Hedge fund returns: a CSV with a date column and one column per fund.
# Either an http(s) URL or a local path.
FUND_RETURNS_SOURCE = os.environ.get("HF_NEUTRAL_FUNDS_CSV", "")
FUND_RETURNS_PREFIX = "fund_returns"

# FRED
FRED_API_KEY = os.environ.get("FRED_API_KEY", "")
RISK_FREE_SERIES = "TB3MS"   # 3-month T-bill, secondary market, % p.a.
CPI_SERIES = "CPIAUCSL"      # CPI, all urban consumers, index level

# Market data (Yahoo Finance tickers)
EQUITY_INDEX_TICKER = "^GSPC"
CRYPTO_TICKERS = {
    "BTC": "BTC-USD",
    "ETH": "ETH-USD",
}

HTTP_TIMEOUT = 60

# Canonical column names of the merged monthly panel.
COL_RF = "RF"
COL_INFLATION = "INFLATION"
COL_MARKET = "MKT"
COL_MARKET_EXCESS = "MKT_excess"
EXCESS_SUFFIX = "_excess"
REAL_SUFFIX = "_real"

MONTHS_PER_YEAR = 12
