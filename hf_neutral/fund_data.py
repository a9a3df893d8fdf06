"""
Download and clean the monthly hedge fund return series.

The fund returns are published as a plain CSV (a date column plus one column
per fund). Such files are rarely tidy: dates come as '2021-03-31', '2021-03',
'202103', '03/31/2021' or 'Mar 2021'; values may be percentages with a '%'
sign, use thousands separators, or mark missing months with '-', 'n/a' or
-99.99. This module turns any of those into a month-end indexed DataFrame of
net decimal returns.
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
import requests

from .config import (
    FUND_RETURNS_PREFIX,
    FUND_RETURNS_SOURCE,
    HTTP_TIMEOUT,
    PROCESSED_DIR,
    RAW_DIR,
)
from .panel import to_month_end

MISSING_TOKENS = {"", "NA", "N/A", "NAN", "NULL", "-", "--", "-99.99", "-999"}

# Formats tried in order; the first that parses every non-empty date wins.
DATE_FORMATS = ["%Y-%m-%d", "%Y-%m", "%Y%m", "%m/%d/%Y", "%b %Y", "%B %Y", "%Y/%m/%d", "%d.%m.%Y"]

UNITS = ("auto", "percent", "decimal")

# A decimal fund return series whose median |monthly return| exceeds 5% is
# more likely percent values that never crossed 1.
PERCENT_HINT_MEDIAN = 0.05


def _is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


def _source_key(source: str, *extra: str) -> str:
    """'<readable stem>_<short hash>' identifying one source (and options)."""
    stem = re.sub(r"[^A-Za-z0-9]+", "_", Path(source.split("?")[0]).stem).strip("_") or "funds"
    digest = hashlib.sha1("|".join([source, *extra]).encode("utf-8")).hexdigest()[:10]
    return f"{stem}_{digest}"


def download_fund_csv(source: Optional[str] = None, dest: Optional[Path] = None) -> Path:
    """
    Fetch the fund returns CSV.

    Parameters
    ----------
    source : str, optional
        http(s) URL or local path. Defaults to config.FUND_RETURNS_SOURCE
        (environment variable HF_NEUTRAL_FUNDS_CSV).
    dest : Path, optional
        Where to save a downloaded file (default RAW_DIR / fund_returns_<name>_<hash>.csv).

    Returns
    -------
    Path
        Local path of the CSV.
    """
    source = source or FUND_RETURNS_SOURCE
    if not source:
        raise RuntimeError(
            "No fund returns source configured. Pass `source=` or set HF_NEUTRAL_FUNDS_CSV "
            "to a CSV URL or local path."
        )

    if not _is_url(source):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Fund returns CSV not found at {path}")
        print(f"  ✓ Using local fund returns file {path}")
        return path

    dest = dest or RAW_DIR / f"{FUND_RETURNS_PREFIX}_{_source_key(source)}.csv"
    dest.parent.mkdir(parents=True, exist_ok=True)
    if dest.exists():
        print(f"  ✓ Fund returns already downloaded at {dest}")
        return dest

    print("  Downloading fund returns CSV ...")
    print(f"    URL: {source}")
    resp = requests.get(source, timeout=HTTP_TIMEOUT)
    resp.raise_for_status()
    if not resp.content:
        raise RuntimeError(f"Empty response when downloading fund returns from {source}")

    dest.write_bytes(resp.content)
    print(f"  ✓ Saved fund returns ({dest.stat().st_size:,} bytes) to {dest}")
    return dest


def parse_dates(values: pd.Series) -> pd.DatetimeIndex:
    """
    Parse a column of date strings/numbers in any of the supported layouts.

    Tries each explicit format in DATE_FORMATS and falls back to pandas'
    parser. Raises ValueError if some non-empty dates cannot be parsed.
    """
    text = values.astype(str).str.strip()
    # '202103.0' shows up when pandas read YYYYMM keys as floats.
    text = text.str.replace(r"^(\d{6})\.0$", r"\1", regex=True)
    present = ~text.str.upper().isin(MISSING_TOKENS)

    for fmt in DATE_FORMATS:
        parsed = pd.to_datetime(text, format=fmt, errors="coerce")
        if parsed[present].notna().all():
            return pd.DatetimeIndex(parsed)

    parsed = pd.to_datetime(text, errors="coerce")
    bad = text[present & parsed.isna()]
    if not bad.empty:
        raise ValueError(f"Could not parse {len(bad)} date value(s), e.g. {bad.iloc[0]!r}")
    return pd.DatetimeIndex(parsed)


def clean_numeric(values: pd.Series) -> pd.Series:
    """
    Coerce a column of return values to floats.

    Strips '%', thousands separators and whitespace; maps missing-value
    tokens to NaN; handles accounting negatives like '(1.25)'.
    """
    if pd.api.types.is_numeric_dtype(values):
        out = values.astype(float)
        return out.mask(out.isin([-99.99, -999.0]))

    text = values.astype(str).str.strip()
    text = text.str.replace("%", "", regex=False).str.replace(",", "", regex=False).str.strip()
    text = text.str.replace(r"^\((.*)\)$", r"-\1", regex=True)
    text = text.where(~text.str.upper().isin(MISSING_TOKENS), np.nan)
    return pd.to_numeric(text, errors="coerce")


def _detect_date_column(df: pd.DataFrame, date_column: Optional[str]) -> str:
    if date_column is not None:
        if date_column not in df.columns:
            raise ValueError(f"Date column {date_column!r} not found; columns are {list(df.columns)}")
        return date_column
    for col in df.columns:
        if re.fullmatch(r"(date|month|period)", str(col).strip(), flags=re.IGNORECASE):
            return col
    return df.columns[0]


def _to_decimal(df: pd.DataFrame, raw: pd.DataFrame, units: str) -> pd.DataFrame:
    if units not in UNITS:
        raise ValueError(f"units must be one of {UNITS}, got {units!r}")

    for col in df.columns:
        if units == "auto":
            # An explicit '%' sign, or any monthly value beyond +/-100%
            # (impossible for a decimal fund return).
            has_pct_sign = raw[col].astype(str).str.contains("%", regex=False).any()
            is_pct = bool(has_pct_sign or df[col].abs().max() > 1)
            if not is_pct and df[col].abs().median() > PERCENT_HINT_MEDIAN:
                print(
                    f"    ⚠ {col}: median |return| {df[col].abs().median():.3f} looks like percent units; "
                    "pass units='percent' if so"
                )
        else:
            is_pct = units == "percent"
        if is_pct:
            df[col] = df[col] / 100.0
            print(f"    ✓ Converted {col} from percent to decimal")
    return df


def parse_fund_returns(
    path: Path,
    funds: Optional[Sequence[str]] = None,
    date_column: Optional[str] = None,
    units: str = "auto",
) -> pd.DataFrame:
    """
    Parse a fund returns CSV into monthly net decimal returns.

    Parameters
    ----------
    path : Path
        CSV file with a date column and one column per fund.
    funds : sequence of str, optional
        Fund columns to keep (default: every non-date column).
    date_column : str, optional
        Name of the date column (default: 'date'/'month'/'period', any case,
        else the first column).
    units : {'auto', 'percent', 'decimal'}
        'auto' treats a column as percent when it carries a '%' sign or any
        |value| > 1, and warns when a decimal-looking column has percent-sized
        typical values.

    Returns
    -------
    DataFrame
        Index: month-end dates. Columns: fund names. Values: net returns.
    """
    raw = pd.read_csv(path, dtype=str, skipinitialspace=True)
    raw.columns = [str(c).strip() for c in raw.columns]
    raw = raw.loc[:, [c for c in raw.columns if not c.startswith("Unnamed")]]
    if raw.empty:
        raise ValueError(f"No rows in fund returns file {path}")

    date_col = _detect_date_column(raw, date_column)
    value_cols: List[str] = [c for c in raw.columns if c != date_col]

    if funds is not None:
        unknown = [f for f in funds if f not in value_cols]
        if unknown:
            raise ValueError(f"Fund column(s) {unknown} not in {path.name}; available: {value_cols}")
        value_cols = list(funds)
    if not value_cols:
        raise ValueError(f"No fund columns in {path.name}")

    dates = parse_dates(raw[date_col])
    df = pd.DataFrame({col: clean_numeric(raw[col]).values for col in value_cols}, index=dates)
    df = df[df.index.notna()]
    df = _to_decimal(df, raw, units)

    df = df.dropna(how="all")
    df = to_month_end(df)
    return df


def _cache_path(source: str, units: str) -> Path:
    """Processed cache keyed on the source location and unit handling."""
    return PROCESSED_DIR / f"{FUND_RETURNS_PREFIX}_monthly_{_source_key(source, units)}.csv"


def _select_funds(df: pd.DataFrame, funds: Optional[Sequence[str]], origin: str) -> pd.DataFrame:
    if funds is None:
        return df
    unknown = [f for f in funds if f not in df.columns]
    if unknown:
        raise ValueError(f"Fund column(s) {unknown} not in {origin}; available: {list(df.columns)}")
    return df[list(funds)]


def load_fund_returns(
    start: Optional[str] = None,
    end: Optional[str] = None,
    funds: Optional[Sequence[str]] = None,
    source: Optional[str] = None,
    use_cache: bool = True,
    units: str = "auto",
) -> pd.DataFrame:
    """
    Load monthly fund returns, downloading and parsing on first use.

    Every fund column of the source is parsed and cached; `funds` only
    selects from it. With use_cache=True the parsed frame is saved to / read
    from PROCESSED_DIR / fund_returns_monthly_<name>_<hash>.csv, where the
    hash covers `source` and `units`. A local file edited in place keeps its
    cache; pass use_cache=False to re-parse it.
    """
    source = source or FUND_RETURNS_SOURCE
    cache_path = _cache_path(source, units) if source else None

    if use_cache and cache_path is not None and cache_path.exists():
        df = to_month_end(pd.read_csv(cache_path, index_col=0, parse_dates=True))
        return _select_funds(df, funds, f"cached file {cache_path}").loc[start:end]

    csv_path = download_fund_csv(source)
    print(f"  Parsing {csv_path.name} ...")
    df = parse_fund_returns(csv_path, units=units)
    print(
        f"  ✓ Fund returns: {df.shape[1]} fund(s), {len(df)} months "
        f"({df.index.min():%Y-%m} -> {df.index.max():%Y-%m})"
    )

    if use_cache:
        PROCESSED_DIR.mkdir(parents=True, exist_ok=True)
        df.to_csv(cache_path)

    return _select_funds(df, funds, csv_path.name).loc[start:end]
