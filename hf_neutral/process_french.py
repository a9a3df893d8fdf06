"""
Processing utilities for Fama–French factor ZIP files.

This module:
- Extracts downloaded ZIP files under `hf_neutral_data/raw/`.
- Parses the Ken French CSV format, which stacks several tables (monthly,
  then annual) in one file, separated by free-text labels.
- Saves tidy CSVs to `hf_neutral_data/processed/`.
- Provides loaders returning monthly factor tables as net decimal returns:
  * FF5: Mkt-RF, SMB, HML, RMW, CMA (+ RF),
  * FF3: the Mkt-RF, SMB, HML subset,
  * Momentum: Mom.
"""

from __future__ import annotations

import zipfile
from io import StringIO
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .config import PROCESSED_DIR, RAW_DIR

FF5_COLUMNS = ["Mkt-RF", "SMB", "HML", "RMW", "CMA"]
FF3_COLUMNS = ["Mkt-RF", "SMB", "HML"]
MOMENTUM_COLUMN = "Mom"

SECTION_KEYWORDS = ("Monthly", "Annual")
NA_VALUES = ["-99.99", "-999", "NA", "", "NaN"]

# Dataset name for the processed files, keyed by a substring of the ZIP name.
DATASETS = {
    "5_Factors_2x3": "ff5",
    "Momentum_Factor": "momentum",
}


def _extract_zip_file(zip_path: Path, output_dir: Optional[Path] = None) -> Path:
    """
    Extract a ZIP file to `output_dir` (default: folder named after the ZIP).
    """
    if output_dir is None:
        output_dir = zip_path.parent / zip_path.stem
    output_dir.mkdir(parents=True, exist_ok=True)

    with zipfile.ZipFile(zip_path, "r") as zf:
        zf.extractall(output_dir)

    print(f"  Extracted {zip_path.name} to {output_dir}")
    return output_dir


def _is_header(line: str) -> bool:
    # Header rows start with an empty date cell: ",Mkt-RF,SMB,..." or ",Mom".
    stripped = line.strip()
    return stripped.startswith(",") and len(stripped) > 1


def parse_section(lines: List[str]) -> Optional[pd.DataFrame]:
    """
    Parse one table of a Fama–French CSV into a DataFrame.

    Date keys are YYYYMM (monthly) or YYYY (annual); values are converted
    from percent to decimal. Returns None when the lines hold no table.
    """
    header_idx = next((i for i, line in enumerate(lines) if _is_header(line)), None)
    if header_idx is None:
        return None

    # Table ends at the first blank or non-data line after the header.
    body = [lines[header_idx]]
    for line in lines[header_idx + 1:]:
        key = line.split(",", 1)[0].strip()
        if not key.isdigit():
            break
        body.append(line)
    if len(body) == 1:
        return None

    df = pd.read_csv(
        StringIO("".join(body)),
        header=0,
        skipinitialspace=True,
        na_values=NA_VALUES,
        dtype={0: str},
    )
    df.columns = ["Date", *[str(c).strip() for c in df.columns[1:]]]

    key = df["Date"].astype(str).str.strip()
    if key.str.len().eq(6).all():
        dates = pd.to_datetime(key, format="%Y%m")
    elif key.str.len().eq(4).all():
        dates = pd.to_datetime(key + "-12", format="%Y-%m")
    else:
        raise ValueError(f"Unrecognised Fama–French date keys, e.g. {key.iloc[0]!r}")

    df = df.drop(columns="Date").apply(pd.to_numeric, errors="coerce") / 100.0
    df.index = pd.DatetimeIndex(dates).to_period("M").to_timestamp("M")
    df.index.name = "Date"
    return df


def parse_french_csv_sections(csv_path: Path) -> Dict[str, pd.DataFrame]:
    """
    Split a Fama–French CSV into its labelled tables.

    The first table carries no label in these files and is the monthly one.

    Returns
    -------
    dict
        Mapping from 'monthly' / 'annual' -> DataFrame.
    """
    with open(csv_path, "r", encoding="utf-8", errors="ignore") as f:
        lines = f.readlines()

    # (label, first line index) for each table
    starts: List[Tuple[str, int]] = []
    for i, line in enumerate(lines):
        stripped = line.strip()
        keyword = next((k for k in SECTION_KEYWORDS if k in stripped and not _is_header(line)), None)
        if keyword is not None:
            starts.append((keyword.lower(), i))
        elif not starts and _is_header(line):
            starts.append(("monthly", i))

    sections: Dict[str, pd.DataFrame] = {}
    for n, (label, begin) in enumerate(starts):
        end = starts[n + 1][1] if n + 1 < len(starts) else len(lines)
        df = parse_section(lines[begin:end])
        if df is not None and not df.empty and label not in sections:
            sections[label] = df
            print(f"      Found section: {label} ({df.shape[0]} rows)")
    return sections


def _dataset_name(zip_path: Path) -> str:
    for key, name in DATASETS.items():
        if key.upper() in zip_path.name.upper():
            return name
    return zip_path.stem.replace("_CSV", "").replace("_TXT", "")


def process_zip_file(zip_path: Path) -> Dict[str, pd.DataFrame]:
    """
    Process one factor ZIP and write `<dataset>_<section>.csv` to PROCESSED_DIR.

    Returns
    -------
    dict
        Mapping from section label -> DataFrame.
    """
    print(f"\nProcessing: {zip_path.name}")
    extract_dir = _extract_zip_file(zip_path)

    data_files = sorted(extract_dir.glob("*.csv")) or sorted(extract_dir.glob("*.CSV"))
    if not data_files:
        print(f"  ⚠ No CSV files found in {extract_dir}")
        return {}

    PROCESSED_DIR.mkdir(parents=True, exist_ok=True)
    dataset = _dataset_name(zip_path)

    results: Dict[str, pd.DataFrame] = {}
    for data_file in data_files:
        print(f"  Parsing {data_file.name} ...")
        for label, df in parse_french_csv_sections(data_file).items():
            output_path = PROCESSED_DIR / f"{dataset}_{label}.csv"
            df.to_csv(output_path)
            print(f"    ✓ Saved section '{label}' to {output_path}")
            results[label] = df
    return results


def process_all_raw_zips() -> Dict[str, Dict[str, pd.DataFrame]]:
    """
    Scan RAW_DIR for all .zip files and process them.

    Returns
    -------
    dict
        Mapping from zip_name -> {section_label -> DataFrame}
    """
    if not RAW_DIR.exists():
        print(f"No RAW_DIR at {RAW_DIR}, nothing to process.")
        return {}

    zip_files = sorted(RAW_DIR.glob("*.zip"))
    if not zip_files:
        print(f"No ZIP files found in {RAW_DIR}.")
        return {}

    print("=" * 70)
    print("Processing Fama–French factor ZIPs")
    print("=" * 70)

    all_results: Dict[str, Dict[str, pd.DataFrame]] = {}
    for zf in zip_files:
        results = process_zip_file(zf)
        if results:
            all_results[zf.name] = results
    return all_results


def _load_processed(name: str, start, end) -> pd.DataFrame:
    csv_path = PROCESSED_DIR / name
    if not csv_path.exists():
        raise FileNotFoundError(
            f"No processed factor file {csv_path}. "
            "Have you run the download and processing steps (python -m hf_neutral.setup_data)?"
        )
    df = pd.read_csv(csv_path, index_col=0, parse_dates=True).sort_index()
    df.index = df.index.to_period("M").to_timestamp("M")
    return df.loc[start:end]


def load_ff5_monthly(start: Optional[str] = None, end: Optional[str] = None) -> Tuple[pd.DataFrame, pd.Series]:
    """
    Load Fama–French 5-factor (2x3) monthly data.

    Returns
    -------
    (factors, rf)
        factors : DataFrame with columns ['Mkt-RF', 'SMB', 'HML', 'RMW', 'CMA']
        rf : Series of the one-month T-bill rate used by Ken French
    """
    df = _load_processed("ff5_monthly.csv", start, end)
    return df[FF5_COLUMNS].copy(), df["RF"].copy()


def load_ff3_monthly(start: Optional[str] = None, end: Optional[str] = None) -> Tuple[pd.DataFrame, pd.Series]:
    """
    Fama–French 3-factor monthly data, taken as the subset of the 5-factor
    file so only one download is needed.
    """
    factors, rf = load_ff5_monthly(start, end)
    return factors[FF3_COLUMNS].copy(), rf


def load_momentum_monthly(start: Optional[str] = None, end: Optional[str] = None) -> pd.Series:
    """Monthly momentum factor ('Mom')."""
    df = _load_processed("momentum_monthly.csv", start, end)
    # Older files label the column with trailing spaces.
    df.columns = [c.strip() for c in df.columns]
    return df[MOMENTUM_COLUMN].copy()
