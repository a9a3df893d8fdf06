"""
Alignment and merging of heterogeneous monthly sources into one panel.

Each source arrives with its own date convention: hedge fund CSVs often use
the first of the month, FRED uses the first of the month, Yahoo resamples to
calendar month end and the Fama–French files use YYYYMM keys. Everything is
normalised to calendar month-end timestamps before joining so that the same
month always lands on the same key.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd

from .config import COL_INFLATION, COL_MARKET, COL_RF

SeriesOrFrame = Union[pd.Series, pd.DataFrame]


def to_month_end(obj):
    """
    Normalise a DatetimeIndex (or the index of a Series/DataFrame) to month end.

    Returns an object of the same kind. Duplicate months after normalisation
    are collapsed, keeping the last observation.
    """
    if isinstance(obj, pd.Index):
        return pd.DatetimeIndex(pd.to_datetime(obj)).to_period("M").to_timestamp("M")

    out = obj.copy()
    out.index = pd.DatetimeIndex(pd.to_datetime(out.index)).to_period("M").to_timestamp("M")
    out.index.name = "Date"
    out = out[~out.index.duplicated(keep="last")]
    return out.sort_index()


def _as_frame(name: str, data: SeriesOrFrame) -> pd.DataFrame:
    if isinstance(data, pd.Series):
        return data.to_frame(name=data.name if data.name is not None else name)
    if isinstance(data, pd.DataFrame):
        return data
    raise TypeError(f"Source {name!r} must be a pandas Series or DataFrame, got {type(data).__name__}")


def merge_sources(sources: Dict[str, SeriesOrFrame], how: str = "outer") -> pd.DataFrame:
    """
    Join several date-indexed sources on their month-end key.

    Parameters
    ----------
    sources : dict
        Mapping from source name -> Series or DataFrame. Unnamed Series take
        the source name as their column name.
    how : str, default 'outer'
        Join type passed to DataFrame.join.

    Returns
    -------
    DataFrame indexed by month-end `Date`, sorted.
    """
    if not sources:
        raise ValueError("No sources to merge")

    merged: Optional[pd.DataFrame] = None
    seen: Dict[str, str] = {}
    for name, data in sources.items():
        frame = to_month_end(_as_frame(name, data))
        for col in frame.columns:
            if col in seen:
                raise ValueError(
                    f"Column {col!r} appears in both {seen[col]!r} and {name!r}; rename one before merging."
                )
            seen[col] = name
        merged = frame if merged is None else merged.join(frame, how=how)

    return merged.sort_index()


def build_panel(
    funds: pd.DataFrame,
    rf: pd.Series,
    market: pd.Series,
    inflation: Optional[pd.Series] = None,
    crypto: Optional[pd.DataFrame] = None,
    factors: Optional[pd.DataFrame] = None,
    required: Optional[Iterable[str]] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> pd.DataFrame:
    """
    Build the aligned monthly panel used by the summaries and regressions.

    Columns: one per fund, `RF`, `MKT`, optionally `INFLATION`, crypto assets
    and Fama–French factors.

    Rows missing any of the `required` columns (default: every fund, RF and
    MKT) are dropped. Optional columns keep their NaNs so that each model can
    run on its own complete-case sub-sample (e.g. crypto only exists from the
    2010s onwards).
    """
    if funds.empty:
        raise ValueError("funds is empty")
    if rf.empty:
        raise ValueError("rf is empty")
    if market.empty:
        raise ValueError("market is empty")

    sources: Dict[str, SeriesOrFrame] = {
        "funds": funds,
        COL_RF: rf.rename(COL_RF),
        COL_MARKET: market.rename(COL_MARKET),
    }
    if inflation is not None:
        sources[COL_INFLATION] = inflation.rename(COL_INFLATION)
    if crypto is not None and not crypto.empty:
        sources["crypto"] = crypto
    if factors is not None and not factors.empty:
        sources["factors"] = factors

    panel = merge_sources(sources, how="outer")

    required_cols: List[str] = list(required) if required is not None else [*funds.columns, COL_RF, COL_MARKET]
    missing = [c for c in required_cols if c not in panel.columns]
    if missing:
        raise ValueError(f"Required columns not in panel: {missing}")

    n_before = len(panel)
    panel = panel.dropna(subset=required_cols, how="any")
    panel = panel.loc[start:end]

    if panel.empty:
        raise ValueError(
            "Panel is empty after dropping months with missing required data "
            f"({required_cols}) and slicing to {start}..{end}."
        )

    print(
        f"  ✓ Panel: {len(panel)} months ({panel.index.min():%Y-%m} -> {panel.index.max():%Y-%m}), "
        f"{n_before - len(panel)} months dropped, {panel.shape[1]} columns"
    )
    return panel


def common_sample(panel: pd.DataFrame, columns: Iterable[str]) -> Tuple[str, str]:
    """
    Start and end ('YYYY-MM') of the months where all `columns` are present.
    """
    columns = list(columns)
    missing = [c for c in columns if c not in panel.columns]
    if missing:
        raise ValueError(f"Columns not in panel: {missing}")

    valid = panel.index[panel[columns].notna().all(axis=1)]
    if len(valid) == 0:
        raise ValueError(f"No month has complete data for {columns}.")
    return valid.min().strftime("%Y-%m"), valid.max().strftime("%Y-%m")
