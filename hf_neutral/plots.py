"""
Plotting helpers for the market-neutrality analysis.

Each function accepts the panel (and, where relevant, regression output) and
returns a matplotlib Figure so callers decide whether to show or save it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .config import COL_MARKET, COL_MARKET_EXCESS, EXCESS_SUFFIX, OUTPUT_DIR
from .plot_styles import ZERO_LINE_STYLE, series_key, style
from .regressions import RegressionResult, rolling_beta
from .returns import cumulative_returns


def _title_window(panel: pd.DataFrame) -> str:
    return f"{panel.index.min():%Y-%m} to {panel.index.max():%Y-%m}"


def plot_cumulative_returns(
    panel: pd.DataFrame,
    columns: Sequence[str],
    funds: Sequence[str] = (),
    log_scale: bool = False,
):
    """
    Growth of one unit invested in each series (cumulative return + 1).
    """
    fig, ax = plt.subplots(figsize=(10, 5))
    growth = cumulative_returns(panel[list(columns)]) + 1.0

    for col in columns:
        ax.plot(growth.index, growth[col], **style("line", series_key(col, funds), label=col))

    if log_scale:
        ax.set_yscale("log")
    ax.axhline(1.0, **ZERO_LINE_STYLE)
    ax.set_ylabel("Growth of 1")
    ax.set_title(f"Cumulative returns ({_title_window(panel)})")
    ax.legend(loc="upper left")
    ax.grid(True, linestyle="--", alpha=0.4)
    fig.tight_layout()
    return fig


def plot_capm_scatter(
    panel: pd.DataFrame,
    funds: Sequence[str],
    results: Iterable[RegressionResult],
    market_col: str = COL_MARKET_EXCESS,
):
    """
    Scatter of each fund's excess return against the market excess return,
    with the fitted CAPM line and R² annotation.
    """
    capm = {r.dependent: r for r in results if r.name == "capm"}
    n = len(funds)
    if n == 0:
        raise ValueError("No funds to plot")
    cols = min(n, 3)
    rows = (n + cols - 1) // cols

    fig, axs = plt.subplots(rows, cols, figsize=(5 * cols, 4 * rows), squeeze=False)
    x = panel[market_col]
    xr = np.linspace(x.min(), x.max(), 200)

    for ax, fund in zip(axs.ravel(), funds):
        key = series_key(fund, funds)
        y = panel[f"{fund}{EXCESS_SUFFIX}"]
        ax.scatter(x, y, **style("scatter", key, label=fund))

        res = capm.get(fund)
        if res is not None:
            beta = res.betas[market_col]
            ax.plot(xr, res.alpha + beta * xr, **style("fit", key, label=f"β={beta:.2f}, α={res.alpha:.4f}"))
            ax.text(0.02, 0.95, f"R²={res.r_squared:.2f}", transform=ax.transAxes, va="top")

        ax.axhline(0.0, **ZERO_LINE_STYLE)
        ax.axvline(0.0, **ZERO_LINE_STYLE)
        ax.set_title(fund)
        ax.set_xlabel("Market excess return (monthly)")
        ax.set_ylabel("Fund excess return (monthly)")
        ax.legend(loc="lower right", fontsize=8)
        ax.grid(alpha=0.3)

    for extra in axs.ravel()[n:]:
        fig.delaxes(extra)

    fig.suptitle("CAPM: hedge funds vs market", fontsize=14)
    fig.tight_layout(rect=[0, 0, 1, 0.95])
    return fig


def plot_rolling_beta(
    panel: pd.DataFrame,
    funds: Sequence[str],
    market_col: str = COL_MARKET_EXCESS,
    window: int = 36,
):
    """
    Trailing-window CAPM beta per fund. A market-neutral fund should hover
    around the zero line.
    """
    fig, ax = plt.subplots(figsize=(10, 4.5))
    for fund in funds:
        beta = rolling_beta(panel, fund, market_col=market_col, window=window)
        ax.plot(beta.index, beta, **style("line", series_key(fund, funds), label=fund))

    ax.axhline(0.0, **ZERO_LINE_STYLE)
    ax.set_ylabel(f"Beta to {COL_MARKET} ({window}-month window)")
    ax.set_title(f"Rolling market beta ({_title_window(panel)})")
    ax.legend(loc="upper left")
    ax.grid(True, linestyle="--", alpha=0.4)
    fig.tight_layout()
    return fig


def plot_factor_loadings(
    table: pd.DataFrame,
    model: str,
    funds: Optional[Sequence[str]] = None,
):
    """
    Grouped bar chart of factor betas for one model, one bar group per factor.

    `table` is the output of regressions.results_table().
    """
    sub = table[table["model"] == model]
    if sub.empty:
        raise ValueError(f"No results for model {model!r}")

    funds = list(funds) if funds is not None else list(sub["fund"])
    funds = [f for f in funds if f in set(sub["fund"])]
    beta_cols = [c for c in sub.columns if c.startswith("beta_") and sub[c].notna().any()]
    factors = [c[len("beta_"):] for c in beta_cols]

    fig, ax = plt.subplots(figsize=(max(6, 1.6 * len(factors) * max(1, len(funds))), 4.5))
    x = np.arange(len(factors))
    width = 0.8 / max(1, len(funds))

    for i, fund in enumerate(funds):
        row = sub[sub["fund"] == fund].iloc[0]
        ax.bar(
            x + i * width - 0.4 + width / 2,
            [row[c] for c in beta_cols],
            width,
            **style("bar", series_key(fund, funds), label=fund),
        )

    ax.axhline(0.0, **ZERO_LINE_STYLE)
    ax.set_xticks(x)
    ax.set_xticklabels(factors)
    ax.set_ylabel("Loading")
    ax.set_title(f"Factor loadings: {model}")
    ax.legend(loc="best")
    ax.grid(True, axis="y", linestyle="--", alpha=0.4)
    fig.tight_layout()
    return fig


def save_figure(fig, name: str, output_dir: Path = OUTPUT_DIR, dpi: int = 150) -> Path:
    """Save a figure as PNG under `output_dir` and close it."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{name}.png"
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    print(f"  ✓ Saved figure {path}")
    return path
