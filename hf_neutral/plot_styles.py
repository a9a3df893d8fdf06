"""
Central styling for the return, beta and regression charts.

Use style(role, series) for all plot/scatter/bar calls. Colours come from one
SERIES palette; roles add the kwargs specific to a plot type. Funds are not
known in advance, so they are styled by position (fund_0, fund_1, ...) via
series_key().
"""

from __future__ import annotations

from typing import Sequence

# --- Base styles (kwargs for ax.plot / ax.scatter / ax.bar) ---
LINE_STYLE = {
    "linewidth": 1.5,
    "zorder": 2,
}

SCATTER_STYLE = {
    "s": 12,
    "alpha": 0.45,
    "zorder": 3,
}

FIT_STYLE = {
    "linestyle": "--",
    "linewidth": 1.5,
    "zorder": 4,
}

BAR_STYLE = {
    "alpha": 0.85,
    "edgecolor": "black",
    "linewidth": 0.5,
}

ROLE_BASES = {
    "line": LINE_STYLE,
    "scatter": SCATTER_STYLE,
    "fit": FIT_STYLE,
    "bar": BAR_STYLE,
}

# --- Single series palette ---
SERIES = {
    "fund_0": {"color": "C0", "linestyle": "-"},
    "fund_1": {"color": "C1", "linestyle": "-"},
    "fund_2": {"color": "C4", "linestyle": "-"},
    "fund_3": {"color": "C5", "linestyle": "-"},
    "MKT": {"color": "black", "linestyle": "-", "label": "Equity index"},
    "RF": {"color": "gray", "linestyle": ":", "label": "Risk-free"},
    "INFLATION": {"color": "C3", "linestyle": ":", "label": "Inflation"},
    "BTC": {"color": "C8", "linestyle": "-.", "label": "Bitcoin"},
    "ETH": {"color": "C9", "linestyle": "-.", "label": "Ether"},
}

# Reference line at zero beta / zero return.
ZERO_LINE_STYLE = {"color": "gray", "linewidth": 0.8, "linestyle": "-", "zorder": 1}


def series_key(column: str, funds: Sequence[str]) -> str:
    """
    Map a panel column to a SERIES key.

    Fund columns map to fund_<position>; derived columns ('<name>_excess',
    '<name>_real') share the colour of their base series.
    """
    base = column
    for suffix in ("_excess", "_real"):
        if base.endswith(suffix):
            base = base[: -len(suffix)]
            break
    if base in funds:
        return f"fund_{list(funds).index(base) % 4}"
    if base in SERIES:
        return base
    raise ValueError(f"No style for series {column!r}")


def style(role: str, series: str, *, label: str | None = None, drop: Sequence[str] = ()) -> dict:
    """
    Return a single style dict for ax.plot(...), ax.scatter(...) or ax.bar(...).

    - role: "line" | "scatter" | "fit" | "bar"
    - series: key into SERIES (e.g. "MKT", "fund_0")
    - label: optional legend override
    - drop: keys to remove (e.g. "linestyle" for scatter/bar)

    Example: ax.plot(x, y, **style("line", "MKT"))
             ax.scatter(x, y, **style("scatter", "fund_0", label="Fund A"))
    """
    base = ROLE_BASES.get(role)
    if base is None:
        raise ValueError(f"Unknown role: {role}")
    series_d = SERIES.get(series)
    if series_d is None:
        raise ValueError(f"Unknown series: {series!r}")
    out = {**series_d, **base} if role == "fit" else {**base, **series_d}

    # scatter and bar artists do not take a linestyle
    if role in ("scatter", "bar"):
        out.pop("linestyle", None)
    for key in drop:
        out.pop(key, None)

    if label is not None:
        out["label"] = label
    return out
