"""Node functions for the reporting pipeline.

Turns each ranked summary into a long-form (group_key, value, label)
table, derives the plot metadata, and renders a category-coloured
scatter plot per summary.

Flow:
    summary → reshape (top N + melt) → plot spec → PNG figure
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any

import matplotlib
import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.figure import Figure

from stormharm.errors import SchemaError

matplotlib.use("Agg")  # non-interactive backend for CI / headless runs

logger = logging.getLogger(__name__)

LONG_COLUMNS: list[str] = ["group_key", "value", "label"]


# ── helper ──────────────────────────────────────────────────────
def _log_ticks(values: pd.Series) -> list[float]:
    """Powers of ten spanning the positive values, inclusive.

    Examples:
        [3, 250, 9000] → [1, 10, 100, 1000, 10000]
        [0, 0]         → []
    """
    positive = values[values > 0]
    if positive.empty:
        return []
    low = math.floor(math.log10(positive.min()))
    high = math.ceil(math.log10(positive.max()))
    return [10.0**k for k in range(low, high + 1)]


def _format_tick(tick: float) -> str:
    return f"{tick:,.0f}" if tick >= 1 else f"{tick:g}"


# ── Node 1 ──────────────────────────────────────────────────────
def reshape_summary(summary: pd.DataFrame, report: dict[str, Any]) -> pd.DataFrame:
    """Take the top rows of a ranked summary and pivot them to long form.

    For each of the K columns in ``report["value_columns"]`` every
    selected row yields one (group_key, value, label) row, so the output
    has ``rows × K`` rows. Rows are grouped by label, in value_columns
    order, and keep their rank order within a label.

    Args:
        summary: Ranked summary from the aggregation pipeline.
        report: Report parameters with ``key_column``, ``top_n``
            (None keeps every row) and ``value_columns`` (column →
            display label).

    Returns:
        Long-form table with columns group_key, value, label.
    """
    key = report["key_column"]
    value_columns: dict[str, str] = dict(report["value_columns"])
    top_n = report.get("top_n")

    missing = [c for c in [key, *value_columns] if c not in summary.columns]
    if missing:
        raise SchemaError(f"Expected columns not found in summary: {missing}")

    selected = summary if top_n is None else summary.head(int(top_n))

    long_table = selected.melt(
        id_vars=[key],
        value_vars=list(value_columns),
        var_name="label",
        value_name="value",
    ).rename(columns={key: "group_key"})
    long_table["group_key"] = long_table["group_key"].astype(str)
    long_table["value"] = long_table["value"].astype(float)
    long_table["label"] = long_table["label"].map(value_columns)

    logger.info(
        "Reshaped %d of %d %s rows × %d columns → %d long rows",
        len(selected),
        len(summary),
        key,
        len(value_columns),
        len(long_table),
    )
    return long_table[LONG_COLUMNS]


# ── Node 2 ──────────────────────────────────────────────────────
def build_plot_spec(long_table: pd.DataFrame, report: dict[str, Any]) -> dict[str, Any]:
    """Collect the text and axis settings for one scatter plot.

    Title, subtitle and caption come from parameters.yml and may use
    ``{n_groups}``, the number of distinct group keys plotted. The y
    axis is log scaled with ticks at every power of ten between the
    smallest positive value and the largest value.
    """
    fields = {"n_groups": long_table["group_key"].nunique()}
    spec = {
        "title": report["title"].format(**fields),
        "subtitle": report.get("subtitle", "").format(**fields),
        "caption": report.get("caption", "").format(**fields),
        "x_label": report.get("x_label", ""),
        "y_label": report.get("y_label", ""),
        "log_ticks": _log_ticks(long_table["value"]),
    }
    logger.info(
        "Plot spec '%s': %d log ticks",
        spec["title"],
        len(spec["log_ticks"]),
    )
    return spec


def render_scatter_plot(long_table: pd.DataFrame, plot_spec: dict[str, Any]) -> Figure:
    """Draw a long-form table as a scatter plot coloured by label.

    Group keys form a categorical x axis in rank order. Values of 0
    cannot be drawn on the log axis and are left out of the plot.
    """
    order = list(dict.fromkeys(long_table["group_key"]))
    positions = {key: i for i, key in enumerate(order)}

    fig, ax = plt.subplots(figsize=(11, 6.5))
    for label, group in long_table.groupby("label", sort=False):
        ax.scatter(
            group["group_key"].map(positions),
            group["value"],
            label=label,
            s=40,
            alpha=0.85,
        )

    ax.set_xticks(range(len(order)))
    ax.set_xticklabels(order, rotation=60, ha="right")

    ticks = plot_spec["log_ticks"]
    if ticks:
        ax.set_yscale("log")
        ax.set_ylim(ticks[0], ticks[-1])
        ax.set_yticks(ticks)
        ax.set_yticklabels([_format_tick(t) for t in ticks])

    ax.set_xlabel(plot_spec["x_label"])
    ax.set_ylabel(plot_spec["y_label"])
    ax.set_title(plot_spec["subtitle"], fontsize=10)
    fig.suptitle(plot_spec["title"], fontsize=14)
    fig.text(0.99, 0.01, plot_spec["caption"], ha="right", va="bottom", fontsize=8)
    ax.grid(alpha=0.3)
    ax.legend()
    fig.tight_layout()
    return fig


# ── Node 3 ──────────────────────────────────────────────────────
def save_report_figure(
    long_table: pd.DataFrame,
    plot_spec: dict[str, Any],
    figure_path: str,
) -> str:
    """Render the scatter plot and write it as a PNG.

    Returns:
        The path the figure was written to.
    """
    path = Path(figure_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fig = render_scatter_plot(long_table, plot_spec)
    fig.savefig(path, dpi=150)
    plt.close(fig)

    logger.info("Figure written: %s", path)
    return str(path)


# ── Node 4 ──────────────────────────────────────────────────────
def build_figure_manifest(
    health_figure: str,
    economic_figure: str,
    state_figure: str,
) -> pd.DataFrame:
    """List the written figures, one row per plot."""
    return pd.DataFrame(
        {
            "figure": ["health_harm_by_event", "economic_harm_by_event", "harm_by_state"],
            "path": [health_figure, economic_figure, state_figure],
        }
    )
