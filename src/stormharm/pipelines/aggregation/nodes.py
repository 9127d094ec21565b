"""Clean events → ranked summaries.

Three independent group-by nodes over the clean event table:
    health   → one row per event label, ranked by total_harm
    economic → one row per event label, ranked by total_damage
    state    → one row per canonical state, ranked by number_of_events

Groups are kept in first-encounter order and every sort is stable, so
ties in the ranking key keep that order. Which rows make the top 20
downstream depends on it.
"""

from __future__ import annotations

import logging

import pandas as pd

logger = logging.getLogger(__name__)

# damage_scaled = (property + crop damage) / DAMAGE_SCALE_DIVISOR
DAMAGE_SCALE_DIVISOR = 1e4


def _rank(summary: pd.DataFrame, key: str) -> pd.DataFrame:
    return summary.sort_values(key, ascending=False, kind="stable").reset_index(
        drop=True
    )


# ── Node 1 ──────────────────────────────────────────────────────
def summarize_health_by_event(storm_events_clean: pd.DataFrame) -> pd.DataFrame:
    """Fatalities and injuries per event label, ranked by total_harm.

    Example: three "Tornado" rows with fatalities 1, 0, 2 and injuries
    0, 5, 0 give number_of_events=3, total_fatalities=3,
    total_injuries=5, total_harm=8.
    """
    summary = storm_events_clean.groupby("event", sort=False, as_index=False).agg(
        number_of_events=("fatalities", "size"),
        total_fatalities=("fatalities", "sum"),
        total_injuries=("injuries", "sum"),
    )
    summary["total_harm"] = summary["total_fatalities"] + summary["total_injuries"]
    summary = _rank(summary, "total_harm")

    logger.info(
        "Health summary: %s event labels, top: %s (%s fatalities + injuries)",
        f"{len(summary):,}",
        summary["event"].iloc[0] if len(summary) else None,
        f"{summary['total_harm'].iloc[0]:,}" if len(summary) else 0,
    )
    return summary


# ── Node 2 ──────────────────────────────────────────────────────
def summarize_damage_by_event(storm_events_clean: pd.DataFrame) -> pd.DataFrame:
    """Property and crop damage per event label, ranked by total_damage."""
    summary = storm_events_clean.groupby("event", sort=False, as_index=False).agg(
        number_of_events=("property_damage", "size"),
        property_damage_sum=("property_damage", "sum"),
        crop_damage_sum=("crop_damage", "sum"),
    )
    summary["total_damage"] = (
        summary["property_damage_sum"] + summary["crop_damage_sum"]
    )
    summary = _rank(summary, "total_damage")

    logger.info(
        "Economic summary: %s event labels, $%s total damage",
        f"{len(summary):,}",
        f"{summary['total_damage'].sum():,.0f}",
    )
    return summary


# ── Node 3 ──────────────────────────────────────────────────────
def summarize_by_state(
    storm_events_clean: pd.DataFrame,
    states: pd.DataFrame,
) -> pd.DataFrame:
    """Event counts, scaled damage and casualties per state.

    Missing per-row values count as 0. damage_scaled is
    (property + crop damage) / 1e4. The summary is inner-joined to the
    canonical State table to attach state_name; state_ids with no
    canonical state are dropped with a warning.

    Args:
        storm_events_clean: Clean event table.
        states: Canonical State table (state_id, state_name).

    Returns:
        One row per canonical state, ranked by number_of_events.
    """
    value_cols = ["property_damage", "crop_damage", "fatalities", "injuries"]
    events = storm_events_clean[["state_id", *value_cols]].copy()
    events[value_cols] = events[value_cols].fillna(0)

    summary = events.groupby("state_id", sort=False, as_index=False).agg(
        number_of_events=("property_damage", "size"),
        property_damage_sum=("property_damage", "sum"),
        crop_damage_sum=("crop_damage", "sum"),
        fatalities_sum=("fatalities", "sum"),
        injuries_sum=("injuries", "sum"),
    )
    summary["damage_scaled"] = (
        summary["property_damage_sum"] + summary["crop_damage_sum"]
    ) / DAMAGE_SCALE_DIVISOR
    summary[["fatalities_sum", "injuries_sum"]] = summary[
        ["fatalities_sum", "injuries_sum"]
    ].astype("int64")

    unmatched = ~summary["state_id"].isin(states["state_id"])
    if unmatched.any():
        logger.warning(
            "State summary: dropping %d state_id values with no canonical "
            "state (%s events): %s",
            unmatched.sum(),
            f"{summary.loc[unmatched, 'number_of_events'].sum():,}",
            summary.loc[unmatched, "state_id"].tolist(),
        )

    lookup = states[["state_id", "state_name"]]
    shared = lookup["state_id"].duplicated(keep="first")
    if shared.any():
        logger.warning(
            "State summary: state_id shared by several names, keeping the "
            "first for %s; dropping %s",
            lookup.loc[shared, "state_id"].tolist(),
            lookup.loc[shared, "state_name"].tolist(),
        )
        lookup = lookup.loc[~shared]

    # Inner merge keeps the left (encounter) order
    summary = summary.merge(lookup, on="state_id", how="inner")
    summary = summary[
        [
            "state_id",
            "state_name",
            "number_of_events",
            "damage_scaled",
            "fatalities_sum",
            "injuries_sum",
        ]
    ]
    summary = _rank(summary, "number_of_events")

    logger.info(
        "State summary: %d states, %s events",
        len(summary),
        f"{summary['number_of_events'].sum():,}",
    )
    return summary
