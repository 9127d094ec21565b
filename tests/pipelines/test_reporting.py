"""Tests for the reporting nodes: reshape, plot spec, figures."""

import matplotlib.pyplot as plt
import pandas as pd
import pytest

from stormharm.errors import SchemaError
from stormharm.pipelines.reporting.nodes import (
    build_figure_manifest,
    build_plot_spec,
    render_scatter_plot,
    reshape_summary,
    save_report_figure,
)

HEALTH_REPORT = {
    "key_column": "event",
    "top_n": 20,
    "value_columns": {"total_fatalities": "Fatalities", "total_injuries": "Injuries"},
    "title": "Most harmful events",
    "subtitle": "Top {n_groups} event types",
    "caption": "Source: NOAA Storm Database",
    "x_label": "Event type",
    "y_label": "People affected (log scale)",
}

STATE_REPORT = {
    "key_column": "state_name",
    "top_n": None,
    "value_columns": {
        "number_of_events": "Number of events",
        "damage_scaled": "Damage (USD 10k)",
        "fatalities_sum": "Fatalities",
        "injuries_sum": "Injuries",
    },
    "title": "Storm harm by state",
}


@pytest.fixture()
def health_summary():
    """25 ranked event rows, Event 00 first."""
    n = 25
    return pd.DataFrame(
        {
            "event": [f"Event {i:02d}" for i in range(n)],
            "number_of_events": [10] * n,
            "total_fatalities": [n - i for i in range(n)],
            "total_injuries": [10 * (n - i) for i in range(n)],
            "total_harm": [11 * (n - i) for i in range(n)],
        }
    )


@pytest.fixture()
def state_summary():
    return pd.DataFrame(
        {
            "state_id": [1, 48, 13],
            "state_name": ["AL", "TX", "GA"],
            "number_of_events": [3, 2, 1],
            "damage_scaled": [252.5, 300_100.00025, 0.501],
            "fatalities_sum": [3, 0, 0],
            "injuries_sum": [5, 1, 0],
        }
    )


# ── Reshape ──────────────────────────────────────────────────────
class TestReshapeSummary:
    def test_top_twenty_keys_each_appear_k_times(self, health_summary):
        long_table = reshape_summary(health_summary, HEALTH_REPORT)

        assert list(long_table.columns) == ["group_key", "value", "label"]
        assert len(long_table) == 40
        assert long_table["group_key"].nunique() == 20
        assert (long_table["group_key"].value_counts() == 2).all()
        assert set(long_table["group_key"]) == set(health_summary["event"].head(20))

    def test_fewer_rows_than_top_n_keeps_all(self, health_summary):
        long_table = reshape_summary(health_summary.head(5), HEALTH_REPORT)

        assert long_table["group_key"].nunique() == 5
        assert len(long_table) == 10

    def test_top_n_none_keeps_every_row(self, state_summary):
        long_table = reshape_summary(state_summary, STATE_REPORT)

        assert len(long_table) == 3 * 4
        assert set(long_table["group_key"]) == {"AL", "TX", "GA"}

    def test_labels_follow_value_column_order_and_rank(self, health_summary):
        long_table = reshape_summary(health_summary, HEALTH_REPORT)

        assert long_table["label"].head(20).eq("Fatalities").all()
        assert long_table["label"].tail(20).eq("Injuries").all()
        assert long_table["group_key"].head(3).tolist() == ["Event 00", "Event 01", "Event 02"]

    def test_summing_long_values_reproduces_the_summary(self, state_summary):
        long_table = reshape_summary(state_summary, STATE_REPORT)
        totals = long_table.groupby(["group_key", "label"])["value"].sum()

        for column, label in STATE_REPORT["value_columns"].items():
            for _, row in state_summary.iterrows():
                assert totals[(row["state_name"], label)] == row[column]

    def test_input_summary_is_not_mutated(self, health_summary):
        before = health_summary.copy()
        reshape_summary(health_summary, HEALTH_REPORT)

        pd.testing.assert_frame_equal(health_summary, before)

    def test_missing_value_column_raises_schema_error(self, health_summary):
        with pytest.raises(SchemaError, match="total_injuries"):
            reshape_summary(health_summary.drop(columns=["total_injuries"]), HEALTH_REPORT)


# ── Plot spec ────────────────────────────────────────────────────
class TestBuildPlotSpec:
    def test_log_ticks_span_positive_values(self):
        long_table = pd.DataFrame(
            {"group_key": ["a", "b", "c", "a"], "value": [3.0, 250.0, 9000.0, 0.0], "label": ["x"] * 4}
        )

        spec = build_plot_spec(long_table, HEALTH_REPORT)

        assert spec["log_ticks"] == [1.0, 10.0, 100.0, 1000.0, 10000.0]

    def test_fractional_values_extend_ticks_below_one(self):
        long_table = pd.DataFrame({"group_key": ["a", "b"], "value": [0.5, 20.0], "label": ["x", "x"]})

        spec = build_plot_spec(long_table, HEALTH_REPORT)

        assert spec["log_ticks"] == pytest.approx([0.1, 1.0, 10.0, 100.0])

    def test_no_positive_values_means_no_ticks(self):
        long_table = pd.DataFrame({"group_key": ["a"], "value": [0.0], "label": ["x"]})

        assert build_plot_spec(long_table, HEALTH_REPORT)["log_ticks"] == []

    def test_text_fields_are_filled_in(self, health_summary):
        long_table = reshape_summary(health_summary, HEALTH_REPORT)

        spec = build_plot_spec(long_table, HEALTH_REPORT)

        assert spec["title"] == "Most harmful events"
        assert spec["subtitle"] == "Top 20 event types"
        assert spec["caption"] == "Source: NOAA Storm Database"
        assert spec["y_label"] == "People affected (log scale)"

    def test_optional_text_fields_default_to_empty(self, state_summary):
        long_table = reshape_summary(state_summary, STATE_REPORT)

        spec = build_plot_spec(long_table, STATE_REPORT)

        assert spec["subtitle"] == ""
        assert spec["caption"] == ""


# ── Figures ──────────────────────────────────────────────────────
class TestFigures:
    @pytest.fixture()
    def long_table(self, health_summary):
        return reshape_summary(health_summary, HEALTH_REPORT)

    def test_render_uses_log_axis_and_rank_order(self, long_table):
        spec = build_plot_spec(long_table, HEALTH_REPORT)

        fig = render_scatter_plot(long_table, spec)
        try:
            ax = fig.axes[0]
            assert ax.get_yscale() == "log"
            assert ax.get_title() == "Top 20 event types"
            labels = [t.get_text() for t in ax.get_xticklabels()]
            assert labels[:2] == ["Event 00", "Event 01"]
            assert len(labels) == 20
            assert len(ax.collections) == 2  # one scatter per label
        finally:
            plt.close(fig)

    def test_save_writes_png(self, long_table, tmp_path):
        spec = build_plot_spec(long_table, HEALTH_REPORT)
        target = tmp_path / "figures" / "health.png"

        written = save_report_figure(long_table, spec, str(target))

        assert written == str(target)
        assert target.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"

    def test_manifest_lists_three_figures(self):
        manifest = build_figure_manifest("h.png", "e.png", "s.png")

        assert manifest["figure"].tolist() == [
            "health_harm_by_event",
            "economic_harm_by_event",
            "harm_by_state",
        ]
        assert manifest["path"].tolist() == ["h.png", "e.png", "s.png"]
