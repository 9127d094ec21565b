"""Reporting pipeline — ranked summaries → long tables → figures.

Node dependency graph, repeated for health, economic and state:
    <summary>, params:reporting.<name>    → [reshape_<name>]     → <name>_harm_long
    <name>_harm_long, params              → [plot_spec_<name>]   → <name>_plot_spec
    <name>_harm_long, <name>_plot_spec    → [save_<name>_figure] → <name>_figure_path
then:
    three figure paths → [build_figure_manifest] → figure_manifest
"""

from kedro.pipeline import Pipeline, node, pipeline

from .nodes import (
    build_figure_manifest,
    build_plot_spec,
    reshape_summary,
    save_report_figure,
)

_REPORTS: dict[str, str] = {
    "health": "event_health_summary",
    "economic": "event_damage_summary",
    "state": "state_summary",
}


def _report_nodes(name: str, summary: str) -> list:
    params = f"params:reporting.{name}"
    return [
        node(
            func=reshape_summary,
            inputs=[summary, params],
            outputs=f"{name}_harm_long",
            name=f"reshape_{name}",
        ),
        node(
            func=build_plot_spec,
            inputs=[f"{name}_harm_long", params],
            outputs=f"{name}_plot_spec",
            name=f"plot_spec_{name}",
        ),
        node(
            func=save_report_figure,
            inputs=[f"{name}_harm_long", f"{name}_plot_spec", f"{params}.figure_path"],
            outputs=f"{name}_figure_path",
            name=f"save_{name}_figure",
        ),
    ]


def create_pipeline(**kwargs) -> Pipeline:  # noqa: ARG001
    """Create the reporting pipeline."""
    nodes = [
        n for name, summary in _REPORTS.items() for n in _report_nodes(name, summary)
    ]
    nodes.append(
        node(
            func=build_figure_manifest,
            inputs=["health_figure_path", "economic_figure_path", "state_figure_path"],
            outputs="figure_manifest",
            name="build_figure_manifest",
        )
    )
    return pipeline(nodes)
