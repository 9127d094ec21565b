"""Clean events → ranked summaries.

Node dependency graph:
    storm_events_clean         → [summarize_health_by_event] → event_health_summary
    storm_events_clean         → [summarize_damage_by_event] → event_damage_summary
    storm_events_clean, states → [summarize_by_state]        → state_summary

The three nodes are independent of each other.
"""

from kedro.pipeline import Pipeline, node, pipeline

from .nodes import summarize_by_state, summarize_damage_by_event, summarize_health_by_event


def create_pipeline(**kwargs) -> Pipeline:  # noqa: ARG001
    """Create the aggregation pipeline."""
    return pipeline(
        [
            node(
                func=summarize_health_by_event,
                inputs="storm_events_clean",
                outputs="event_health_summary",
                name="summarize_health_by_event",
            ),
            node(
                func=summarize_damage_by_event,
                inputs="storm_events_clean",
                outputs="event_damage_summary",
                name="summarize_damage_by_event",
            ),
            node(
                func=summarize_by_state,
                inputs=["storm_events_clean", "states"],
                outputs="state_summary",
                name="summarize_by_state",
            ),
        ]
    )
