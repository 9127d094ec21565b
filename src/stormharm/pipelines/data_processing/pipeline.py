"""Raw → clean pipeline for NOAA Storm Data.

This pipeline reads the raw StormData file, applies the normalisation
nodes in sequence, and outputs the clean event table together with the
State and County reference tables and a report of unrecognised damage
exponent codes.
"""

from kedro.pipeline import Pipeline, node, pipeline

from .nodes import (
    build_county_table,
    build_state_table,
    coerce_identifiers,
    load_raw_storm_data,
    normalize_event_labels,
    parse_start_dates,
    resolve_damage_values,
    select_and_rename_columns,
    select_clean_records,
)


def create_pipeline(**kwargs) -> Pipeline:  # noqa: ARG001
    """Create the data_processing pipeline.

    Node chain:
        raw file → load → select/rename → coerce ids → title-case events
        → parse dates → resolve damage → clean records
                                       ↘ state table, county table
    """
    return pipeline(
        [
            node(
                func=load_raw_storm_data,
                inputs="params:raw_data_path",
                outputs="storm_data_raw",
                name="load_raw_storm_data",
            ),
            node(
                func=select_and_rename_columns,
                inputs="storm_data_raw",
                outputs="storm_events_selected",
                name="select_and_rename_columns",
            ),
            node(
                func=coerce_identifiers,
                inputs="storm_events_selected",
                outputs="storm_events_typed",
                name="coerce_identifiers",
            ),
            node(
                func=normalize_event_labels,
                inputs="storm_events_typed",
                outputs="storm_events_labelled",
                name="normalize_event_labels",
            ),
            node(
                func=parse_start_dates,
                inputs=["storm_events_labelled", "params:data_processing.date_format"],
                outputs="storm_events_dated",
                name="parse_start_dates",
            ),
            node(
                func=resolve_damage_values,
                inputs="storm_events_dated",
                outputs=["storm_events_normalized", "damage_code_report"],
                name="resolve_damage_values",
            ),
            node(
                func=build_state_table,
                inputs=["storm_events_normalized", "params:data_processing.state_dedup"],
                outputs="states",
                name="build_state_table",
            ),
            node(
                func=build_county_table,
                inputs="storm_events_normalized",
                outputs="counties",
                name="build_county_table",
            ),
            node(
                func=select_clean_records,
                inputs="storm_events_normalized",
                outputs="storm_events_clean",
                name="select_clean_records",
            ),
        ]
    )
