"""Project pipelines."""

from kedro.pipeline import Pipeline

from stormharm.pipelines import aggregation, data_processing, reporting


def register_pipelines() -> dict[str, Pipeline]:
    """Register the project's pipelines.

    The default pipeline chains all three stages:
        raw file → data_processing → aggregation → reporting
    """
    data_processing_pipeline = data_processing.create_pipeline()
    aggregation_pipeline = aggregation.create_pipeline()
    reporting_pipeline = reporting.create_pipeline()

    return {
        "data_processing": data_processing_pipeline,
        "aggregation": aggregation_pipeline,
        "reporting": reporting_pipeline,
        "__default__": data_processing_pipeline
        + aggregation_pipeline
        + reporting_pipeline,
    }
