"""Aggregation pipeline — ranked health, economic and state summaries."""

from .pipeline import create_pipeline

__all__ = ["create_pipeline"]
