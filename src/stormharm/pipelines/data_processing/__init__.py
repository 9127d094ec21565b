"""Raw → clean data processing pipeline for NOAA Storm Data."""

from .pipeline import create_pipeline

__all__ = ["create_pipeline"]
