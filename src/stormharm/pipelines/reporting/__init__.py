"""Reporting pipeline — long-form plot tables and scatter figures."""

from .pipeline import create_pipeline

__all__ = ["create_pipeline"]
