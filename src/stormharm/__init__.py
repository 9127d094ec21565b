"""Storm harm report: NOAA Storm Data health and economic impact summaries."""

__version__ = "0.1.0"
