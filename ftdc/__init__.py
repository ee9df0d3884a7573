"""Metric series encoding helpers, an error collector and HDR histograms."""

__version__ = "0.1.0"
__all__ = ["catcher", "encoding", "histogram", "snapshot", "window"]