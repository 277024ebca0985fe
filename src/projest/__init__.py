"""Project cost estimation core: totals, progress, dashboard statistics and report exports."""

__version__ = "0.3.0"
