"""Change-report rendering."""

from skillsmith.report.reporter import Reporter

__all__ = ["Reporter"]
