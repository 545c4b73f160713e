"""Merging extracted records into knowledge entries."""

from skillsmith.merge.merger import Merger, MergeResult, has_setup_lines

__all__ = ["Merger", "MergeResult", "has_setup_lines"]
