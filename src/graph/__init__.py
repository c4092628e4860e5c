"""Graph module for topological sorting with cycle detection.

This module provides a deterministic depth-first topological sorter that
reports cycles instead of failing on them, plus reporting and visualization
helpers built on top of it.
"""

from src.graph.report import GraphReporter, SortReport
from src.graph.sorter import CycleDetectedError, Sorter, dump_cycles

__all__ = ["CycleDetectedError", "GraphReporter", "SortReport", "Sorter", "dump_cycles"]
