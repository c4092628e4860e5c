"""Sort reporting with cycle details and graph visualization.

This module turns the result of a topological sort into a report that lists
the detected cycles, flags suspicious edges (self-edges and duplicates), and
renders the graph as Mermaid or Graphviz DOT text.
"""

from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from src.graph.sorter import dump_cycles

if TYPE_CHECKING:
    from src.graph.sorter import Sorter

logger = structlog.get_logger(__name__)


@dataclass
class SortReport:
    """Report containing the outcome of sorting a graph.

    Attributes:
        is_valid: Whether the graph sorted without cycles
        order: Node values in (best-effort) topological order
        cycles: Detected cycles, each starting and ending with the same node
        errors: List of error messages (one per cycle)
        warnings: List of warning messages (potential issues)
        self_edges: Nodes that have an edge to themselves
        duplicate_edges: ``(from, to)`` pairs registered more than once
    """

    is_valid: bool = True
    order: list[Any] = field(default_factory=list)
    cycles: list[list[Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    self_edges: list[Any] = field(default_factory=list)
    duplicate_edges: list[tuple[Any, Any]] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add an error message and mark the report as failed."""
        self.errors.append(message)
        self.is_valid = False
        logger.error("sort_report_error", message=message)

    def add_warning(self, message: str) -> None:
        """Add a warning message without failing the report."""
        self.warnings.append(message)
        logger.warning("sort_report_warning", message=message)

    def summary(self, to_string: Callable[[Any], str] = str) -> str:
        """Generate a human-readable summary of the report."""
        lines = []
        lines.append(f"Sort Status: {'PASS' if self.is_valid else 'FAIL'}")
        lines.append(f"Nodes: {len(self.order)}")
        lines.append(f"Errors: {len(self.errors)}")
        lines.append(f"Warnings: {len(self.warnings)}")
        lines.append(f"Cycles: {len(self.cycles)}")

        if self.order:
            lines.append(f"\nOrder: {' '.join(to_string(node) for node in self.order)}")

        if self.errors:
            lines.append("\nErrors:")
            lines.extend(f"  - {error}" for error in self.errors)

        if self.warnings:
            lines.append("\nWarnings:")
            lines.extend(f"  - {warning}" for warning in self.warnings)

        if self.cycles:
            lines.append("\nCycles Detected:")
            for i, cycle in enumerate(self.cycles, 1):
                lines.append(f"  {i}. {dump_cycles([cycle], to_string)}")

        return "\n".join(lines)


class GraphReporter:
    """Builds sort reports and visualizations for a Sorter."""

    def __init__(self, to_string: Callable[[Any], str] = str):
        """Initialize the reporter.

        Args:
            to_string: Converts node values to their display form
        """
        self.to_string = to_string

    def report(self, sorter: "Sorter") -> SortReport:
        """Sort the graph and generate a detailed report.

        Args:
            sorter: The Sorter holding the graph

        Returns:
            SortReport containing the order, cycles and any warnings
        """
        logger.info("starting_sort_report", node_count=len(sorter))

        order, cycles = sorter.sort()
        report = SortReport(order=order, cycles=cycles)

        for cycle in cycles:
            report.add_error(f"Cycle detected: {dump_cycles([cycle], self.to_string)}")

        self_edges = self._find_self_edges(sorter)
        if self_edges:
            report.self_edges = self_edges
            nodes_str = ", ".join(self.to_string(node) for node in self_edges)
            report.add_warning(f"Nodes depending on themselves: {nodes_str}")

        duplicates = self._find_duplicate_edges(sorter)
        if duplicates:
            report.duplicate_edges = duplicates
            edges_str = ", ".join(
                f"{self.to_string(src)} -> {self.to_string(dst)}" for src, dst in duplicates
            )
            report.add_warning(f"Edges registered more than once: {edges_str}")

        logger.info(
            "sort_report_complete",
            is_valid=report.is_valid,
            error_count=len(report.errors),
            warning_count=len(report.warnings),
        )

        return report

    def _find_self_edges(self, sorter: "Sorter") -> list[Any]:
        seen: list[Any] = []
        for src, dst in sorter.edges():
            if src == dst and src not in seen:
                seen.append(src)
        return seen

    def _find_duplicate_edges(self, sorter: "Sorter") -> list[tuple[Any, Any]]:
        counts = Counter(sorter.edges())
        return [edge for edge, count in counts.items() if count > 1]

    def generate_visualization(
        self,
        sorter: "Sorter",
        output_format: str = "mermaid",
        to_string: Callable[[Any], str] | None = None,
    ) -> str:
        """Generate a visual representation of the graph.

        Edges point from the dependency to the dependent node.

        Args:
            sorter: The Sorter holding the graph
            output_format: Output format ('mermaid' or 'dot')
            to_string: Converts node values to labels (defaults to the
                reporter's own converter)

        Returns:
            String representation of the graph in the requested format

        Raises:
            ValueError: If an unsupported format is requested
        """
        output_format = output_format.lower().strip()
        to_string = to_string or self.to_string

        if output_format == "mermaid":
            return self._generate_mermaid(sorter, to_string)
        if output_format == "dot":
            return self._generate_graphviz(sorter, to_string)
        error_msg = f"Unsupported format: {output_format}. Use 'mermaid' or 'dot'."
        raise ValueError(error_msg)

    def _generate_mermaid(self, sorter: "Sorter", to_string: Callable[[Any], str]) -> str:
        """Generate a Mermaid flowchart representation.

        Node values can be arbitrary, so nodes get positional ids (n0, n1, ...)
        and the display form goes in the label.
        """
        lines = ["graph TD"]

        if not sorter:
            lines.append("    Empty[Empty Graph]")
            return "\n".join(lines)

        ids = {}
        for i, node in enumerate(sorter.nodes):
            ids[node] = f"n{i}"
            label = to_string(node).replace('"', "#quot;")
            lines.append(f'    n{i}["{label}"]')

        lines.extend(f"    {ids[dst]} --> {ids[src]}" for src, dst in sorter.edges())

        return "\n".join(lines)

    def _generate_graphviz(self, sorter: "Sorter", to_string: Callable[[Any], str]) -> str:
        """Generate a Graphviz DOT representation.

        Like the Mermaid output, nodes are identified by position and the
        display form only appears as the label.
        """

        def escape_dot_string(s: str) -> str:
            return s.replace("\\", "\\\\").replace('"', '\\"')

        lines = ["digraph DependencyGraph {"]
        lines.append("    rankdir=LR;")
        lines.append("    node [shape=box, style=rounded];")

        if not sorter:
            lines.append('    Empty [label="Empty Graph"];')
        else:
            ids = {}
            for i, node in enumerate(sorter.nodes):
                ids[node] = f"n{i}"
                lines.append(f'    n{i} [label="{escape_dot_string(to_string(node))}"];')
            lines.extend(f"    {ids[dst]} -> {ids[src]};" for src, dst in sorter.edges())

        lines.append("}")
        return "\n".join(lines)
