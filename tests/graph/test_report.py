"""Unit tests for SortReport and GraphReporter.

Tests cover:
- Report generation for acyclic and cyclic graphs
- Self-edge and duplicate edge warnings
- Summary rendering
- Mermaid and Graphviz visualization
"""

import pytest

from src.graph.report import GraphReporter, SortReport
from src.graph.sorter import Sorter


@pytest.fixture
def cyclic_sorter() -> Sorter:
    """Fixture providing the A -> B -> C -> A cycle."""
    sorter = Sorter()
    sorter.add_edge("A", "B")
    sorter.add_edge("B", "C")
    sorter.add_edge("C", "A")
    return sorter


class TestSortReport:
    """Test SortReport functionality."""

    def test_initialization(self):
        """Test that SortReport initializes correctly."""
        report = SortReport()

        assert report.is_valid is True
        assert report.order == []
        assert report.cycles == []
        assert report.errors == []
        assert report.warnings == []
        assert report.self_edges == []
        assert report.duplicate_edges == []

    def test_add_error(self):
        """Test adding errors marks the report as failed."""
        report = SortReport()
        report.add_error("Test error")

        assert not report.is_valid
        assert report.errors == ["Test error"]

    def test_add_warning(self):
        """Test adding warnings doesn't fail the report."""
        report = SortReport()
        report.add_warning("Test warning")

        assert report.is_valid
        assert report.warnings == ["Test warning"]

    def test_summary_empty_report(self):
        """Test summary generation for an empty report."""
        summary = SortReport().summary()

        assert "Sort Status: PASS" in summary
        assert "Nodes: 0" in summary
        assert "Errors: 0" in summary
        assert "Order:" not in summary

    def test_summary_with_cycles(self):
        """Test summary generation with cycle information."""
        report = SortReport(order=["b", "a"], cycles=[["a", "b", "a"]])
        report.add_error("Cycle detected: [a <= b <= a]")
        summary = report.summary()

        assert "Sort Status: FAIL" in summary
        assert "Order: b a" in summary
        assert "Cycles: 1" in summary
        assert "1. [a <= b <= a]" in summary

    def test_summary_uses_to_string(self):
        """Test that the summary renders nodes with the given function."""
        report = SortReport(order=[1, 2])

        assert "Order: #1 #2" in report.summary(lambda n: f"#{n}")


class TestGraphReporter:
    """Test report generation."""

    def test_report_acyclic(self):
        """Test a report for a valid DAG."""
        sorter = Sorter()
        sorter.add_edge("app", "lib")
        sorter.add_node("tool")

        report = GraphReporter().report(sorter)

        assert report.is_valid
        assert report.order == ["lib", "app", "tool"]
        assert report.errors == []
        assert report.warnings == []

    def test_report_cycle(self, cyclic_sorter):
        """Test that every cycle becomes an error."""
        report = GraphReporter().report(cyclic_sorter)

        assert not report.is_valid
        assert report.order == ["C", "B", "A"]
        assert report.cycles == [["A", "C", "B", "A"]]
        assert report.errors == ["Cycle detected: [A <= C <= B <= A]"]

    def test_report_self_edge_warning(self):
        """Test that self-edges are reported as warnings and errors."""
        sorter = Sorter()
        sorter.add_edge("A", "A")
        sorter.add_edge("A", "A")

        report = GraphReporter().report(sorter)

        assert report.self_edges == ["A"]
        assert report.duplicate_edges == [("A", "A")]
        assert any("depending on themselves: A" in w for w in report.warnings)
        assert any("more than once: A -> A" in w for w in report.warnings)

    def test_report_duplicate_edges(self):
        """Test that repeated edges are listed once."""
        sorter = Sorter()
        sorter.add_edge("A", "B")
        sorter.add_edge("A", "C")
        sorter.add_edge("A", "B")

        report = GraphReporter().report(sorter)

        assert report.is_valid
        assert report.duplicate_edges == [("A", "B")]

    def test_report_custom_to_string(self):
        """Test that the reporter's stringification reaches error messages."""
        sorter = Sorter()
        sorter.add_edge(1, 1)

        report = GraphReporter(to_string=lambda n: f"node{n}").report(sorter)

        assert report.errors == ["Cycle detected: [node1 <= node1]"]


class TestVisualization:
    """Test graph visualization generation."""

    def test_mermaid(self):
        """Test Mermaid output draws dependencies pointing at dependents."""
        sorter = Sorter()
        sorter.add_edge("app", "lib")

        output = GraphReporter().generate_visualization(sorter, "mermaid")

        assert output.splitlines() == [
            "graph TD",
            '    n0["app"]',
            '    n1["lib"]',
            "    n1 --> n0",
        ]

    def test_mermaid_empty(self):
        """Test Mermaid output for an empty graph."""
        output = GraphReporter().generate_visualization(Sorter())

        assert "Empty[Empty Graph]" in output

    def test_dot(self):
        """Test Graphviz output with escaping."""
        sorter = Sorter()
        sorter.add_edge('say "hi"', "lib")

        output = GraphReporter().generate_visualization(sorter, "dot")

        assert output.startswith("digraph DependencyGraph {")
        assert '    n0 [label="say \\"hi\\""];' in output
        assert '    n1 [label="lib"];' in output
        assert "    n1 -> n0;" in output
        assert output.endswith("}")

    def test_dot_keeps_nodes_with_same_label_apart(self):
        """Test that distinct nodes rendering to the same text stay distinct."""
        sorter = Sorter()
        sorter.add_edge(1, "1")

        output = GraphReporter().generate_visualization(sorter, "dot")

        assert output.splitlines()[3:] == [
            '    n0 [label="1"];',
            '    n1 [label="1"];',
            "    n1 -> n0;",
            "}",
        ]

    def test_mermaid_keeps_nodes_with_same_label_apart(self):
        """Test Mermaid ids for nodes with colliding labels."""
        sorter = Sorter()
        sorter.add_edge(1, "1")

        output = GraphReporter().generate_visualization(sorter, "mermaid")

        assert "    n1 --> n0" in output
        assert "    n0 --> n0" not in output

    def test_visualization_to_string_override(self):
        """Test that a per-call converter takes precedence over the reporter's."""
        sorter = Sorter()
        sorter.add_edge("app", "lib")
        reporter = GraphReporter(to_string=str.upper)

        default = reporter.generate_visualization(sorter, "dot")
        custom = reporter.generate_visualization(sorter, "dot", to_string=lambda v: f"pkg:{v}")

        assert 'n0 [label="APP"];' in default
        assert 'n0 [label="pkg:app"];' in custom
        assert 'n1 [label="pkg:lib"];' in custom

    def test_dot_empty(self):
        """Test Graphviz output for an empty graph."""
        output = GraphReporter().generate_visualization(Sorter(), "dot")

        assert 'Empty [label="Empty Graph"];' in output

    def test_format_case_insensitive(self):
        """Test that the format name is normalized."""
        sorter = Sorter()
        sorter.add_node("A")

        assert GraphReporter().generate_visualization(sorter, " DOT ").startswith("digraph")

    def test_unsupported_format(self):
        """Test that unknown formats are rejected."""
        with pytest.raises(ValueError, match="Unsupported format"):
            GraphReporter().generate_visualization(Sorter(), "svg")
