"""Demonstration of topological sorting with cycle reporting.

This example sorts a small package dependency graph, then introduces a cycle
to show how the sorter keeps going and reports it, both as plain witnesses and
through the report and visualization helpers.
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.graph import CycleDetectedError, GraphReporter, Sorter, dump_cycles
from src.log_config import bind_correlation_id, configure_logging, get_logger, unbind_correlation_id

PACKAGES = {
    "web": ["http", "templates"],
    "http": ["sockets", "codecs"],
    "templates": ["codecs"],
    "sockets": [],
    "codecs": [],
}


def build_sorter() -> Sorter:
    """Build a sorter from the package table."""
    sorter = Sorter()
    for package, dependencies in PACKAGES.items():
        sorter.add_node(package)
        for dependency in dependencies:
            sorter.add_edge(package, dependency)
    return sorter


def main() -> None:
    """Main demonstration function."""
    configure_logging(level="INFO", json_logs=False)
    logger = get_logger(__name__)
    bind_correlation_id("demo-1")

    sorter = build_sorter()
    order, cycles = sorter.sort()
    print(f"install order: {' '.join(order)}")
    print(f"cycles: {cycles}")

    # codecs now needs web, closing a loop through templates
    sorter.add_edge("codecs", "web")
    order, cycles = sorter.sort()
    print(f"best-effort order: {' '.join(order)}")
    print(f"cycles: {dump_cycles(cycles, str.upper)}")

    try:
        sorter.strict_sort()
    except CycleDetectedError as e:
        logger.warning("strict_sort_rejected", cycle_count=len(e.cycles))

    reporter = GraphReporter()
    print(reporter.report(sorter).summary())
    print(reporter.generate_visualization(sorter, "mermaid"))

    unbind_correlation_id()


if __name__ == "__main__":
    main()
