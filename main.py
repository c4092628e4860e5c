#!/usr/bin/env python3
"""Main Entry Point and CLI Integration.

This module provides the command-line interface for the topological sorter.
It loads a graph file, builds the graph, sorts it and prints the order along
with any cycles that were found.
"""

import argparse
import json
import logging
import sys
import uuid
from typing import Any

import structlog

from src.config import ToposortConfig
from src.graph.report import GraphReporter
from src.graph.sorter import dump_cycles
from src.log_config import bind_context, bind_correlation_id, clear_context, configure_logging

logger = structlog.get_logger(__name__)


def render_result(
    order: list[Any],
    cycles: list[list[Any]],
    output_format: str,
    separator: str = " <= ",
) -> str:
    """Render a sort result for printing.

    Args:
        order: Sorted node values
        cycles: Cycle witnesses
        output_format: 'text' or 'json'
        separator: Separator between nodes of a rendered cycle (text only)

    Returns:
        The rendered result
    """
    if output_format == "json":
        return json.dumps({"order": order, "cycles": cycles})

    lines = [f"order: {' '.join(str(node) for node in order)}"]
    if cycles:
        lines.append(f"cycles: {dump_cycles(cycles, str, separator)}")
    return "\n".join(lines)


def run(args: argparse.Namespace) -> int:
    """Load the graph, sort it and print the result.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    configure_logging(level=args.log_level or "WARNING", json_logs=not args.debug)
    bind_correlation_id(f"sort-{uuid.uuid4().hex[:12]}")
    bind_context(graph_file=str(args.config))

    exit_code = 0

    try:
        config = ToposortConfig.from_yaml(args.config)

        if args.log_level is None:
            logging.getLogger().setLevel(config.logging_level)

        for warning in config.validate_config():
            logger.warning("configuration_warning", message=warning)

        output_format = args.format or config.output.format
        strict = args.strict or config.output.strict

        sorter = config.graph.to_sorter()
        bind_context(node_count=len(sorter), edge_count=sorter.edge_count)

        if args.visualize:
            print(GraphReporter().generate_visualization(sorter, args.visualize))
            return exit_code

        order, cycles = sorter.sort()
        print(render_result(order, cycles, output_format, config.output.cycle_separator))

        if cycles and strict:
            logger.error("cycles_not_allowed", cycle_count=len(cycles))
            exit_code = 1

    except KeyboardInterrupt:
        logger.warning("sort_interrupted")
        exit_code = 1

    except FileNotFoundError as e:
        logger.exception("configuration_file_not_found", error=str(e))
        exit_code = 1

    except ValueError as e:
        logger.exception("configuration_validation_error", error=str(e))
        exit_code = 1

    except Exception as e:
        logger.exception("sort_failed", error=str(e))
        exit_code = 1

    finally:
        clear_context()

    return exit_code


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Topological sort with cycle detection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sort the graph described in graph.yaml
  python main.py --config graph.yaml

  # Machine-readable output
  python main.py --config graph.yaml --format json

  # Fail when the graph has cycles
  python main.py --config graph.yaml --strict

  # Render the graph for Graphviz
  python main.py --config graph.yaml --visualize dot
        """,
    )

    parser.add_argument(
        "-c",
        "--config",
        type=str,
        default="graph.yaml",
        help="Path to graph YAML/JSON file (default: graph.yaml)",
    )

    parser.add_argument(
        "-f",
        "--format",
        type=str,
        choices=["text", "json"],
        default=None,
        help="Output format (default: from config, else text)",
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when the graph contains cycles",
    )

    parser.add_argument(
        "--visualize",
        type=str,
        choices=["mermaid", "dot"],
        default=None,
        help="Print the graph in the given format instead of sorting it",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output (INFO level)",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug output (DEBUG level, console logs)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set logging level (default: from config, else WARNING)",
    )

    args = parser.parse_args(argv)

    if args.debug:
        args.log_level = "DEBUG"
    elif args.verbose:
        args.log_level = "INFO"

    return args


def main() -> None:
    """Main entry point for the sorter CLI."""
    args = parse_args()
    try:
        sys.exit(run(args))
    except KeyboardInterrupt:
        sys.exit(1)


if __name__ == "__main__":
    main()
