"""Deterministic topological sorting with cycle detection.

This module provides the Sorter class which accumulates nodes and directed
edges, then orders them with a depth-first traversal. Cyclic graphs are not an
error: the sort still returns a best-effort order together with the cycles it
encountered along the way.
"""

from collections.abc import Callable, Hashable, Iterator
from dataclasses import dataclass, field
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

# Traversal marks
_UNVISITED = 0
_VISITING = 1
_DONE = 2


class CycleDetectedError(Exception):
    """Exception raised by strict sorting when the graph contains cycles.

    Attributes:
        message: Description of the detected cycles
        cycles: Cycle witnesses returned by the sort
    """

    def __init__(self, message: str, cycles: list[list[Any]] | None = None):
        """Initialize the exception with a descriptive message.

        Args:
            message: Description of the cycle detection error
            cycles: Cycle witnesses, each starting and ending with the same node
        """
        super().__init__(message)
        self.message = message
        self.cycles = cycles or []


@dataclass
class _Node:
    """A registered value and the handles of the nodes it depends on."""

    value: Any
    children: list[int] = field(default_factory=list)


@dataclass
class _Frame:
    """One level of the explicit depth-first traversal stack."""

    handle: int
    position: int = 0
    cycles: list[list[Any]] = field(default_factory=list)


class Sorter:
    """Topological sorter over arbitrary hashable values.

    Add nodes and edges to describe the graph, then call sort() to retrieve
    the ordered values. A freshly constructed Sorter describes an empty graph.

    Node values are deduplicated with dict semantics (equality and hash), so
    ``1``, ``1.0`` and ``True`` all name the same node. Traversal follows the
    order in which nodes and edges were registered, which makes the output
    deterministic even for partially ordered inputs.

    Thread-safety:
        This class is NOT thread-safe. Do not call add_node() or add_edge()
        concurrently, and do not call sort() while another thread is still
        registering nodes. Protect shared instances with external
        synchronization (e.g., threading.Lock). Separate Sorter instances share
        no state.

    Example:
        >>> sorter = Sorter()
        >>> sorter.add_edge("app", "lib")  # app depends on lib
        >>> sorter.add_edge("lib", "base")
        >>> sorter.sort()
        (['base', 'lib', 'app'], [])
    """

    def __init__(self):
        """Initialize an empty graph."""
        self._index: dict[Hashable, int] = {}
        self._nodes: list[_Node] = []

    def _get_or_add(self, value: Hashable) -> int:
        handle = self._index.get(value)
        if handle is not None:
            return handle

        handle = len(self._nodes)
        self._index[value] = handle
        self._nodes.append(_Node(value))
        logger.debug("node_added", handle=handle)
        return handle

    def add_node(self, value: Hashable) -> None:
        """Add a node.

        Typically only needed for nodes without incoming or outgoing edges;
        add_edge() registers its endpoints implicitly. Adding a value that is
        already present is a no-op.

        Args:
            value: Any hashable value identifying the node
        """
        self._get_or_add(value)

    def add_edge(self, from_value: Hashable, to_value: Hashable) -> None:
        """Add an edge meaning ``from_value`` depends on ``to_value``.

        Both endpoints are added if they don't exist yet, ``from_value``
        first. ``to_value`` will appear before ``from_value`` in the sorted
        output. Self-edges, duplicate edges and cycles are all allowed.

        Args:
            from_value: The dependent node
            to_value: The node it depends on

        Example:
            >>> sorter = Sorter()
            >>> sorter.add_edge("task-2", "task-1")
            >>> sorter.nodes
            ('task-2', 'task-1')
        """
        from_handle = self._get_or_add(from_value)
        to_handle = self._get_or_add(to_value)
        self._nodes[from_handle].children.append(to_handle)

        logger.debug("edge_added", from_handle=from_handle, to_handle=to_handle)

    @property
    def nodes(self) -> tuple[Any, ...]:
        """Registered node values in registration order."""
        return tuple(node.value for node in self._nodes)

    def edges(self) -> Iterator[tuple[Any, Any]]:
        """Iterate over ``(from, to)`` pairs in registration order per node."""
        for node in self._nodes:
            for child in node.children:
                yield node.value, self._nodes[child].value

    @property
    def edge_count(self) -> int:
        """Total number of registered edges, duplicates included."""
        return sum(len(node.children) for node in self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, value: object) -> bool:
        try:
            return value in self._index
        except TypeError:
            # Unhashable values can never be nodes
            return False

    def get_stats(self) -> dict[str, int]:
        """Get statistics about the current graph.

        Returns:
            Dictionary with graph statistics including:
                - total_nodes: Number of distinct nodes
                - total_edges: Number of edges, duplicates included
                - self_edges: Number of edges from a node to itself
        """
        stats = {
            "total_nodes": len(self._nodes),
            "total_edges": self.edge_count,
            "self_edges": sum(
                child == handle
                for handle, node in enumerate(self._nodes)
                for child in node.children
            ),
        }

        logger.debug("graph_stats_retrieved", **stats)

        return stats

    def sort(self) -> tuple[list[Any], list[list[Any]]]:
        """Return the topologically sorted values and the cycles encountered.

        ``cycles`` is empty if and only if the graph is acyclic. Otherwise it
        holds at least one cycle per cyclic region visited, each written as
        ``[n0, n1, ..., n0]`` where consecutive entries are edges. A self-edge
        is reported as ``[n0, n0]``.

        With cycles present the ordering is best-effort: acyclic portions of
        the graph are still ordered correctly, cyclic portions are ordered
        arbitrarily but deterministically.

        The graph is not modified, so calling sort() again returns the same
        result.

        Returns:
            Tuple of (order, cycles)

        Example:
            >>> sorter = Sorter()
            >>> sorter.add_edge("A", "B")
            >>> sorter.add_edge("B", "A")
            >>> sorter.sort()
            (['B', 'A'], [['A', 'B', 'A']])
        """
        marks = [_UNVISITED] * len(self._nodes)
        order: list[Any] = []
        cycles: list[list[Any]] = []

        for handle in range(len(self._nodes)):
            if marks[handle] == _UNVISITED:
                cycles.extend(self._visit(handle, marks, order))

        logger.info(
            "graph_sorted",
            node_count=len(self._nodes),
            edge_count=self.edge_count,
            cycle_count=len(cycles),
        )
        if cycles:
            logger.warning(
                "cycles_detected",
                cycle_count=len(cycles),
                cycle_lengths=[len(cycle) for cycle in cycles],
            )

        return order, cycles

    def _visit(self, root: int, marks: list[int], order: list[Any]) -> list[list[Any]]:
        """Depth-first traversal from ``root``, emitting nodes in post-order.

        A child found in the visiting state starts a new cycle holding just
        that child. Every node finished afterwards appends itself to the cycles
        its frame carries until a cycle's first and last entries match; the
        single-entry case counts as still open so self-edges come out as
        ``[n, n]``. Finished frames hand their cycles to the parent frame.

        Args:
            root: Handle of the node to start from
            marks: Traversal mark per node handle, updated in place
            order: Output order, appended to in place

        Returns:
            Cycles collected below ``root``
        """
        marks[root] = _VISITING
        stack = [_Frame(root)]

        while True:
            frame = stack[-1]
            node = self._nodes[frame.handle]

            if frame.position < len(node.children):
                child = node.children[frame.position]
                frame.position += 1

                if marks[child] == _DONE:
                    continue
                if marks[child] == _VISITING:
                    frame.cycles.append([self._nodes[child].value])
                    continue

                marks[child] = _VISITING
                stack.append(_Frame(child))
                continue

            stack.pop()
            marks[frame.handle] = _DONE
            order.append(node.value)

            for cycle in frame.cycles:
                if len(cycle) == 1 or cycle[0] != cycle[-1]:
                    cycle.append(node.value)

            if not stack:
                return frame.cycles
            stack[-1].cycles.extend(frame.cycles)

    def strict_sort(self) -> list[Any]:
        """Return the sorted values, refusing cyclic graphs.

        Returns:
            Values in topological order

        Raises:
            CycleDetectedError: If the graph contains at least one cycle
        """
        order, cycles = self.sort()
        if cycles:
            error_msg = f"Cycle detected in dependency graph: {dump_cycles(cycles)}"
            logger.error("strict_sort_failed", cycle_count=len(cycles))
            raise CycleDetectedError(error_msg, cycles)

        return order


def dump_cycles(
    cycles: list[list[Any]],
    to_string: Callable[[Any], str] = str,
    separator: str = " <= ",
) -> str:
    """Render the cycles returned by Sorter.sort() on a single line.

    Args:
        cycles: Cycle witnesses as returned by sort()
        to_string: Converts each node value to its display form
        separator: Placed between consecutive nodes of a cycle

    Returns:
        Cycles as ``[a <= b <= a]``, separated by a single space

    Example:
        >>> dump_cycles([["A", "C", "B", "A"], ["D", "D"]])
        '[A <= C <= B <= A] [D <= D]'
    """
    return " ".join(
        "[" + separator.join(to_string(node) for node in cycle) + "]" for cycle in cycles
    )
