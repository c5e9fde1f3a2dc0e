"""
Graph Validator

Static analysis over a whole flow graph before it is published.

Errors (block publish):
- MissingStart / MultipleStart: exactly one start node is required
- MissingEnd: at least one end node is required
- DanglingEdgeRef: edge source/target must name an existing node
- CycleDetected: the graph must be acyclic (self loops included)

Warnings (shown to the author, never block publish):
- OrphanNode: non-start/non-end node missing inbound or outbound edges
- UnreachableNode: node that cannot be reached from the start node
- ShadowedEdge: edge that first-match-wins ordering can never select
- MissingOptions: choice question without options

Every check runs regardless of earlier failures. The graph is never mutated
and no state outlives a single call.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..graph_types import Graph, Node
from .conditions import describe_condition
from .graph_builder import build_networkx_graph, reachable_from
from .types import Issue, IssueKind, ValidationResult


logger = logging.getLogger(__name__)

_WHITE, _GRAY, _BLACK = 0, 1, 2


def validate_graph(graph: Graph) -> ValidationResult:
    """
    Comprehensive graph validation.

    Args:
        graph: Flow graph snapshot

    Returns:
        ValidationResult; valid is True iff there are no errors
    """
    if not isinstance(graph, Graph):
        raise TypeError(f"Expected Graph, got {type(graph).__name__}")

    result = ValidationResult()

    # Start / end cardinality
    start_error = validate_start_node(graph)
    if start_error:
        result.errors.append(start_error)

    end_error = validate_end_nodes(graph)
    if end_error:
        result.errors.append(end_error)

    # Edge references
    result.errors.extend(validate_edge_targets(graph))

    # Cycles
    for cycle in find_cycles(graph):
        result.errors.append(Issue(
            kind=IssueKind.CYCLE_DETECTED,
            message=f"Cycle detected: {' -> '.join(cycle)}",
            node_id=cycle[0],
            cycle=tuple(cycle),
        ))

    # Orphans (warnings)
    orphans = find_orphaned_nodes(graph)
    for orphan in orphans:
        result.warnings.append(Issue(
            kind=IssueKind.ORPHAN_NODE,
            message=f"Node '{orphan.id}' ({orphan.display_label}) is orphaned",
            node_id=orphan.id,
        ))

    result.warnings.extend(find_unreachable_nodes(graph, exclude={n.id for n in orphans}))
    result.warnings.extend(find_shadowed_edges(graph))
    result.warnings.extend(find_missing_options(graph))

    if result.errors:
        logger.info("[validator] Graph failed validation: %d error(s), %d warning(s)",
                    len(result.errors), len(result.warnings))

    return result


def quick_validate(graph: Graph) -> bool:
    """Critical checks only: one start node, at least one end node, no cycles."""
    if not graph.has_valid_start():
        return False
    if not graph.end_nodes():
        return False
    return not detect_cycles(graph)


# ============================================================================
# Individual checks
# ============================================================================

def validate_start_node(graph: Graph) -> Optional[Issue]:
    """The graph must have exactly one start node."""
    starts = graph.start_nodes()

    if not starts:
        return Issue(
            kind=IssueKind.MISSING_START,
            message="Graph must have exactly one start node",
        )

    if len(starts) > 1:
        return Issue(
            kind=IssueKind.MULTIPLE_START,
            message=f"Graph has {len(starts)} start nodes, but should have exactly one",
        )

    return None


def validate_end_nodes(graph: Graph) -> Optional[Issue]:
    """The graph must have at least one end node."""
    if not graph.end_nodes():
        return Issue(
            kind=IssueKind.MISSING_END,
            message="Graph must have at least one end node",
        )
    return None


def validate_edge_targets(graph: Graph) -> list[Issue]:
    """One issue per edge endpoint that does not resolve to a node."""
    issues = []

    for edge in graph.edges:
        if not graph.has_node(edge.source):
            issues.append(Issue(
                kind=IssueKind.DANGLING_EDGE_REF,
                message=f"Edge '{edge.id}' has invalid source node '{edge.source}'",
                edge_id=edge.id,
            ))

        if not graph.has_node(edge.target):
            issues.append(Issue(
                kind=IssueKind.DANGLING_EDGE_REF,
                message=f"Edge '{edge.id}' has invalid target node '{edge.target}'",
                edge_id=edge.id,
            ))

    return issues


def find_cycles(graph: Graph) -> list[list[str]]:
    """
    Find cycles with an iterative white/gray/black depth-first search.

    The search starts from every still-unvisited node in node order, so
    disconnected components are covered. Reaching a gray node (one on the
    current DFS path) closes a cycle, reported as the path from that node
    back to itself: [A, B, C, A]. A self loop is reported as [A, A].

    Edges with a missing endpoint are ignored here.
    """
    adjacency: dict[str, list[str]] = {}
    for node in graph.nodes:
        targets = (e.target for e in graph.get_outgoing_edges(node.id))
        adjacency[node.id] = list(dict.fromkeys(t for t in targets if graph.has_node(t)))

    color = {node_id: _WHITE for node_id in adjacency}
    cycles: list[list[str]] = []

    for root in adjacency:
        if color[root] != _WHITE:
            continue

        color[root] = _GRAY
        path = [root]
        stack = [iter(adjacency[root])]

        while stack:
            child = next(stack[-1], None)

            if child is None:
                # All neighbours explored
                stack.pop()
                color[path.pop()] = _BLACK
                continue

            if color[child] == _GRAY:
                start = path.index(child)
                cycles.append(path[start:] + [child])
            elif color[child] == _WHITE:
                color[child] = _GRAY
                path.append(child)
                stack.append(iter(adjacency[child]))

    return cycles


def detect_cycles(graph: Graph) -> bool:
    return bool(find_cycles(graph))


def find_orphaned_nodes(graph: Graph) -> list[Node]:
    """
    Nodes (other than start and end) with no incoming or no outgoing edges.
    """
    orphans = []

    for node in graph.nodes:
        if node.kind in ('start', 'end'):
            continue

        has_incoming = bool(graph.get_incoming_edges(node.id))
        has_outgoing = bool(graph.get_outgoing_edges(node.id))

        if not has_incoming or not has_outgoing:
            orphans.append(node)

    return orphans


def find_unreachable_nodes(graph: Graph, exclude: Optional[set[str]] = None) -> list[Issue]:
    """
    Nodes no respondent can reach from the start node.

    Only meaningful with exactly one start node; returns nothing otherwise.
    Nodes in exclude (typically already-reported orphans) are skipped.
    """
    if not graph.has_valid_start():
        return []

    exclude = exclude or set()
    start = graph.get_start_node()
    reachable = reachable_from(build_networkx_graph(graph), start.id)

    issues = []
    for node in graph.nodes:
        if node.id in reachable or node.id in exclude:
            continue
        issues.append(Issue(
            kind=IssueKind.UNREACHABLE_NODE,
            message=f"Node '{node.id}' ({node.display_label}) cannot be reached from '{start.id}'",
            node_id=node.id,
        ))
    return issues


def find_shadowed_edges(graph: Graph) -> list[Issue]:
    """
    Edges that can never be selected because an earlier edge from the same
    source always wins: an unconditional edge, or one with an identical
    condition.
    """
    issues = []
    # source -> (earlier unconditional edge id, [(condition, edge id), ...])
    earlier: dict[str, tuple[Optional[str], list]] = {}

    for edge in graph.edges:
        always_id, seen = earlier.get(edge.source, (None, []))

        if always_id is not None:
            issues.append(Issue(
                kind=IssueKind.SHADOWED_EDGE,
                message=f"Edge '{edge.id}' is never taken: earlier edge '{always_id}' "
                        f"from '{edge.source}' always matches",
                node_id=edge.source,
                edge_id=edge.id,
            ))
        else:
            duplicate = next((eid for cond, eid in seen if cond == edge.condition), None)
            if duplicate is not None:
                issues.append(Issue(
                    kind=IssueKind.SHADOWED_EDGE,
                    message=f"Edge '{edge.id}' is never taken: earlier edge '{duplicate}' "
                            f"from '{edge.source}' has the same condition "
                            f"({describe_condition(edge.condition)})",
                    node_id=edge.source,
                    edge_id=edge.id,
                ))

        if always_id is None and edge.condition.type == 'always':
            always_id = edge.id
        seen.append((edge.condition, edge.id))
        earlier[edge.source] = (always_id, seen)

    return issues


def find_missing_options(graph: Graph) -> list[Issue]:
    """Choice questions must list their options."""
    issues = []
    for node in graph.nodes:
        if node.kind == 'question' and node.question.is_choice and not node.question.options:
            issues.append(Issue(
                kind=IssueKind.MISSING_OPTIONS,
                message=f"Question '{node.id}' ({node.display_label}) has no options to choose from",
                node_id=node.id,
            ))
    return issues
