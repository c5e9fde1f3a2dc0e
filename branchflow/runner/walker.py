"""
Graph Walker

Pure traversal functions: given the current node and an answer, pick the
next node. No side effects; the same inputs always give the same result.

step()          one hop, first matching edge wins (authored edge order)
auto_advance()  step() followed by automatic hops through logic nodes
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterable, Optional

from ..graph_types import ABSENT, Graph, Node, coerce_answer
from .conditions import evaluate_condition
from .engine_settings import EngineSettings
from .types import TraversalError, TraversalResult


logger = logging.getLogger(__name__)


def step(graph: Graph, current_node_id: str, answer: Any = None) -> TraversalResult:
    """
    Compute the next node from the current node and an answer.

    Args:
        graph: Flow graph snapshot
        current_node_id: Node the respondent is on
        answer: Tagged answer, or a raw value (str, number, list of str, None)

    Returns:
        TraversalResult with next_node_id, or terminal=True at an end node,
        or an error kind
    """
    if not isinstance(graph, Graph):
        raise TypeError(f"Expected Graph, got {type(graph).__name__}")
    answer = coerce_answer(answer)

    current = graph.get_node_by_id(current_node_id)
    if current is None:
        return TraversalResult.failure(
            TraversalError.UNKNOWN_NODE,
            f"Node '{current_node_id}' not found in graph",
        )

    if current.kind == 'end':
        return TraversalResult(next_node_id=None, terminal=True)

    outgoing = graph.get_outgoing_edges(current_node_id)
    if not outgoing:
        return TraversalResult.failure(
            TraversalError.DEAD_END,
            f"No outgoing edges from node '{current_node_id}'",
        )

    matching = next((e for e in outgoing if evaluate_condition(e.condition, answer)), None)
    if matching is None:
        return TraversalResult.failure(
            TraversalError.NO_MATCHING_EDGE,
            f"No matching edge for answer {_answer_repr(answer)} from node '{current_node_id}'",
        )

    target = graph.get_node_by_id(matching.target)
    if target is None:
        return TraversalResult.failure(
            TraversalError.DANGLING_EDGE,
            f"Edge '{matching.id}' points at missing node '{matching.target}'",
        )

    return TraversalResult(next_node_id=target.id, terminal=target.kind == 'end')


def auto_advance(
    graph: Graph,
    current_node_id: str,
    answer: Any = None,
    settings: Optional[EngineSettings] = None,
    already_visited: Iterable[str] = (),
) -> TraversalResult:
    """
    Step from the current node, then keep stepping until an interactive node.

    Logic (and start) nodes take no input, so each automatic hop is
    evaluated with an absent answer. The burst stops at the first question,
    info or end node. Revisiting a node inside the burst (or any node in
    already_visited) aborts with InfiniteLoop, as does exceeding
    settings.max_auto_advance_hops.

    Args:
        graph: Flow graph snapshot
        current_node_id: Node the respondent is on
        answer: The respondent's answer for current_node_id
        settings: Engine settings (defaults when None)
        already_visited: Extra node ids that count as visited (session-wide guard)

    Returns:
        TraversalResult for the interactive node the burst stopped at
    """
    settings = settings or EngineSettings()

    result = step(graph, current_node_id, answer)
    visited = set(already_visited)
    hops: list[str] = []

    while result.ok and result.next_node_id is not None:
        node = graph.get_node_by_id(result.next_node_id)
        if node.is_interactive:
            return replace(result, hops=tuple(hops))

        if node.id in visited:
            return TraversalResult.failure(
                TraversalError.INFINITE_LOOP,
                f"Flow ended without reaching an interactive node (loop at '{node.id}')",
            )
        if len(hops) >= settings.max_auto_advance_hops:
            return TraversalResult.failure(
                TraversalError.INFINITE_LOOP,
                f"Flow ended without reaching an interactive node "
                f"(more than {settings.max_auto_advance_hops} automatic steps)",
            )

        visited.add(node.id)
        hops.append(node.id)
        logger.debug("[walker] Auto-advancing through %s node '%s'", node.kind, node.id)
        result = step(graph, node.id, ABSENT)

    return result


def possible_next_nodes(graph: Graph, node_id: str) -> list[Node]:
    """Targets of the node's outgoing edges that exist, in edge order."""
    nodes = []
    for edge in graph.get_outgoing_edges(node_id):
        target = graph.get_node_by_id(edge.target)
        if target is not None:
            nodes.append(target)
    return nodes


def path_exists(graph: Graph, from_node_id: str, to_node_id: str) -> bool:
    """True if a direct edge from_node_id -> to_node_id exists."""
    return any(e.target == to_node_id for e in graph.get_outgoing_edges(from_node_id))


def _answer_repr(answer) -> str:
    kind = getattr(answer, 'kind', None)
    if kind in ('text', 'number'):
        return repr(answer.value)
    if kind == 'multi_select':
        return repr(list(answer.values))
    return "<absent>"
