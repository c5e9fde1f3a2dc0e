"""
Edge Traffic Aggregation

Aggregates recorded respondent paths into per-edge traversal counts and
percentages of each source node's total outflow.

Pure counting: the result does not depend on submission order. Consecutive
path entries with no matching edge (historical data recorded against an
older graph) are skipped rather than treated as errors.
"""

import logging
import math
from collections import defaultdict
from typing import Any, Dict, Iterable, List

from ..graph_types import Graph, Submission, answer_display_value
from .types import EdgeStats, TrafficReport


logger = logging.getLogger(__name__)


def aggregate_edge_traffic(graph: Graph, submissions: Iterable[Submission]) -> TrafficReport:
    """
    Count edge traversals across submissions.

    For each consecutive pair (a, b) of a submission's path, the first edge
    a -> b (authored order) gets +1, and so does the exit count of a.
    Afterwards every edge of the graph, including zero-traffic ones, gets
    percentage = round(100 * count / max(1, exits of its source)).

    Args:
        graph: Flow graph snapshot
        submissions: Completed submissions

    Returns:
        TrafficReport with one EdgeStats per graph edge (graph order),
        max_count (at least 1), submission_count and node_visits
    """
    if not isinstance(graph, Graph):
        raise TypeError(f"Expected Graph, got {type(graph).__name__}")

    # (source, target) -> first matching edge id
    edge_lookup: Dict[tuple, str] = {}
    for edge in graph.edges:
        edge_lookup.setdefault((edge.source, edge.target), edge.id)

    edge_counts: Dict[str, int] = defaultdict(int)
    exit_counts: Dict[str, int] = defaultdict(int)
    node_visits: Dict[str, int] = defaultdict(int)
    submission_count = 0
    skipped = 0

    for submission in submissions:
        submission_count += 1
        path = submission.path

        for entry in path:
            node_visits[entry.node_id] += 1

        for prev, curr in zip(path, path[1:]):
            edge_id = edge_lookup.get((prev.node_id, curr.node_id))
            if edge_id is None:
                skipped += 1
                continue
            edge_counts[edge_id] += 1
            exit_counts[prev.node_id] += 1

    if skipped:
        logger.debug("[aggregation] Skipped %d path step(s) with no matching edge", skipped)

    stats: List[EdgeStats] = []
    for edge in graph.edges:
        count = edge_counts.get(edge.id, 0)
        exits = exit_counts.get(edge.source, 0)
        stats.append(EdgeStats(
            edge_id=edge.id,
            source=edge.source,
            target=edge.target,
            count=count,
            percentage=_round_half_up(100 * count / max(1, exits)),
        ))

    return TrafficReport(
        edges=stats,
        max_count=max([s.count for s in stats] + [1]),
        submission_count=submission_count,
        node_visits=dict(node_visits),
    )


def describe_path(graph: Graph, submission: Submission) -> List[Dict[str, Any]]:
    """
    Render a submission's path for a list view.

    Returns:
        One dict per path entry: node_id, label (node label, else the id;
        the id as well for nodes no longer in the graph), answer (plain
        value or None) and timestamp
    """
    rows = []
    for entry in submission.path:
        node = graph.get_node_by_id(entry.node_id)
        rows.append({
            'node_id': entry.node_id,
            'label': node.display_label if node else entry.node_id,
            'answer': answer_display_value(entry.answer),
            'timestamp': entry.timestamp,
        })
    return rows


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
