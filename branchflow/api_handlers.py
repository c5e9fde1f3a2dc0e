"""
Shared API handlers for host applications.

Each handler takes a JSON-shaped request dict and returns a JSON-shaped
response dict, so the authoring, respondent and analytics surfaces can call
the engine without importing its model types.

Missing required fields raise ValueError (hosts map this to a 400);
malformed graph or submission data raises pydantic.ValidationError.
"""
from typing import Any, Dict, List

from .graph_types import Graph, Submission
from .runner.aggregation import aggregate_edge_traffic, describe_path
from .runner.engine_settings import compute_settings_signature, settings_from_dict
from .runner.graph_builder import build_networkx_graph, get_graph_stats
from .runner.validator import validate_graph
from .runner.walker import auto_advance, step


def _require(data: Dict[str, Any], field: str) -> Any:
    value = data.get(field)
    if value is None:
        raise ValueError(f"Missing '{field}' field")
    return value


def handle_validate_graph(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Handle validate-graph requests (publish gate).

    Args:
        data: Request body containing:
            - graph: Graph data (required)

    Returns:
        Response dict with valid flag, errors, warnings and graph stats
    """
    graph = Graph.model_validate(_require(data, 'graph'))

    result = validate_graph(graph)
    stats = get_graph_stats(build_networkx_graph(graph))

    return {
        "valid": result.valid,
        "errors": [issue.to_dict() for issue in result.errors],
        "warnings": [issue.to_dict() for issue in result.warnings],
        "stats": {
            "nodeCount": stats['node_count'],
            "edgeCount": stats['edge_count'],
            "kindCounts": stats['kind_counts'],
        },
        "success": True
    }


def handle_step(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Handle a single traversal request from a stateless respondent surface.

    Args:
        data: Request body containing:
            - graph: Graph data (required)
            - nodeId: Current node id (required)
            - answer: Raw answer value (optional)
            - autoAdvance: Skip through logic nodes (optional, default True)
            - settings: Engine settings overrides (optional)

    Returns:
        Response dict with nextNodeId, terminal, error, message, hops and
        settingsSignature (provenance of the engine settings applied)
    """
    graph = Graph.model_validate(_require(data, 'graph'))
    node_id = _require(data, 'nodeId')
    answer = data.get('answer')
    settings = settings_from_dict(data.get('settings'))

    try:
        if data.get('autoAdvance', True):
            result = auto_advance(graph, node_id, answer, settings=settings)
        else:
            result = step(graph, node_id, answer)
    except TypeError as e:
        raise ValueError(f"Invalid 'answer' field: {e}") from e

    return {
        **result.to_dict(),
        "settingsSignature": compute_settings_signature(settings),
        "success": True
    }


def handle_edge_traffic(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Handle edge-traffic requests from the analytics surface.

    Args:
        data: Request body containing:
            - graph: Graph data (required)
            - submissions: List of submission dicts (required, may be empty)
            - includePaths: Also return labelled paths per submission (optional)

    Returns:
        Response dict with per-edge counts/percentages and maxCount
    """
    graph = Graph.model_validate(_require(data, 'graph'))
    submissions: List[Submission] = [
        Submission.model_validate(s) for s in _require(data, 'submissions')
    ]

    report = aggregate_edge_traffic(graph, submissions)

    response = {
        "edges": [
            {
                "edgeId": s.edge_id,
                "sourceNodeId": s.source,
                "targetNodeId": s.target,
                "count": s.count,
                "percentage": s.percentage,
            }
            for s in report.edges
        ],
        "maxCount": report.max_count,
        "submissionCount": report.submission_count,
        "nodeVisits": report.node_visits,
        "success": True
    }

    if data.get('includePaths'):
        response["paths"] = [
            [
                {
                    "nodeId": row['node_id'],
                    "label": row['label'],
                    "answer": row['answer'],
                    "timestamp": row['timestamp'].isoformat(),
                }
                for row in describe_path(graph, submission)
            ]
            for submission in submissions
        ]

    return response
