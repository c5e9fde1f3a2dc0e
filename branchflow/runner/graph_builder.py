"""
Graph Builder

Converts a flow Graph into a NetworkX DiGraph for structural analysis
(reachability, statistics).

Edges whose source or target does not resolve to a node are left out; the
validator reports those separately. Parallel edges between the same pair of
nodes collapse into one DiGraph edge that lists every edge id.
"""

from typing import Optional

import networkx as nx

from ..graph_types import Graph


def build_networkx_graph(graph: Graph) -> nx.DiGraph:
    """
    Build NetworkX DiGraph from a flow graph.

    Args:
        graph: Flow graph

    Returns:
        NetworkX DiGraph with node/edge attributes

    Node attributes:
        - kind: start, question, info, logic or end
        - label: Display label (falls back to the id)
        - is_start / is_end: Convenience flags

    Edge attributes:
        - edge_ids: Ids of every flow edge between the pair, in authored order
        - conditions: The matching conditions, same order
    """
    if not isinstance(graph, Graph):
        raise TypeError(f"Expected Graph, got {type(graph).__name__}")

    G = nx.DiGraph()

    for node in graph.nodes:
        G.add_node(
            node.id,
            kind=node.kind,
            label=node.display_label,
            is_start=node.kind == 'start',
            is_end=node.kind == 'end',
        )

    for edge in graph.edges:
        if edge.source not in G.nodes or edge.target not in G.nodes:
            # Skip edges with invalid node references
            continue

        if G.has_edge(edge.source, edge.target):
            data = G.edges[edge.source, edge.target]
            data['edge_ids'].append(edge.id)
            data['conditions'].append(edge.condition)
        else:
            G.add_edge(
                edge.source,
                edge.target,
                edge_ids=[edge.id],
                conditions=[edge.condition],
            )

    return G


def find_start_nodes(G: nx.DiGraph) -> list[str]:
    """Find all start nodes in the graph."""
    return [n for n, d in G.nodes(data=True) if d.get('is_start', False)]


def find_end_nodes(G: nx.DiGraph) -> list[str]:
    """Find all end nodes in the graph."""
    return [n for n, d in G.nodes(data=True) if d.get('is_end', False)]


def reachable_from(G: nx.DiGraph, node_id: Optional[str]) -> set[str]:
    """
    Nodes reachable from node_id, including node_id itself.

    Returns an empty set when node_id is None or not in the graph.
    """
    if node_id is None or node_id not in G:
        return set()
    return set(nx.descendants(G, node_id)) | {node_id}


def get_graph_stats(G: nx.DiGraph) -> dict:
    """
    Get basic statistics about the graph.

    Args:
        G: NetworkX DiGraph

    Returns:
        Dict with node_count, edge_count, start_nodes, end_nodes, kind_counts, is_dag
    """
    kind_counts: dict[str, int] = {}
    for _, d in G.nodes(data=True):
        kind = d.get('kind')
        kind_counts[kind] = kind_counts.get(kind, 0) + 1

    return {
        'node_count': G.number_of_nodes(),
        'edge_count': sum(len(d['edge_ids']) for _, _, d in G.edges(data=True)),
        'start_nodes': find_start_nodes(G),
        'end_nodes': find_end_nodes(G),
        'kind_counts': kind_counts,
        'is_dag': nx.is_directed_acyclic_graph(G),
    }
