"""
Tests for edge traffic aggregation.
"""

import random
from datetime import datetime, timezone

import pytest

from branchflow.graph_types import Edge, PathEntry, Submission
from branchflow.runner.aggregation import aggregate_edge_traffic, describe_path
from tests.fixtures.graphs import yes_no_graph


T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def submission(*steps) -> Submission:
    """steps: node ids, or (node_id, raw answer) pairs."""
    entries = []
    for s in steps:
        node_id, answer = s if isinstance(s, tuple) else (s, None)
        entries.append(PathEntry(node_id=node_id, answer=answer, timestamp=T0))
    return Submission(path=entries, completed_at=T0)


class TestEdgeTraffic:

    def test_all_yes(self):
        subs = [submission("n1", "n2", "n4") for _ in range(10)]
        report = aggregate_edge_traffic(yes_no_graph(), subs)

        e1 = report.for_edge("e1")
        assert (e1.count, e1.percentage) == (10, 100)
        e2 = report.for_edge("e2")
        assert (e2.count, e2.percentage) == (0, 0)
        assert report.max_count == 10
        assert report.submission_count == 10

    def test_every_edge_is_reported(self):
        report = aggregate_edge_traffic(yes_no_graph(), [])
        assert [s.edge_id for s in report.edges] == ["e1", "e2", "e3", "e4"]
        assert all(s.count == 0 and s.percentage == 0 for s in report.edges)
        assert report.max_count == 1

    def test_split_percentages(self):
        subs = [submission("n1", "n2", "n4")] * 3 + [submission("n1", "n3", "n4")]
        report = aggregate_edge_traffic(yes_no_graph(), subs)

        assert report.for_edge("e1").percentage == 75
        assert report.for_edge("e2").percentage == 25
        assert report.for_edge("e3").percentage == 100

    def test_percentages_round_half_up(self):
        # 1 of 8 exits = 12.5% -> 13
        subs = [submission("n1", "n3")] + [submission("n1", "n2")] * 7
        report = aggregate_edge_traffic(yes_no_graph(), subs)
        assert report.for_edge("e2").percentage == 13
        assert report.for_edge("e1").percentage == 88

    def test_unmatched_pairs_are_skipped(self):
        subs = [submission("n1", "n4"), submission("n1", "n2", "n4")]
        report = aggregate_edge_traffic(yes_no_graph(), subs)

        assert report.for_edge("e1").count == 1
        # The skipped n1 -> n4 step is not counted as an exit from n1
        assert report.for_edge("e1").percentage == 100

    def test_parallel_edges_credit_the_first(self):
        graph = yes_no_graph().with_edge(Edge(id="e5", source="n2", target="n4"))
        report = aggregate_edge_traffic(graph, [submission("n1", "n2", "n4")])
        assert report.for_edge("e3").count == 1
        assert report.for_edge("e5").count == 0

    def test_order_independent(self):
        subs = (
            [submission("n1", "n2", "n4")] * 4
            + [submission("n1", "n3", "n4")] * 3
            + [submission("n1")]
        )
        shuffled = list(subs)
        random.Random(7).shuffle(shuffled)

        graph = yes_no_graph()
        assert aggregate_edge_traffic(graph, subs) == aggregate_edge_traffic(graph, shuffled)

    def test_node_visits(self):
        subs = [submission("n1", "n2", "n4"), submission("n1", "n3", "n4")]
        report = aggregate_edge_traffic(yes_no_graph(), subs)
        assert report.node_visits == {"n1": 2, "n2": 1, "n3": 1, "n4": 2}

    def test_accepts_any_iterable(self):
        report = aggregate_edge_traffic(yes_no_graph(), (submission("n1", "n2") for _ in range(2)))
        assert report.for_edge("e1").count == 2
        assert report.submission_count == 2

    def test_rejects_non_graph(self):
        with pytest.raises(TypeError):
            aggregate_edge_traffic({}, [])


class TestDescribePath:

    def test_labels_and_answers(self):
        sub = submission(("n1", "Yes"), ("n2", ["Python", "Go"]), "n4")
        rows = describe_path(yes_no_graph(), sub)

        assert [r['label'] for r in rows] == ["Do you like programming?", "Favourite language?", "Thank you!"]
        assert [r['answer'] for r in rows] == ["Yes", ["Python", "Go"], None]
        assert rows[0]['timestamp'] == T0

    def test_removed_node_falls_back_to_id(self):
        rows = describe_path(yes_no_graph().without_node("n3"), submission("n1", "n3"))
        assert rows[1]['label'] == "n3"
