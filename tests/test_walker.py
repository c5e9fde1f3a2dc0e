"""
Tests for the graph walker.

Tests single steps, error kinds and auto-advance through logic nodes.
"""

import pytest

from branchflow.graph_types import Edge, Graph, Node, ExactMatchCondition
from branchflow.runner.engine_settings import EngineSettings
from branchflow.runner.types import TraversalError
from branchflow.runner.walker import auto_advance, path_exists, possible_next_nodes, step
from tests.fixtures.graphs import logic_graph, logic_loop_graph, yes_no_graph


class TestStep:
    """Core step() contract."""

    def test_matching_edge_selects_target(self):
        result = step(yes_no_graph(), "n1", "Yes")
        assert result.ok
        assert result.next_node_id == "n2"
        assert result.terminal is False

    def test_second_branch(self):
        assert step(yes_no_graph(), "n1", "No").next_node_id == "n3"

    def test_no_matching_edge(self):
        result = step(yes_no_graph(), "n1", "Maybe")
        assert result.error == TraversalError.NO_MATCHING_EDGE
        assert result.next_node_id is None
        assert "n1" in result.message

    def test_step_into_end_is_terminal(self):
        result = step(yes_no_graph(), "n2", "Python")
        assert result.next_node_id == "n4"
        assert result.terminal is True

    def test_unknown_node(self):
        result = step(yes_no_graph(), "nope", "Yes")
        assert result.error == TraversalError.UNKNOWN_NODE

    def test_end_node_is_idempotently_terminal(self):
        graph = yes_no_graph()
        for _ in range(3):
            result = step(graph, "n4", None)
            assert result.terminal is True
            assert result.ok
            assert result.next_node_id is None

    def test_dead_end(self):
        graph = Graph(
            nodes=[Node(id="s", kind="start"), Node(id="q", kind="question"), Node(id="e", kind="end")],
            edges=[Edge(id="e1", source="s", target="q")],
        )
        assert step(graph, "q", "x").error == TraversalError.DEAD_END

    def test_dangling_edge(self):
        graph = Graph(
            nodes=[Node(id="s", kind="start"), Node(id="e", kind="end")],
            edges=[Edge(id="e1", source="s", target="ghost")],
        )
        result = step(graph, "s", None)
        assert result.error == TraversalError.DANGLING_EDGE
        assert "ghost" in result.message

    def test_first_match_wins_in_authored_order(self):
        """Both edges match "Yes"; the one stored first is taken."""
        graph = Graph(
            nodes=[Node(id="s", kind="start"), Node(id="a", kind="end"), Node(id="b", kind="end")],
            edges=[
                Edge(id="e1", source="s", target="b", condition=ExactMatchCondition(value="Yes")),
                Edge(id="e2", source="s", target="a"),
            ],
        )
        assert step(graph, "s", "Yes").next_node_id == "b"
        assert step(graph, "s", "No").next_node_id == "a"

    def test_accepts_tagged_and_raw_answers(self):
        from branchflow.graph_types import TextAnswer
        graph = yes_no_graph()
        assert step(graph, "n1", TextAnswer(value="Yes")) == step(graph, "n1", "Yes")

    def test_rejects_non_graph(self):
        with pytest.raises(TypeError):
            step({'nodes': [], 'edges': []}, "n1", "Yes")

    def test_rejects_boolean_answer(self):
        with pytest.raises(TypeError):
            step(yes_no_graph(), "n1", True)


class TestAutoAdvance:
    """Automatic hops through logic nodes."""

    def test_skips_logic_nodes(self):
        result = auto_advance(logic_graph(), "age", 30)
        assert result.ok
        assert result.next_node_id == "info"
        assert result.hops == ("gate", "route")

    def test_stops_immediately_at_interactive_node(self):
        result = auto_advance(logic_graph(), "age", 70)
        assert result.next_node_id == "end"
        assert result.terminal is True
        assert result.hops == ()

    def test_errors_pass_through(self):
        result = auto_advance(yes_no_graph(), "n1", "Maybe")
        assert result.error == TraversalError.NO_MATCHING_EDGE

    def test_logic_loop_is_infinite_loop(self):
        result = auto_advance(logic_loop_graph(), "q", "anything")
        assert result.error == TraversalError.INFINITE_LOOP
        assert "interactive node" in result.message

    def test_hop_limit(self):
        settings = EngineSettings(max_auto_advance_hops=1)
        result = auto_advance(logic_graph(), "age", 30, settings=settings)
        assert result.error == TraversalError.INFINITE_LOOP

    def test_seeded_visited_set(self):
        result = auto_advance(logic_graph(), "age", 30, already_visited={"route"})
        assert result.error == TraversalError.INFINITE_LOOP

    def test_passes_through_start_nodes(self):
        """A start node reached mid-flow takes no input and is hopped through."""
        graph = Graph(
            nodes=[
                Node(id="s", kind="start"),
                Node(id="q", kind="question"),
                Node(id="e", kind="end"),
            ],
            edges=[
                Edge(id="e1", source="s", target="q", condition=ExactMatchCondition(value="go")),
                Edge(id="e2", source="s", target="e"),
                Edge(id="e3", source="q", target="s"),
            ],
        )
        result = auto_advance(graph, "q", "restart")
        assert result.next_node_id == "e"
        assert result.terminal is True
        assert result.hops == ("s",)

    def test_logic_node_without_matching_edge(self):
        """Logic hops use an absent answer, so guarded edges never match."""
        graph = Graph(
            nodes=[
                Node(id="s", kind="start"),
                Node(id="l", kind="logic"),
                Node(id="e", kind="end"),
            ],
            edges=[
                Edge(id="e1", source="s", target="l"),
                Edge(id="e2", source="l", target="e", condition=ExactMatchCondition(value="x")),
            ],
        )
        assert auto_advance(graph, "s", None).error == TraversalError.NO_MATCHING_EDGE


class TestHelpers:

    def test_possible_next_nodes_in_edge_order(self):
        nodes = possible_next_nodes(yes_no_graph(), "n1")
        assert [n.id for n in nodes] == ["n2", "n3"]

    def test_possible_next_nodes_skips_missing_targets(self):
        graph = Graph(
            nodes=[Node(id="s", kind="start"), Node(id="e", kind="end")],
            edges=[Edge(id="e1", source="s", target="ghost"), Edge(id="e2", source="s", target="e")],
        )
        assert [n.id for n in possible_next_nodes(graph, "s")] == ["e"]

    def test_path_exists_is_direct_edge_only(self):
        graph = yes_no_graph()
        assert path_exists(graph, "n1", "n2") is True
        assert path_exists(graph, "n1", "n4") is False
