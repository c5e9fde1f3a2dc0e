"""
Respondent Session

Stateful wrapper around the walker for one respondent: current node, the
recorded path and the answers given so far. Sessions share nothing but the
(immutable) graph, so any number of them may run side by side.

Each next() adds exactly one path entry and each back() removes one, so the
two always pair up, including at an end node and after a failed step.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from ..graph_types import (
    ABSENT,
    AbsentAnswer,
    Graph,
    MultiSelectAnswer,
    Node,
    NumberAnswer,
    PathEntry,
    Submission,
    TextAnswer,
    coerce_answer,
)
from .engine_settings import EngineSettings
from .types import TraversalError, TraversalResult
from .walker import auto_advance


logger = logging.getLogger(__name__)


class FlowSession:
    """
    One respondent's live traversal state.

    Usage:
        session = FlowSession(graph)
        session.next("Yes")      # answer the current node, move on
        session.back()           # undo the last next()
        if session.is_complete:
            submission = session.to_submission()
    """

    def __init__(self, graph: Graph, settings: Optional[EngineSettings] = None):
        if not isinstance(graph, Graph):
            raise TypeError(f"Expected Graph, got {type(graph).__name__}")

        start = graph.get_start_node()
        if start is None:
            raise ValueError("Graph has no start node; a session cannot begin")

        self._graph = graph
        self._settings = settings or EngineSettings()
        self._start_id = start.id
        self._current_id = start.id
        self._path: list[PathEntry] = []
        # Outcome of the next() call behind each path entry (parallel to _path)
        self._outcomes: list[TraversalResult] = []
        self._answers: dict[str, Any] = {}

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def graph(self) -> Graph:
        return self._graph

    @property
    def current_node_id(self) -> str:
        return self._current_id

    @property
    def current_node(self) -> Node:
        return self._graph.get_node_by_id(self._current_id)

    @property
    def path(self) -> tuple[PathEntry, ...]:
        return tuple(self._path)

    @property
    def answers(self) -> dict[str, Any]:
        return dict(self._answers)

    @property
    def can_go_back(self) -> bool:
        return bool(self._path)

    @property
    def is_complete(self) -> bool:
        return self.current_node.kind == 'end'

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def next(self, answer: Any = None, now: Optional[datetime] = None) -> TraversalResult:
        """
        Record the answer for the current node and move to the next interactive node.

        Every call appends one path entry for the node it was made on, so
        back() always undoes exactly one next(). At an end node, or when
        traversal fails, the entry is still recorded but the current node
        stays where it is.

        Args:
            answer: Tagged answer or raw value; None means no answer
            now: Timestamp for the path entry (defaults to current UTC time)

        Returns:
            TraversalResult from the auto-advance burst (terminal=True at an
            end node)
        """
        current = self.current_node
        answer = coerce_answer(answer)
        if isinstance(answer, AbsentAnswer) and self._settings.reuse_recorded_answers:
            answer = self._answers.get(current.id, ABSENT)

        if current.kind == 'end':
            result = TraversalResult(next_node_id=None, terminal=True)
        else:
            result = auto_advance(
                self._graph,
                current.id,
                answer,
                settings=self._settings,
                already_visited=self._guard_seed(),
            )
            if not result.ok:
                logger.warning("[session] Cannot leave node '%s': %s (%s)",
                               current.id, result.error.value, result.message)

        self._path.append(PathEntry(
            node_id=current.id,
            answer=answer,
            timestamp=now or datetime.now(timezone.utc),
        ))
        self._outcomes.append(result)
        if not isinstance(answer, AbsentAnswer):
            self._answers[current.id] = answer
        if result.next_node_id is not None:
            self._current_id = result.next_node_id
        return result

    def back(self) -> TraversalResult:
        """
        Undo the last next(): drop its path entry and return to its node.

        Answers already given are kept so the surface can pre-fill them.
        """
        if not self._path:
            return TraversalResult.failure(
                TraversalError.CANNOT_GO_BACK,
                "Already at the start of the flow",
            )

        entry = self._path.pop()
        self._outcomes.pop()
        self._current_id = entry.node_id
        return TraversalResult(next_node_id=entry.node_id, terminal=False)

    def reset(self) -> None:
        """Clear path and answers and return to the start node."""
        self._path.clear()
        self._outcomes.clear()
        self._answers.clear()
        self._current_id = self._start_id

    def to_submission(self, completed_at: Optional[datetime] = None) -> Submission:
        """
        Finalize the session into a Submission.

        Only entries that moved the respondent on are kept; calls that failed
        or were made at the end node left them in place. Logic nodes passed
        through automatically are written out after the entry that triggered
        them, so edges into and out of logic nodes get traffic. The end node
        closes the path.

        Raises:
            ValueError: If the session has not reached an end node
        """
        if not self.is_complete:
            raise ValueError(f"Session is at '{self._current_id}', not at an end node")

        completed_at = completed_at or datetime.now(timezone.utc)

        entries: list[PathEntry] = []
        for entry, outcome in zip(self._path, self._outcomes):
            if outcome.next_node_id is None:
                continue
            entries.append(entry)
            entries.extend(PathEntry(node_id=hop, timestamp=entry.timestamp) for hop in outcome.hops)

        entries.append(PathEntry(node_id=self._current_id, timestamp=completed_at))
        return Submission(path=tuple(entries), completed_at=completed_at)

    def _guard_seed(self) -> set[str]:
        if self._settings.cycle_guard_scope != 'session':
            return set()
        seen = {entry.node_id for entry in self._path}
        seen.add(self._current_id)
        for outcome in self._outcomes:
            seen.update(outcome.hops)
        return seen


def check_answer(node: Node, answer: Any) -> Optional[str]:
    """
    Check an answer against the node's input definition before next().

    Args:
        node: The node being answered
        answer: Tagged answer or raw value

    Returns:
        A message for the respondent, or None when the answer is acceptable
    """
    spec = node.question
    if node.kind != 'question' or spec is None:
        return None

    answer = coerce_answer(answer)

    if isinstance(answer, AbsentAnswer):
        return "This field is required." if spec.required else None

    if spec.input_kind == 'multi_choice':
        if not isinstance(answer, MultiSelectAnswer):
            return "Please select from the listed options."
        if spec.required and not answer.values:
            return "Please select at least one option."
        if spec.options is not None and any(v not in spec.options for v in answer.values):
            return "Please select from the listed options."
        return None

    if spec.input_kind == 'number':
        if not isinstance(answer, NumberAnswer):
            return "Please enter a number."
        return None

    if not isinstance(answer, TextAnswer):
        return "Please enter a text answer."
    if not answer.value.strip():
        return "This field is required." if spec.required else None
    if spec.input_kind == 'single_choice' and spec.options is not None and answer.value not in spec.options:
        return "Please select from the listed options."
    return None
