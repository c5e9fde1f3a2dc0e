"""
Runner Types

Result types returned by the walker, session, validator and aggregator.
None of the runners raise for malformed author input; problems are reported
through these structures instead.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


# ============================================================================
# Error Kinds
# ============================================================================

class TraversalError(str, Enum):
    """Traversal-time problems, recoverable by the caller."""
    UNKNOWN_NODE = "UnknownNode"
    DANGLING_EDGE = "DanglingEdge"
    DEAD_END = "DeadEnd"
    NO_MATCHING_EDGE = "NoMatchingEdge"
    INFINITE_LOOP = "InfiniteLoop"
    CANNOT_GO_BACK = "CannotGoBack"


class IssueKind(str, Enum):
    """Validation-time findings."""
    MISSING_START = "MissingStart"
    MULTIPLE_START = "MultipleStart"
    MISSING_END = "MissingEnd"
    DANGLING_EDGE_REF = "DanglingEdgeRef"
    CYCLE_DETECTED = "CycleDetected"
    # Warnings (never block publish)
    ORPHAN_NODE = "OrphanNode"
    UNREACHABLE_NODE = "UnreachableNode"
    SHADOWED_EDGE = "ShadowedEdge"
    MISSING_OPTIONS = "MissingOptions"


# ============================================================================
# Traversal
# ============================================================================

@dataclass(frozen=True)
class TraversalResult:
    """Outcome of one step (or one auto-advance burst)."""
    next_node_id: Optional[str] = None
    terminal: bool = False
    error: Optional[TraversalError] = None
    message: Optional[str] = None
    hops: tuple[str, ...] = ()
    """Logic nodes passed through automatically on the way to next_node_id."""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: TraversalError, message: str) -> "TraversalResult":
        return cls(next_node_id=None, terminal=False, error=error, message=message)

    def to_dict(self) -> dict[str, Any]:
        return {
            'nextNodeId': self.next_node_id,
            'terminal': self.terminal,
            'error': self.error.value if self.error else None,
            'message': self.message,
            'hops': list(self.hops),
        }


# ============================================================================
# Validation
# ============================================================================

@dataclass(frozen=True)
class Issue:
    """A single validation finding."""
    kind: IssueKind
    message: str
    node_id: Optional[str] = None
    edge_id: Optional[str] = None
    cycle: Optional[tuple[str, ...]] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {'type': self.kind.value, 'message': self.message}
        if self.node_id is not None:
            d['nodeId'] = self.node_id
        if self.edge_id is not None:
            d['edgeId'] = self.edge_id
        if self.cycle is not None:
            d['cycle'] = list(self.cycle)
        return d


@dataclass
class ValidationResult:
    """Result of validate_graph: errors block publish, warnings do not."""
    errors: list[Issue] = field(default_factory=list)
    warnings: list[Issue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def errors_of(self, kind: IssueKind) -> list[Issue]:
        return [i for i in self.errors if i.kind == kind]

    def warnings_of(self, kind: IssueKind) -> list[Issue]:
        return [i for i in self.warnings if i.kind == kind]


# ============================================================================
# Aggregation
# ============================================================================

@dataclass(frozen=True)
class EdgeStats:
    """Traffic over one edge."""
    edge_id: str
    source: str
    target: str
    count: int
    percentage: int


@dataclass
class TrafficReport:
    """Per-edge traffic for a set of submissions."""
    edges: list[EdgeStats] = field(default_factory=list)
    max_count: int = 1
    submission_count: int = 0
    node_visits: dict[str, int] = field(default_factory=dict)

    def for_edge(self, edge_id: str) -> Optional[EdgeStats]:
        for stats in self.edges:
            if stats.edge_id == edge_id:
                return stats
        return None
