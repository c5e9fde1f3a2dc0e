"""
branchflow

Traversal, validation and traffic analytics engine for branching flows
(surveys, decision guides, onboarding scripts) authored as directed graphs.
"""

from .graph_types import (
    Graph,
    Node,
    Edge,
    QuestionSpec,
    PathEntry,
    Submission,
    TextAnswer,
    NumberAnswer,
    MultiSelectAnswer,
    AbsentAnswer,
    coerce_answer,
)
from .runner import (
    TraversalError,
    IssueKind,
    TraversalResult,
    ValidationResult,
    TrafficReport,
    EngineSettings,
    FlowSession,
    step,
    auto_advance,
    validate_graph,
    aggregate_edge_traffic,
    evaluate_condition,
)

__version__ = "0.1.0"
