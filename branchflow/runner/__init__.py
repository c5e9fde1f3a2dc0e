"""
Flow Runner Package

Traversal, validation and traffic aggregation over flow graphs.
"""

from .types import (
    TraversalError,
    IssueKind,
    TraversalResult,
    Issue,
    ValidationResult,
    EdgeStats,
    TrafficReport,
)

from .engine_settings import EngineSettings, settings_from_dict, load_settings, compute_settings_signature
from .conditions import evaluate_condition
from .walker import step, auto_advance, possible_next_nodes, path_exists
from .session import FlowSession, check_answer
from .validator import validate_graph, quick_validate, find_cycles, detect_cycles
from .aggregation import aggregate_edge_traffic, describe_path

__all__ = [
    # Types
    'TraversalError',
    'IssueKind',
    'TraversalResult',
    'Issue',
    'ValidationResult',
    'EdgeStats',
    'TrafficReport',
    # Settings
    'EngineSettings',
    'settings_from_dict',
    'load_settings',
    'compute_settings_signature',
    # Functions
    'evaluate_condition',
    'step',
    'auto_advance',
    'possible_next_nodes',
    'path_exists',
    'FlowSession',
    'check_answer',
    'validate_graph',
    'quick_validate',
    'find_cycles',
    'detect_cycles',
    'aggregate_edge_traffic',
    'describe_path',
]
