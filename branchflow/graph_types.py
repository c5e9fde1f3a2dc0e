"""
Graph data type definitions using Pydantic

These models describe a branching flow graph as the authoring tool stores it
and are the only input types accepted by the traversal, validation and
aggregation runners.

Graphs are immutable snapshots: the editing helpers on `Graph` return a new
graph instead of mutating the receiver.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
    model_validator,
)


NodeKind = Literal["start", "question", "info", "logic", "end"]
InputKind = Literal["text", "email", "number", "single_choice", "multi_choice"]

INTERACTIVE_KINDS = frozenset({"question", "info", "end"})
CHOICE_INPUT_KINDS = frozenset({"single_choice", "multi_choice"})

# Authoring-tool spellings accepted when loading plain data
_NODE_KIND_ALIASES = {"root": "start"}
_INPUT_KIND_ALIASES = {
    "multipleChoice": "single_choice",
    "multiple_choice": "single_choice",
    "singleChoice": "single_choice",
    "checkbox": "multi_choice",
    "multiChoice": "multi_choice",
}


# ============================================================================
# Edge Conditions
# ============================================================================

class AlwaysCondition(BaseModel):
    """Unconditional edge (default/fallback path)."""
    model_config = ConfigDict(frozen=True)

    type: Literal["always"] = "always"


class ExactMatchCondition(BaseModel):
    """Answer equals value, or a multi-select answer contains it."""
    model_config = ConfigDict(frozen=True)

    type: Literal["exact"] = "exact"
    value: Union[str, float]

    @field_validator('value', mode='before')
    @classmethod
    def reject_bool(cls, v):
        if isinstance(v, bool):
            raise ValueError("exact condition value must be text or a number")
        return v


class ContainsCondition(BaseModel):
    """Case-insensitive substring match on a text answer."""
    model_config = ConfigDict(frozen=True)

    type: Literal["contains"] = "contains"
    value: str


class NumericRangeCondition(BaseModel):
    """Inclusive numeric range on a number answer."""
    model_config = ConfigDict(frozen=True)

    type: Literal["range"] = "range"
    min: float
    max: float

    @model_validator(mode='before')
    @classmethod
    def accept_value_pair(cls, data):
        """Accept the editor's `{type: "range", value: [min, max]}` shape."""
        if isinstance(data, dict) and 'value' in data and 'min' not in data:
            value = data['value']
            if isinstance(value, (list, tuple)) and len(value) == 2:
                data = {k: v for k, v in data.items() if k != 'value'}
                data['min'], data['max'] = value
        return data


class RegexMatchCondition(BaseModel):
    """Regular expression match on a text answer.

    The pattern is not compiled here: a malformed pattern is author input and
    must degrade to "never matches" at evaluation time, not fail loading.
    """
    model_config = ConfigDict(frozen=True)

    type: Literal["regex"] = "regex"
    pattern: str


Condition = Annotated[
    Union[
        AlwaysCondition,
        ExactMatchCondition,
        ContainsCondition,
        NumericRangeCondition,
        RegexMatchCondition,
    ],
    Field(discriminator="type"),
]


# ============================================================================
# User Answers
# ============================================================================

class TextAnswer(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    value: str


class NumberAnswer(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["number"] = "number"
    value: float


class MultiSelectAnswer(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["multi_select"] = "multi_select"
    values: Tuple[str, ...] = ()


class AbsentAnswer(BaseModel):
    """No answer (passive nodes and automatic hops)."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["absent"] = "absent"


UserAnswer = Annotated[
    Union[TextAnswer, NumberAnswer, MultiSelectAnswer, AbsentAnswer],
    Field(discriminator="kind"),
]

_ANSWER_TYPES = (TextAnswer, NumberAnswer, MultiSelectAnswer, AbsentAnswer)
ABSENT = AbsentAnswer()


def coerce_answer(raw: Any) -> Union[TextAnswer, NumberAnswer, MultiSelectAnswer, AbsentAnswer]:
    """
    Convert a raw input value into a tagged answer.

    Args:
        raw: str, int/float, list/tuple of str, None, an answer model, or a
             dict in the tagged `{"kind": ...}` form

    Returns:
        The tagged answer variant

    Raises:
        TypeError: For booleans and any other unsupported type
    """
    if raw is None:
        return ABSENT
    if isinstance(raw, _ANSWER_TYPES):
        return raw
    if isinstance(raw, bool):
        raise TypeError("Boolean answers are not supported")
    if isinstance(raw, str):
        return TextAnswer(value=raw)
    if isinstance(raw, (int, float)):
        return NumberAnswer(value=raw)
    if isinstance(raw, (list, tuple)):
        if not all(isinstance(v, str) for v in raw):
            raise TypeError("Multi-select answers must be a list of strings")
        return MultiSelectAnswer(values=tuple(raw))
    if isinstance(raw, dict) and 'kind' in raw:
        kind = raw['kind']
        for answer_type in _ANSWER_TYPES:
            if answer_type.model_fields['kind'].default == kind:
                return answer_type.model_validate(raw)
    raise TypeError(f"Unsupported answer type: {type(raw).__name__}")


def answer_display_value(answer) -> Any:
    """Plain value of an answer for display and JSON output (None when absent)."""
    if isinstance(answer, (TextAnswer, NumberAnswer)):
        return answer.value
    if isinstance(answer, MultiSelectAnswer):
        return list(answer.values)
    return None


# ============================================================================
# Node Structure
# ============================================================================

class QuestionSpec(BaseModel):
    """Input definition of a question node."""
    model_config = ConfigDict(frozen=True)

    input_kind: InputKind = Field("text", description="Input surface the respondent answers with")
    options: Optional[Tuple[str, ...]] = Field(None, description="Ordered choices (choice-based input only)")
    required: bool = Field(False, description="If true, the respondent must answer")
    placeholder: Optional[str] = None

    @field_validator('input_kind', mode='before')
    @classmethod
    def normalise_input_kind(cls, v):
        if isinstance(v, str):
            return _INPUT_KIND_ALIASES.get(v, v)
        return v

    @property
    def is_choice(self) -> bool:
        return self.input_kind in CHOICE_INPUT_KINDS


class Node(BaseModel):
    """
    Graph node: one screen (or one automatic step) of the flow.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, max_length=128)
    kind: NodeKind
    label: Optional[str] = Field(None, max_length=256)
    question: Optional[QuestionSpec] = Field(None, description="Input definition (question nodes only)")
    data: Dict[str, Any] = Field(default_factory=dict, description="Free-form authoring payload")

    @model_validator(mode='before')
    @classmethod
    def accept_editor_shape(cls, data):
        """
        Accept the editor document shape:
        `{id, type, data: {label, inputType, options, required, placeholder, ...}}`
        """
        if not isinstance(data, dict):
            return data

        data = dict(data)
        if 'kind' not in data:
            data['kind'] = data.pop('type', None)
        if isinstance(data['kind'], str):
            data['kind'] = _NODE_KIND_ALIASES.get(data['kind'], data['kind'])

        payload = data.get('data') or {}
        if not isinstance(payload, dict):
            # Leave it for field validation to reject
            return data
        payload = dict(payload)
        if 'label' not in data and 'label' in payload:
            data['label'] = payload.pop('label')

        if data['kind'] == 'question' and data.get('question') is None:
            question = {}
            for src, dst in (('inputType', 'input_kind'), ('options', 'options'),
                             ('required', 'required'), ('placeholder', 'placeholder')):
                if src in payload:
                    question[dst] = payload.pop(src)
            data['question'] = question

        data['data'] = payload
        return data

    @property
    def display_label(self) -> str:
        return self.label or self.id

    @property
    def is_interactive(self) -> bool:
        return self.kind in INTERACTIVE_KINDS


# ============================================================================
# Edge Structure
# ============================================================================

class Edge(BaseModel):
    """
    Directed, guarded transition between two nodes.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, max_length=128)
    source: str = Field(..., min_length=1, description="Source node id")
    target: str = Field(..., min_length=1, description="Target node id")
    condition: Condition = Field(default_factory=AlwaysCondition)
    label: Optional[str] = Field(None, max_length=256)

    @field_validator('condition', mode='before')
    @classmethod
    def missing_condition_is_always(cls, v):
        """Editor documents store `null` for unconditional edges."""
        if v is None:
            return AlwaysCondition()
        return v


# ============================================================================
# Graph Structure
# ============================================================================

class Graph(BaseModel):
    """Complete branching flow: nodes plus ordered, guarded edges."""
    model_config = ConfigDict(frozen=True)

    nodes: Tuple[Node, ...] = ()
    edges: Tuple[Edge, ...] = ()

    _nodes_by_id: Dict[str, Node] = PrivateAttr(default_factory=dict)
    _outgoing: Dict[str, Tuple[Edge, ...]] = PrivateAttr(default_factory=dict)
    _incoming: Dict[str, Tuple[Edge, ...]] = PrivateAttr(default_factory=dict)

    @field_validator('nodes')
    @classmethod
    def unique_node_ids(cls, nodes):
        seen = set()
        for node in nodes:
            if node.id in seen:
                raise ValueError(f"Duplicate node id '{node.id}'")
            seen.add(node.id)
        return nodes

    @field_validator('edges')
    @classmethod
    def unique_edge_ids(cls, edges):
        seen = set()
        for edge in edges:
            if edge.id in seen:
                raise ValueError(f"Duplicate edge id '{edge.id}'")
            seen.add(edge.id)
        return edges

    def model_post_init(self, context: Any) -> None:
        # Precomputed lookups; outgoing/incoming keep authored edge order
        outgoing: Dict[str, List[Edge]] = {}
        incoming: Dict[str, List[Edge]] = {}
        for edge in self.edges:
            outgoing.setdefault(edge.source, []).append(edge)
            incoming.setdefault(edge.target, []).append(edge)
        self._nodes_by_id = {node.id: node for node in self.nodes}
        self._outgoing = {k: tuple(v) for k, v in outgoing.items()}
        self._incoming = {k: tuple(v) for k, v in incoming.items()}

    def get_node_by_id(self, node_id: str) -> Optional[Node]:
        return self._nodes_by_id.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes_by_id

    def get_edge_by_id(self, edge_id: str) -> Optional[Edge]:
        """Get edge by id or by its `source->target` string."""
        for edge in self.edges:
            if edge.id == edge_id or f"{edge.source}->{edge.target}" == edge_id:
                return edge
        return None

    def get_outgoing_edges(self, node_id: str) -> Tuple[Edge, ...]:
        """Edges leaving a node, in authored order."""
        return self._outgoing.get(node_id, ())

    def get_incoming_edges(self, node_id: str) -> Tuple[Edge, ...]:
        return self._incoming.get(node_id, ())

    def start_nodes(self) -> List[Node]:
        return [n for n in self.nodes if n.kind == 'start']

    def end_nodes(self) -> List[Node]:
        return [n for n in self.nodes if n.kind == 'end']

    def get_start_node(self) -> Optional[Node]:
        """First start node, or None."""
        starts = self.start_nodes()
        return starts[0] if starts else None

    def has_valid_start(self) -> bool:
        return len(self.start_nodes()) == 1

    # ------------------------------------------------------------------
    # Snapshot editing (each returns a new Graph)
    # ------------------------------------------------------------------

    def with_node(self, node: Node) -> "Graph":
        """Add a node, or replace the node with the same id in place."""
        if self.has_node(node.id):
            nodes = tuple(node if n.id == node.id else n for n in self.nodes)
        else:
            nodes = self.nodes + (node,)
        return Graph(nodes=nodes, edges=self.edges)

    def without_node(self, node_id: str) -> "Graph":
        """Remove a node and every edge touching it."""
        return Graph(
            nodes=tuple(n for n in self.nodes if n.id != node_id),
            edges=tuple(e for e in self.edges if e.source != node_id and e.target != node_id),
        )

    def with_edge(self, edge: Edge) -> "Graph":
        """Append an edge, or replace the edge with the same id in place."""
        if any(e.id == edge.id for e in self.edges):
            edges = tuple(edge if e.id == edge.id else e for e in self.edges)
        else:
            edges = self.edges + (edge,)
        return Graph(nodes=self.nodes, edges=edges)

    def without_edge(self, edge_id: str) -> "Graph":
        return Graph(nodes=self.nodes, edges=tuple(e for e in self.edges if e.id != edge_id))


# ============================================================================
# Recorded Paths
# ============================================================================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PathEntry(BaseModel):
    """One recorded step of a respondent's path."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    node_id: str = Field(..., alias='nodeId', min_length=1)
    answer: UserAnswer = Field(default_factory=AbsentAnswer)
    timestamp: datetime = Field(default_factory=_utcnow)

    @field_validator('answer', mode='before')
    @classmethod
    def coerce_raw_answer(cls, v):
        """Accept raw stored values (str, number, list, None) as well as tagged ones."""
        if isinstance(v, dict):
            return v
        try:
            return coerce_answer(v)
        except TypeError as e:
            raise ValueError(str(e)) from e


class Submission(BaseModel):
    """A finalized respondent path."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: Tuple[PathEntry, ...]
    completed_at: datetime = Field(default_factory=_utcnow, alias='completedAt')
