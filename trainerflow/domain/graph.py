"""
Flow document model.

A flow is a directed graph of conversational steps (nodes) joined by
conditional transitions (edges). Every model here is frozen: editing a graph
goes through the copy-on-write helpers on ``FlowGraph``, each of which returns
a new graph and leaves the original untouched.

Field names are snake_case in Python and camelCase on the wire, except the
edge endpoints which keep their historical ``from`` / ``to`` keys.
"""

from __future__ import annotations

import enum
import math
from collections.abc import Iterable, Sequence
from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter, computed_field, model_validator

from trainerflow.core.errors import Conflict, NotFound
from trainerflow.domain.base import FrozenCamelModel
from trainerflow.domain.ids import IdFactory, uuid_ids


class FlowStatus(str, enum.Enum):
    draft = "draft"
    published = "published"


NodeType = Literal[
    "start",
    "text",
    "image",
    "audio",
    "video",
    "question",
    "decision",
    "feedback",
    "assessment",
    "end",
]

MEDIA_NODE_TYPES = frozenset({"image", "audio", "video"})


# ---------------------------------------------------------------------------
# Node payloads, one variant per node type
# ---------------------------------------------------------------------------


class ContentData(FrozenCamelModel):
    messages: tuple[str, ...] = ()
    # Legacy single-string content; split into ``messages`` on load.
    text_draft: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _split_text_draft(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        messages = values.get("messages")
        if isinstance(messages, str):
            messages = [messages]
        draft = values.get("textDraft", values.get("text_draft"))
        if not messages and isinstance(draft, str):
            messages = [line.strip() for line in draft.splitlines() if line.strip()]
        if messages is not None:
            values = {**values, "messages": messages}
        return values


class MediaData(ContentData):
    media_url: str | None = None


class QuestionData(ContentData):
    keywords: tuple[str, ...] = ()
    choices: tuple[str, ...] = ()
    error_message: str | None = None


class DecisionData(ContentData):
    choices: tuple[str, ...] = ()


class AssessmentData(ContentData):
    passing_score: int | None = Field(default=None, ge=0, le=100)
    # minutes
    time_limit: int | None = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


class _NodeBase(FrozenCamelModel):
    id: str = Field(min_length=1)
    label: str = ""
    # Geometry is editor-only.
    x: float = 0
    y: float = 0
    w: float = 200
    h: float = 100

    @model_validator(mode="before")
    @classmethod
    def _drop_null_data(cls, values: Any) -> Any:
        if isinstance(values, dict) and values.get("data", ...) is None:
            values = {k: v for k, v in values.items() if k != "data"}
        return values

    @property
    def display_name(self) -> str:
        return self.label or self.id


class StartNode(_NodeBase):
    type: Literal["start"] = "start"
    data: ContentData = Field(default_factory=ContentData)


class TextNode(_NodeBase):
    type: Literal["text"] = "text"
    data: ContentData = Field(default_factory=ContentData)


class MediaNode(_NodeBase):
    type: Literal["image", "audio", "video"]
    data: MediaData = Field(default_factory=MediaData)


class QuestionNode(_NodeBase):
    type: Literal["question"] = "question"
    data: QuestionData = Field(default_factory=QuestionData)


class DecisionNode(_NodeBase):
    type: Literal["decision"] = "decision"
    data: DecisionData = Field(default_factory=DecisionData)


class FeedbackNode(_NodeBase):
    type: Literal["feedback"] = "feedback"
    data: ContentData = Field(default_factory=ContentData)


class AssessmentNode(_NodeBase):
    type: Literal["assessment"] = "assessment"
    data: AssessmentData = Field(default_factory=AssessmentData)


class EndNode(_NodeBase):
    type: Literal["end"] = "end"
    data: ContentData = Field(default_factory=ContentData)


Node = Annotated[
    Union[
        StartNode,
        TextNode,
        MediaNode,
        QuestionNode,
        DecisionNode,
        FeedbackNode,
        AssessmentNode,
        EndNode,
    ],
    Field(discriminator="type"),
]

_node_adapter: TypeAdapter[Node] = TypeAdapter(Node)


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------


class AutoCondition(FrozenCamelModel):
    type: Literal["auto"] = "auto"


class DecisionCondition(FrozenCamelModel):
    type: Literal["decision"] = "decision"
    choice_key: str | None = None


class QuestionCondition(FrozenCamelModel):
    type: Literal["question"] = "question"
    keywords: tuple[str, ...] = ()


EdgeCondition = Annotated[
    Union[AutoCondition, DecisionCondition, QuestionCondition],
    Field(discriminator="type"),
]


def _infer_condition(raw: dict[str, Any]) -> dict[str, Any]:
    # Older drafts stored conditions without a type tag.
    if raw.get("keywords"):
        return {**raw, "type": "question"}
    if raw.get("choiceKey") or raw.get("choice_key"):
        return {**raw, "type": "decision"}
    return {"type": "auto"}


class Edge(FrozenCamelModel):
    id: str = Field(min_length=1)
    source: str = Field(alias="from")
    target: str = Field(alias="to")
    label: str | None = None
    condition: EdgeCondition = Field(default_factory=AutoCondition)
    comment: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_condition(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        condition = values.get("condition")
        if condition is None:
            return {**values, "condition": {"type": "auto"}}
        if isinstance(condition, dict) and "type" not in condition:
            return {**values, "condition": _infer_condition(condition)}
        return values


# ---------------------------------------------------------------------------
# Flow
# ---------------------------------------------------------------------------


class FlowSettings(FrozenCamelModel):
    start_node: str | None = None
    end_nodes: tuple[str, ...] = ()
    max_depth: int = Field(default=10, ge=1)
    allow_loops: bool = False


class FlowMetadata(FrozenCamelModel):
    total_nodes: int = 0
    total_edges: int = 0
    complexity: Literal["low", "medium", "high"] = "low"
    # minutes
    estimated_duration: int = 0


def compute_metadata(nodes: Sequence[Any], edges: Sequence[Any]) -> FlowMetadata:
    total_nodes = len(nodes)
    return FlowMetadata(
        total_nodes=total_nodes,
        total_edges=len(edges),
        complexity="medium" if total_nodes > 10 else "low",
        estimated_duration=math.ceil(total_nodes * 2),
    )


class FlowGraph(FrozenCamelModel):
    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()
    settings: FlowSettings = Field(default_factory=FlowSettings)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def metadata(self) -> FlowMetadata:
        return compute_metadata(self.nodes, self.edges)

    # -- queries ----------------------------------------------------------

    def node_by_id(self, node_id: str | None) -> Node | None:
        if node_id is None:
            return None
        return next((n for n in self.nodes if n.id == node_id), None)

    def edge_by_id(self, edge_id: str) -> Edge | None:
        return next((e for e in self.edges if e.id == edge_id), None)

    def start_node(self) -> Node | None:
        """settings.startNode, else the node typed ``start``, else the first node."""
        configured = self.node_by_id(self.settings.start_node)
        if configured is not None:
            return configured
        for node in self.nodes:
            if node.type == "start":
                return node
        return self.nodes[0] if self.nodes else None

    def end_nodes(self) -> list[Node]:
        return [n for n in self.nodes if n.type == "end"]

    def outgoing_edges(self, node_id: str | None) -> list[Edge]:
        return [e for e in self.edges if e.source == node_id]

    def incoming_edges(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.target == node_id]

    # -- copy-on-write edits ----------------------------------------------

    def add_node(self, node: Node) -> FlowGraph:
        if self.node_by_id(node.id) is not None:
            raise Conflict(f"Node id {node.id!r} already exists")
        return self.model_copy(update={"nodes": (*self.nodes, node)})

    def remove_node(self, node_id: str) -> FlowGraph:
        """Drop a node together with every edge touching it."""
        self._require_node(node_id)
        return self.model_copy(
            update={
                "nodes": tuple(n for n in self.nodes if n.id != node_id),
                "edges": tuple(
                    e for e in self.edges if node_id not in (e.source, e.target)
                ),
            }
        )

    def relabel_node(self, node_id: str, label: str) -> FlowGraph:
        node = self._require_node(node_id)
        return self._swap_node(node.model_copy(update={"label": label}))

    def update_node_data(self, node_id: str, **changes: Any) -> FlowGraph:
        node = self._require_node(node_id)
        data = type(node.data).model_validate({**node.data.model_dump(), **changes})
        return self._swap_node(node.model_copy(update={"data": data}))

    def add_edge(self, edge: Edge) -> FlowGraph:
        if self.edge_by_id(edge.id) is not None:
            raise Conflict(f"Edge id {edge.id!r} already exists")
        return self.model_copy(update={"edges": (*self.edges, edge)})

    def remove_edge(self, edge_id: str) -> FlowGraph:
        self._require_edge(edge_id)
        return self.model_copy(
            update={"edges": tuple(e for e in self.edges if e.id != edge_id)}
        )

    def update_edge(self, edge_id: str, **changes: Any) -> FlowGraph:
        edge = self._require_edge(edge_id)
        updated = Edge.model_validate({**edge.model_dump(), **changes})
        return self.model_copy(
            update={
                "edges": tuple(updated if e.id == edge_id else e for e in self.edges)
            }
        )

    def _require_node(self, node_id: str) -> Node:
        node = self.node_by_id(node_id)
        if node is None:
            raise NotFound(f"Node {node_id!r} not found")
        return node

    def _require_edge(self, edge_id: str) -> Edge:
        edge = self.edge_by_id(edge_id)
        if edge is None:
            raise NotFound(f"Edge {edge_id!r} not found")
        return edge

    def _swap_node(self, node: Node) -> FlowGraph:
        return self.model_copy(
            update={"nodes": tuple(node if n.id == node.id else n for n in self.nodes)}
        )


class FlowDocument(FlowGraph):
    """A flow as exchanged with editors and stored by the document store."""

    name: str = Field(default="Untitled flow", min_length=1, max_length=100)
    version: str = "1.0.0"
    status: FlowStatus = FlowStatus.draft


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------


def new_node(
    node_type: str,
    label: str,
    *,
    id_factory: IdFactory = uuid_ids,
    data: dict[str, Any] | None = None,
    x: float = 0,
    y: float = 0,
    w: float = 200,
    h: float = 100,
) -> Node:
    return _node_adapter.validate_python(
        {
            "id": id_factory("n"),
            "type": node_type,
            "label": label,
            "x": x,
            "y": y,
            "w": w,
            "h": h,
            "data": data or {},
        }
    )


def new_edge(
    source: str,
    target: str,
    *,
    id_factory: IdFactory = uuid_ids,
    label: str | None = None,
    condition: AutoCondition | DecisionCondition | QuestionCondition | None = None,
    comment: str | None = None,
) -> Edge:
    return Edge(
        id=id_factory("e"),
        source=source,
        target=target,
        label=label,
        condition=condition or AutoCondition(),
        comment=comment,
    )


def parse_nodes(raw: Iterable[Any]) -> tuple[Node, ...]:
    return tuple(_node_adapter.validate_python(n) for n in raw)


def parse_edges(raw: Iterable[Any]) -> tuple[Edge, ...]:
    return tuple(Edge.model_validate(e) for e in raw)
