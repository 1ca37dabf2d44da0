"""
Structural checks for a candidate flow graph.

``validate_flow`` is pure: the live editor and the publish path both call it
and must see the same result for the same graph.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from trainerflow.domain.base import FrozenCamelModel
from trainerflow.domain.graph import Edge, FlowSettings, Node


class ValidationSummary(FrozenCamelModel):
    total_nodes: int
    total_edges: int
    start_nodes: int
    end_nodes: int
    orphaned_nodes: int
    invalid_edges: int


class ValidationResult(FrozenCamelModel):
    is_valid: bool
    errors: tuple[str, ...] = ()
    # Never affect is_valid.
    warnings: tuple[str, ...] = ()
    summary: ValidationSummary
    orphaned_node_ids: tuple[str, ...] = ()
    invalid_edge_ids: tuple[str, ...] = ()


def validate_flow(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    settings: FlowSettings | None = None,
) -> ValidationResult:
    """Self-loop and cycle warnings are skipped when settings.allow_loops is set."""
    errors: list[str] = []
    warnings: list[str] = []
    allow_loops = settings is not None and settings.allow_loops

    if not nodes:
        errors.append("Flow must have at least one node")
    if not edges:
        errors.append("Flow must have at least one edge")

    for node_id, count in Counter(n.id for n in nodes).items():
        if count > 1:
            errors.append(f"Duplicate node id: {node_id}")
    for edge_id, count in Counter(e.id for e in edges).items():
        if count > 1:
            errors.append(f"Duplicate edge id: {edge_id}")

    start_nodes = [n for n in nodes if n.type == "start"]
    if not start_nodes:
        errors.append("Flow must have exactly one start node")
    elif len(start_nodes) > 1:
        errors.append("Flow can only have one start node")

    end_nodes = [n for n in nodes if n.type == "end"]
    if not end_nodes:
        errors.append("Flow must have at least one end node")

    connected: set[str] = set()
    for edge in edges:
        connected.add(edge.source)
        connected.add(edge.target)

    orphaned = [n for n in nodes if n.id not in connected]
    for node in orphaned:
        errors.append(f'Node "{node.display_name}" is not connected to the flow')

    node_ids = {n.id for n in nodes}
    invalid_edges: list[Edge] = []
    for edge in edges:
        dangling = False
        if edge.source not in node_ids:
            errors.append(
                f'Edge "{edge.id}" references non-existent source node: {edge.source}'
            )
            dangling = True
        if edge.target not in node_ids:
            errors.append(
                f'Edge "{edge.id}" references non-existent target node: {edge.target}'
            )
            dangling = True
        if dangling:
            invalid_edges.append(edge)
        elif edge.source == edge.target and not allow_loops:
            label = next(n.display_name for n in nodes if n.id == edge.source)
            warnings.append(f'Node "{label}" has a self-loop')

    for node in nodes:
        if node.type == "decision" and len(node.data.choices) < 2:
            errors.append(
                f'Decision node "{node.display_name}" must have at least 2 choices'
            )
        elif node.type == "question" and not node.data.keywords:
            warnings.append(
                f'Question node "{node.display_name}" should have keywords for better matching'
            )

    if not allow_loops and _has_cycle(node_ids, edges):
        warnings.append("Flow contains cycles which may cause infinite loops")

    return ValidationResult(
        is_valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
        summary=ValidationSummary(
            total_nodes=len(nodes),
            total_edges=len(edges),
            start_nodes=len(start_nodes),
            end_nodes=len(end_nodes),
            orphaned_nodes=len(orphaned),
            invalid_edges=len(invalid_edges),
        ),
        orphaned_node_ids=tuple(n.id for n in orphaned),
        invalid_edge_ids=tuple(e.id for e in invalid_edges),
    )


def _has_cycle(node_ids: set[str], edges: Sequence[Edge]) -> bool:
    """Iterative three-colour DFS over edges whose endpoints both exist."""
    adjacency: dict[str, list[str]] = {node_id: [] for node_id in node_ids}
    for edge in edges:
        if edge.source in node_ids and edge.target in node_ids:
            adjacency[edge.source].append(edge.target)

    done: set[str] = set()
    on_path: set[str] = set()
    for root in sorted(adjacency):
        if root in done:
            continue
        stack = [(root, iter(adjacency[root]))]
        on_path.add(root)
        while stack:
            node_id, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                on_path.discard(node_id)
                done.add(node_id)
            elif child in on_path:
                return True
            elif child not in done:
                on_path.add(child)
                stack.append((child, iter(adjacency[child])))
    return False
