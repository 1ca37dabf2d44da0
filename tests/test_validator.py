"""Tests for structural flow validation."""

from trainerflow.domain.graph import FlowDocument
from trainerflow.domain.validator import validate_flow


def _check(graph):
    return validate_flow(graph.nodes, graph.edges)


def test_valid_flow(training_graph):
    result = _check(training_graph)
    assert result.is_valid
    assert result.errors == ()
    assert result.warnings == ()
    summary = result.summary
    assert (summary.total_nodes, summary.total_edges) == (5, 5)
    assert (summary.start_nodes, summary.end_nodes) == (1, 1)
    assert (summary.orphaned_nodes, summary.invalid_edges) == (0, 0)


def test_empty_flow_reports_every_missing_piece():
    result = validate_flow([], [])
    assert not result.is_valid
    assert "Flow must have at least one node" in result.errors
    assert "Flow must have at least one edge" in result.errors
    assert "Flow must have exactly one start node" in result.errors
    assert "Flow must have at least one end node" in result.errors


def test_two_start_nodes(graph_factory):
    graph = graph_factory(
        [
            {"id": "s1", "type": "start"},
            {"id": "s2", "type": "start"},
            {"id": "e", "type": "end"},
        ],
        [{"id": "a", "from": "s1", "to": "e"}, {"id": "b", "from": "s2", "to": "e"}],
    )
    result = _check(graph)
    assert "Flow can only have one start node" in result.errors
    assert result.summary.start_nodes == 2


def test_missing_end_node(graph_factory):
    graph = graph_factory(
        [{"id": "s", "type": "start"}, {"id": "t", "type": "text"}],
        [{"id": "a", "from": "s", "to": "t"}],
    )
    assert "Flow must have at least one end node" in _check(graph).errors


def test_orphaned_node_is_reported_by_label(training_graph):
    graph = training_graph.add_node(
        FlowDocument.model_validate(
            {"nodes": [{"id": "n9", "type": "text", "label": "Lonely"}]}
        ).nodes[0]
    )
    result = _check(graph)
    assert not result.is_valid
    assert 'Node "Lonely" is not connected to the flow' in result.errors
    assert result.orphaned_node_ids == ("n9",)
    assert result.summary.orphaned_nodes == 1


def test_dangling_edges(training_graph):
    graph = training_graph.model_copy(
        update={
            "edges": (
                *training_graph.edges,
                *FlowDocument.model_validate(
                    {"edges": [{"id": "e9", "from": "n1", "to": "ghost"}]}
                ).edges,
            )
        }
    )
    result = _check(graph)
    assert 'Edge "e9" references non-existent target node: ghost' in result.errors
    assert result.invalid_edge_ids == ("e9",)
    assert result.summary.invalid_edges == 1


def test_dangling_source(graph_factory):
    graph = graph_factory(
        [{"id": "s", "type": "start"}, {"id": "e", "type": "end"}],
        [{"id": "a", "from": "s", "to": "e"}, {"id": "b", "from": "nowhere", "to": "e"}],
    )
    result = _check(graph)
    assert 'Edge "b" references non-existent source node: nowhere' in result.errors


def test_decision_needs_two_choices(graph_factory):
    graph = graph_factory(
        [
            {"id": "s", "type": "start"},
            {"id": "d", "type": "decision", "label": "Pick", "data": {"choices": ["A"]}},
            {"id": "e", "type": "end"},
        ],
        [{"id": "a", "from": "s", "to": "d"}, {"id": "b", "from": "d", "to": "e"}],
    )
    result = _check(graph)
    assert 'Decision node "Pick" must have at least 2 choices' in result.errors


def test_question_without_keywords_is_only_a_warning(training_graph):
    graph = training_graph.update_node_data("n3", keywords=())
    result = _check(graph)
    assert result.is_valid
    assert result.warnings == (
        'Question node "Check" should have keywords for better matching',
    )


def test_cycles_and_self_loops_are_warnings(graph_factory):
    graph = graph_factory(
        [
            {"id": "s", "type": "start"},
            {"id": "t", "type": "text", "label": "Loop"},
            {"id": "e", "type": "end"},
        ],
        [
            {"id": "a", "from": "s", "to": "t"},
            {"id": "b", "from": "t", "to": "t"},
            {"id": "c", "from": "t", "to": "e"},
        ],
    )
    result = _check(graph)
    assert result.is_valid
    assert 'Node "Loop" has a self-loop' in result.warnings
    assert "Flow contains cycles which may cause infinite loops" in result.warnings


def test_duplicate_ids(graph_factory):
    graph = graph_factory(
        [{"id": "s", "type": "start"}, {"id": "s", "type": "end"}],
        [{"id": "a", "from": "s", "to": "s"}, {"id": "a", "from": "s", "to": "s"}],
    )
    result = _check(graph)
    assert "Duplicate node id: s" in result.errors
    assert "Duplicate edge id: a" in result.errors


def test_same_input_gives_same_result(training_graph):
    broken = training_graph.remove_node("n5")
    assert _check(broken) == _check(broken)


def test_result_survives_a_json_round_trip(training_graph):
    broken = training_graph.remove_node("n4")
    restored = FlowDocument.model_validate_json(broken.model_dump_json(by_alias=True))
    assert _check(restored).errors == _check(broken).errors


def test_wire_shape_is_camel_case(training_graph):
    dumped = _check(training_graph).model_dump(by_alias=True)
    assert set(dumped) >= {"isValid", "errors", "warnings", "summary"}
    assert "orphanedNodes" in dumped["summary"]


def test_allow_loops_silences_loop_warnings(graph_factory):
    graph = graph_factory(
        [
            {"id": "s", "type": "start"},
            {"id": "t", "type": "text", "label": "Loop"},
            {"id": "e", "type": "end"},
        ],
        [
            {"id": "a", "from": "s", "to": "t"},
            {"id": "b", "from": "t", "to": "t"},
            {"id": "c", "from": "t", "to": "e"},
        ],
        allowLoops=True,
    )

    allowed = validate_flow(graph.nodes, graph.edges, graph.settings)
    default = validate_flow(graph.nodes, graph.edges)

    assert allowed.warnings == ()
    assert "Flow contains cycles which may cause infinite loops" in default.warnings
    assert allowed.errors == default.errors
