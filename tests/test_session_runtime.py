"""Tests for the turn-by-turn session runtime."""

import pytest

from trainerflow.core.errors import NotFound
from trainerflow.domain.graph import FlowGraph
from trainerflow.domain.session import Sender, SessionStatus
from trainerflow.services.session_runtime import node_text, select_edge


def test_start_posts_the_start_message(runtime, training_graph):
    state = runtime.start("trainer-1", training_graph, flow_id=7, user_id="u1")

    assert state.status == SessionStatus.active
    assert state.progress.current_node == "n1"
    assert state.flow_id == 7
    assert len(state.conversation) == 1
    first = state.conversation[0]
    assert (first.sender, first.content, first.node_id) == (Sender.ai, "Hello", "n1")


def test_start_on_an_empty_flow_fails(runtime):
    with pytest.raises(NotFound):
        runtime.start("trainer-1", FlowGraph())


def test_full_walk_to_the_end_node(runtime, training_graph):
    state = runtime.start("trainer-1", training_graph)

    assert runtime.advance(state, training_graph, "ok").ai_message.content == "Intro"
    assert (
        runtime.advance(state, training_graph, "next").ai_message.content
        == "Do you understand?"
    )
    result = runtime.advance(state, training_graph, "Yes I agree")

    assert result.ai_message.content == "Done!"
    assert result.status == SessionStatus.completed
    assert state.ended_at is not None
    progress = state.progress
    assert progress.current_node == "n5"
    assert progress.completed_nodes == ["n1", "n2", "n3", "n5"]
    assert progress.attempts == 3
    assert (progress.total_questions, progress.correct_answers) == (1, 1)
    assert progress.score == 100
    assert progress.completion_percentage == 100
    assert [m.sender for m in state.conversation] == [
        Sender.ai,
        Sender.user,
        Sender.ai,
        Sender.user,
        Sender.ai,
        Sender.user,
        Sender.ai,
    ]


def test_keyword_match_takes_the_matching_branch(runtime, training_graph):
    state = runtime.start("trainer-1", training_graph)
    state.progress.current_node = "n3"

    result = runtime.advance(state, training_graph, "NO, not really")

    assert result.ai_message.node_id == "n4"
    assert state.progress.correct_answers == 1


def test_unmatched_answer_falls_back_to_first_edge(runtime, training_graph):
    state = runtime.start("trainer-1", training_graph)
    state.progress.current_node = "n3"

    result = runtime.advance(state, training_graph, "maybe")

    assert result.ai_message.node_id == "n5"
    assert [m.content for m in state.conversation[-3:]] == [
        "maybe",
        "Please answer yes or no.",
        "Done!",
    ]
    assert (state.progress.total_questions, state.progress.correct_answers) == (1, 0)
    assert state.progress.score == 0


def test_decision_branch_by_choice_key(runtime, graph_factory):
    graph = graph_factory(
        [
            {"id": "s", "type": "start", "data": {"messages": ["Pick one"]}},
            {"id": "d", "type": "decision", "data": {"choices": ["Option A", "Option B"]}},
            {"id": "a", "type": "text", "data": {"messages": ["You chose A"]}},
            {"id": "b", "type": "text", "data": {"messages": ["You chose B"]}},
        ],
        [
            {"id": "e1", "from": "s", "to": "d"},
            {"id": "e2", "from": "d", "to": "a", "condition": {"type": "decision", "choiceKey": "Option A"}},
            {"id": "e3", "from": "d", "to": "b", "condition": {"type": "decision", "choiceKey": "Option B"}},
        ],
    )
    state = runtime.start("trainer-1", graph)
    runtime.advance(state, graph, "go")

    result = runtime.advance(state, graph, "  option b ")

    assert result.ai_message.content == "You chose B"


def test_dead_end_completes_and_later_turns_change_nothing(runtime, graph_factory):
    graph = graph_factory(
        [
            {"id": "s", "type": "start", "data": {"messages": ["Hi"]}},
            {"id": "t", "type": "text", "data": {"messages": ["Stuck here"]}},
        ],
        [{"id": "e1", "from": "s", "to": "t"}],
    )
    state = runtime.start("trainer-1", graph)
    runtime.advance(state, graph, "hello")

    result = runtime.advance(state, graph, "again")

    assert result.status == SessionStatus.completed
    assert result.ai_message.content == "Session completed."
    assert state.progress.current_node == "t"

    snapshot = state.model_dump()
    late = runtime.advance(state, graph, "anyone there?")
    assert late.status == SessionStatus.completed
    assert late.ai_message.content == "Session completed."
    assert state.model_dump() == snapshot


def test_dangling_edge_terminates_the_session(runtime, graph_factory):
    graph = graph_factory(
        [{"id": "s", "type": "start", "data": {"messages": ["Hi"]}}],
        [{"id": "e1", "from": "s", "to": "ghost"}],
    )
    state = runtime.start("trainer-1", graph)

    result = runtime.advance(state, graph, "hello")

    assert result.status == SessionStatus.completed
    assert result.ai_message.node_id == "s"
    assert state.progress.current_node == "s"


def test_start_on_end_node_is_immediately_complete(runtime, graph_factory):
    graph = graph_factory([{"id": "e", "type": "end", "data": {"messages": ["Bye"]}}], [])
    state = runtime.start("trainer-1", graph)
    assert state.status == SessionStatus.completed
    assert state.conversation[0].content == "Bye"


def test_media_nodes_carry_their_url(runtime, graph_factory):
    graph = graph_factory(
        [
            {"id": "s", "type": "start"},
            {"id": "i", "type": "image", "label": "Diagram", "data": {"mediaUrl": "https://cdn/d.png"}},
        ],
        [{"id": "e1", "from": "s", "to": "i"}],
    )
    state = runtime.start("trainer-1", graph)

    result = runtime.advance(state, graph, "show me")

    assert result.ai_message.media_url == "https://cdn/d.png"
    assert result.ai_message.content == "Diagram"


def test_advance_does_not_touch_the_flow(runtime, training_graph):
    before = training_graph.model_dump()
    state = runtime.start("trainer-1", training_graph)
    for text in ("ok", "next", "no", "fine"):
        runtime.advance(state, training_graph, text)
    assert training_graph.model_dump() == before
    assert state.is_completed


def test_complete_closes_an_active_session(runtime, training_graph):
    state = runtime.start("trainer-1", training_graph)
    runtime.complete(state)
    assert state.status == SessionStatus.completed
    assert state.ended_at is not None
    assert state.progress.completion_percentage == 100
    ended_at = state.ended_at
    runtime.complete(state)
    assert state.ended_at == ended_at


def test_partial_progress_percentage(runtime, training_graph):
    state = runtime.start("trainer-1", training_graph)
    runtime.advance(state, training_graph, "ok")
    # n1 done out of five nodes
    assert state.progress.completion_percentage == 20


class TestNodeText:
    def test_fallback_chain(self, graph_factory):
        graph = graph_factory(
            [
                {"id": "a", "type": "text", "data": {"messages": ["One", "Two"]}},
                {"id": "b", "type": "text", "label": "Label only"},
                {"id": "c", "type": "text"},
            ],
            [],
        )
        assert [node_text(n) for n in graph.nodes] == ["One", "Label only", "..."]


class TestSelectEdge:
    def test_first_matching_edge_wins(self, training_graph):
        candidates = training_graph.outgoing_edges("n3")
        edge, matched = select_edge(candidates, "yes and no")
        assert (edge.id, matched) == ("e3", True)

    def test_blank_keywords_never_match(self, graph_factory):
        graph = graph_factory(
            [{"id": "a", "type": "question"}, {"id": "b", "type": "end"}, {"id": "c", "type": "end"}],
            [
                {"id": "x", "from": "a", "to": "b", "condition": {"type": "question", "keywords": ["  "]}},
                {"id": "y", "from": "a", "to": "c", "condition": {"type": "question", "keywords": ["go"]}},
            ],
        )
        edge, matched = select_edge(graph.outgoing_edges("a"), "let's go")
        assert (edge.id, matched) == ("y", True)

    def test_no_match_returns_first_candidate(self, training_graph):
        edge, matched = select_edge(training_graph.outgoing_edges("n3"), "")
        assert (edge.id, matched) == ("e3", False)


class TestUserResponses:
    def test_each_answer_is_logged(self, runtime, training_graph):
        state = runtime.start("trainer-1", training_graph)
        state.progress.current_node = "n3"

        runtime.advance(state, training_graph, "no idea")

        (response,) = state.user_responses
        assert response.node_id == "n3"
        assert response.question == "Do you understand?"
        assert response.answer == "no idea"
        assert response.is_correct is True

    def test_unmatched_answer_is_logged_as_incorrect(self, runtime, training_graph):
        state = runtime.start("trainer-1", training_graph)
        state.progress.current_node = "n3"

        runtime.advance(state, training_graph, "maybe")

        assert [r.is_correct for r in state.user_responses] == [False]

    def test_non_question_nodes_log_nothing(self, runtime, training_graph):
        state = runtime.start("trainer-1", training_graph)
        runtime.advance(state, training_graph, "ok")
        assert state.user_responses == []


class TestDurationAndSummary:
    def test_duration_is_set_on_close(self, runtime, training_graph):
        state = runtime.start("trainer-1", training_graph)
        assert state.duration == 0

        runtime.complete(state)

        assert state.duration == int((state.ended_at - state.started_at).total_seconds())
        assert state.duration > 0

    def test_naive_start_time_is_treated_as_utc(self, runtime, training_graph):
        state = runtime.start("trainer-1", training_graph)
        state.started_at = state.started_at.replace(tzinfo=None)

        runtime.complete(state)

        assert state.duration > 0

    def test_summary_projection(self, runtime, training_graph):
        state = runtime.start("trainer-1", training_graph)
        for text in ("ok", "next", "yes"):
            runtime.advance(state, training_graph, text)

        summary = state.summary

        assert summary.session_id == state.session_id
        assert summary.status == SessionStatus.completed
        assert summary.score == 100
        assert summary.completion_percentage == 100
        assert summary.total_interactions == 7
        assert summary.duration == state.duration
        assert "summary" in state.model_dump(by_alias=True)
