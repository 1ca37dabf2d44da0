from __future__ import annotations

import argparse

from trainerflow.db.session import async_session_maker
from trainerflow.domain.graph import FlowGraph, QuestionCondition, new_edge, new_node
from trainerflow.domain.ids import sequential_ids
from trainerflow.services.flow_lifecycle import FlowLifecycleManager


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Seed a sample training flow for a trainer")
    p.add_argument("--trainer-id", required=True)
    p.add_argument("--name", default="Welcome training")
    p.add_argument("--publish", action="store_true")
    return p.parse_args()


def build_sample_flow() -> FlowGraph:
    ids = sequential_ids()
    start = new_node(
        "start",
        "Start Training",
        id_factory=ids,
        data={"messages": ["Welcome to the training session. Let's begin!"]},
    )
    intro = new_node(
        "text",
        "Introduction",
        id_factory=ids,
        data={"messages": ["Today we cover the basics of handling a customer call."]},
    )
    check = new_node(
        "question",
        "Understanding Check",
        id_factory=ids,
        data={
            "messages": ["Do you understand the content covered so far?"],
            "keywords": ["yes", "no"],
            "errorMessage": "Please answer yes or no.",
        },
    )
    review = new_node(
        "feedback",
        "Review",
        id_factory=ids,
        data={"messages": ["No problem, here is a short recap before we finish."]},
    )
    end = new_node(
        "end",
        "Training Complete",
        id_factory=ids,
        data={"messages": ["Congratulations! You have completed the training session."]},
    )

    graph = FlowGraph()
    for node in (start, intro, check, review, end):
        graph = graph.add_node(node)
    for edge in (
        new_edge(start.id, intro.id, id_factory=ids, label="Next"),
        new_edge(intro.id, check.id, id_factory=ids, label="Check Understanding"),
        new_edge(
            check.id,
            end.id,
            id_factory=ids,
            label="Understood",
            condition=QuestionCondition(keywords=("yes",)),
        ),
        new_edge(
            check.id,
            review.id,
            id_factory=ids,
            label="Needs review",
            condition=QuestionCondition(keywords=("no",)),
        ),
        new_edge(review.id, end.id, id_factory=ids, label="Complete"),
    ):
        graph = graph.add_edge(edge)
    return graph


async def main() -> None:
    args = _parse_args()
    graph = build_sample_flow()

    async with async_session_maker() as session:
        manager = FlowLifecycleManager(session)
        flow = await manager.create_draft(
            args.trainer_id.strip(), args.name.strip(), graph.nodes, graph.edges
        )
        if args.publish:
            flow = await manager.publish(flow.id, published_by="seed")

    print("Flow created")
    print(f"flow_id={flow.id}")
    print(f"status={flow.status.value}")


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
