from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trainerflow.domain.graph import FlowStatus
from trainerflow.models.base import utcnow
from trainerflow.models.trainer_flow import TrainerFlow


async def create_trainer_flow(
    session: AsyncSession,
    *,
    trainer_id: str,
    name: str,
    nodes: list[dict[str, Any]],
    edges: list[dict[str, Any]],
    settings: dict[str, Any],
    flow_metadata: dict[str, Any],
    version: str = "1.0.0",
) -> TrainerFlow:
    flow = TrainerFlow(
        trainer_id=trainer_id,
        name=name,
        version=version,
        status=FlowStatus.draft,
        nodes=nodes,
        edges=edges,
        settings=settings,
        flow_metadata=flow_metadata,
    )
    session.add(flow)
    await session.commit()
    await session.refresh(flow)
    return flow


async def get_trainer_flow(session: AsyncSession, flow_id: int) -> TrainerFlow | None:
    return await session.get(TrainerFlow, flow_id)


async def list_trainer_flows(
    session: AsyncSession, trainer_id: str
) -> Sequence[TrainerFlow]:
    stmt = (
        select(TrainerFlow)
        .where(TrainerFlow.trainer_id == trainer_id)
        .order_by(TrainerFlow.created_at.desc(), TrainerFlow.id.desc())
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def get_latest_trainer_flow(
    session: AsyncSession, trainer_id: str, status: FlowStatus | None = None
) -> TrainerFlow | None:
    stmt = select(TrainerFlow).where(TrainerFlow.trainer_id == trainer_id)
    if status is not None:
        stmt = stmt.where(TrainerFlow.status == status)
    stmt = stmt.order_by(TrainerFlow.created_at.desc(), TrainerFlow.id.desc()).limit(1)
    result = await session.execute(stmt)
    return result.scalars().first()


async def update_trainer_flow(
    session: AsyncSession, flow: TrainerFlow, **fields: Any
) -> TrainerFlow:
    for key, value in fields.items():
        setattr(flow, key, value)
    await session.commit()
    await session.refresh(flow)
    return flow


async def publish_trainer_flow(
    session: AsyncSession, flow: TrainerFlow, published_by: str | None = None
) -> TrainerFlow:
    """
    Demote every sibling and promote ``flow`` in a single transaction.
    The trainer's rows are locked first so two concurrent publishes for the
    same trainer cannot interleave.
    """
    await session.execute(
        select(TrainerFlow.id)
        .where(TrainerFlow.trainer_id == flow.trainer_id)
        .with_for_update()
    )
    await session.execute(
        update(TrainerFlow)
        .where(TrainerFlow.trainer_id == flow.trainer_id, TrainerFlow.id != flow.id)
        .values(status=FlowStatus.draft)
    )
    flow.status = FlowStatus.published
    flow.published_at = utcnow()
    flow.published_by = published_by
    await session.commit()
    await session.refresh(flow)
    return flow


async def unpublish_trainer_flow(session: AsyncSession, flow: TrainerFlow) -> TrainerFlow:
    flow.status = FlowStatus.draft
    flow.published_at = None
    flow.published_by = None
    await session.commit()
    await session.refresh(flow)
    return flow


async def delete_trainer_flow(session: AsyncSession, flow: TrainerFlow) -> None:
    await session.delete(flow)
    await session.commit()
