from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from trainerflow.core.errors import Conflict, NotFound, ValidationFailed
from trainerflow.crud.trainer_flow import (
    create_trainer_flow,
    delete_trainer_flow,
    get_latest_trainer_flow,
    get_trainer_flow,
    list_trainer_flows,
    publish_trainer_flow,
    unpublish_trainer_flow,
    update_trainer_flow,
)
from trainerflow.domain.graph import (
    Edge,
    FlowSettings,
    FlowStatus,
    Node,
    compute_metadata,
)
from trainerflow.domain.validator import validate_flow
from trainerflow.models.trainer_flow import TrainerFlow

logger = logging.getLogger(__name__)


def _dump(items: Sequence[Any]) -> list[dict[str, Any]]:
    return [item.model_dump(mode="json", by_alias=True) for item in items]


class FlowLifecycleManager:
    """Draft / publish rules over the flows owned by one trainer."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_flow(self, flow_id: int) -> TrainerFlow:
        flow = await get_trainer_flow(self._session, flow_id)
        if flow is None:
            raise NotFound("Flow not found")
        return flow

    async def list_flows(self, trainer_id: str) -> Sequence[TrainerFlow]:
        return await list_trainer_flows(self._session, trainer_id)

    async def create_draft(
        self,
        trainer_id: str,
        name: str,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        settings: FlowSettings | None = None,
    ) -> TrainerFlow:
        flow = await create_trainer_flow(
            self._session,
            trainer_id=trainer_id,
            name=name,
            nodes=_dump(nodes),
            edges=_dump(edges),
            settings=(settings or FlowSettings()).model_dump(mode="json", by_alias=True),
            flow_metadata=compute_metadata(nodes, edges).model_dump(
                mode="json", by_alias=True
            ),
        )
        logger.info("Created draft flow %s for trainer %s", flow.id, trainer_id)
        return flow

    async def update_draft(
        self,
        flow_id: int,
        *,
        name: str | None = None,
        version: str | None = None,
        nodes: Sequence[Node] | None = None,
        edges: Sequence[Edge] | None = None,
        settings: FlowSettings | None = None,
    ) -> TrainerFlow:
        flow = await self.get_flow(flow_id)
        if flow.status == FlowStatus.published:
            raise Conflict("Cannot edit a published flow. Unpublish it first.")

        fields: dict[str, Any] = {}
        if name is not None:
            fields["name"] = name
        if version is not None:
            fields["version"] = version
        if settings is not None:
            fields["settings"] = settings.model_dump(mode="json", by_alias=True)
        if nodes is not None:
            fields["nodes"] = _dump(nodes)
        if edges is not None:
            fields["edges"] = _dump(edges)
        if nodes is not None or edges is not None:
            fields["flow_metadata"] = compute_metadata(
                fields.get("nodes", flow.nodes), fields.get("edges", flow.edges)
            ).model_dump(mode="json", by_alias=True)

        if not fields:
            return flow
        return await update_trainer_flow(self._session, flow, **fields)

    async def publish(self, flow_id: int, published_by: str | None = None) -> TrainerFlow:
        flow = await self.get_flow(flow_id)
        document = flow.to_document()
        result = validate_flow(document.nodes, document.edges, document.settings)
        if not result.is_valid:
            raise ValidationFailed(result.errors)

        flow = await publish_trainer_flow(self._session, flow, published_by)
        logger.info(
            "Published flow %s for trainer %s; siblings demoted to draft",
            flow.id,
            flow.trainer_id,
        )
        return flow

    async def unpublish(self, flow_id: int) -> TrainerFlow:
        flow = await self.get_flow(flow_id)
        if flow.status != FlowStatus.published:
            return flow
        flow = await unpublish_trainer_flow(self._session, flow)
        logger.info("Demoted flow %s to draft", flow.id)
        return flow

    async def delete(self, flow_id: int) -> None:
        flow = await self.get_flow(flow_id)
        if flow.status == FlowStatus.published:
            raise Conflict("Cannot delete published flow. Unpublish it first.")
        await delete_trainer_flow(self._session, flow)
        logger.info("Deleted flow %s", flow_id)

    async def resolve_latest(
        self, trainer_id: str, prefer_status: FlowStatus | None = None
    ) -> TrainerFlow | None:
        """
        With ``prefer_status``, the newest flow in that status. Otherwise the
        newest draft, falling back to the newest published flow.
        """
        if prefer_status is not None:
            return await get_latest_trainer_flow(self._session, trainer_id, prefer_status)
        draft = await get_latest_trainer_flow(self._session, trainer_id, FlowStatus.draft)
        if draft is not None:
            return draft
        return await get_latest_trainer_flow(
            self._session, trainer_id, FlowStatus.published
        )
