from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query, Response, status

from trainerflow.api.deps import get_flow_manager
from trainerflow.core.errors import NotFound
from trainerflow.domain.graph import FlowStatus
from trainerflow.domain.validator import ValidationResult, validate_flow
from trainerflow.schemas.flow import (
    FlowCreateRequest,
    FlowOut,
    FlowPublishRequest,
    FlowSummaryOut,
    FlowUpdateRequest,
    FlowValidateRequest,
)
from trainerflow.services.flow_lifecycle import FlowLifecycleManager

router = APIRouter(tags=["flows"])


@router.post("/flows/validate", response_model=ValidationResult)
async def validate(payload: FlowValidateRequest) -> ValidationResult:
    return validate_flow(payload.nodes, payload.edges, payload.settings)


@router.get("/trainers/{trainer_id}/flows", response_model=list[FlowSummaryOut])
async def list_flows(
    trainer_id: str,
    manager: FlowLifecycleManager = Depends(get_flow_manager),
) -> list[FlowSummaryOut]:
    flows = await manager.list_flows(trainer_id)
    return [FlowSummaryOut.from_row(f) for f in flows]


@router.get("/trainers/{trainer_id}/flows/latest", response_model=FlowOut)
async def latest_flow(
    trainer_id: str,
    flow_status: FlowStatus | None = Query(default=None, alias="status"),
    manager: FlowLifecycleManager = Depends(get_flow_manager),
) -> FlowOut:
    flow = await manager.resolve_latest(trainer_id, flow_status)
    if flow is None:
        raise NotFound("No flow found for this trainer")
    return FlowOut.from_row(flow)


@router.post(
    "/trainers/{trainer_id}/flows",
    response_model=FlowOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_flow(
    trainer_id: str,
    payload: FlowCreateRequest,
    manager: FlowLifecycleManager = Depends(get_flow_manager),
) -> FlowOut:
    flow = await manager.create_draft(
        trainer_id, payload.name, payload.nodes, payload.edges, payload.settings
    )
    return FlowOut.from_row(flow)


@router.get("/flows/{flow_id}", response_model=FlowOut)
async def get_flow(
    flow_id: int,
    manager: FlowLifecycleManager = Depends(get_flow_manager),
) -> FlowOut:
    return FlowOut.from_row(await manager.get_flow(flow_id))


@router.put("/flows/{flow_id}", response_model=FlowOut)
async def update_flow(
    flow_id: int,
    payload: FlowUpdateRequest,
    manager: FlowLifecycleManager = Depends(get_flow_manager),
) -> FlowOut:
    flow = await manager.update_draft(
        flow_id,
        name=payload.name,
        version=payload.version,
        nodes=payload.nodes,
        edges=payload.edges,
        settings=payload.settings,
    )
    return FlowOut.from_row(flow)


@router.post("/flows/{flow_id}/publish", response_model=FlowOut)
async def publish_flow(
    flow_id: int,
    payload: FlowPublishRequest | None = Body(default=None),
    manager: FlowLifecycleManager = Depends(get_flow_manager),
) -> FlowOut:
    published_by = payload.published_by if payload else None
    return FlowOut.from_row(await manager.publish(flow_id, published_by))


@router.post("/flows/{flow_id}/unpublish", response_model=FlowOut)
async def unpublish_flow(
    flow_id: int,
    manager: FlowLifecycleManager = Depends(get_flow_manager),
) -> FlowOut:
    return FlowOut.from_row(await manager.unpublish(flow_id))


@router.delete(
    "/flows/{flow_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_flow(
    flow_id: int,
    manager: FlowLifecycleManager = Depends(get_flow_manager),
) -> Response:
    await manager.delete(flow_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
