from datetime import datetime, timedelta
from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from pipeyard.api.deps import get_document_service, get_notifier, http_error
from pipeyard.core.config import get_settings
from pipeyard.core.db import get_db
from pipeyard.core.exceptions import LogisticsError
from pipeyard.schemas.logistics import RequestLogisticsSnapshot, WorkflowResponse
from pipeyard.schemas.trucking import (
    BookingResult,
    InboundBookingCreate,
    LoadStatusUpdate,
    OutboundBookingCreate,
    TimeSlot,
    TruckingLoadResponse,
)
from pipeyard.services.documents import DocumentService
from pipeyard.services.load_lifecycle import LoadLifecycleService
from pipeyard.services.load_sequencer import LoadSequencer
from pipeyard.services.logistics import get_request_logistics_snapshot
from pipeyard.services.notifications import NotificationService
from pipeyard.services.repository import ProjectRepository, TruckingRepository
from pipeyard.services.shipment_provisioning import ShipmentProvisioningService
from pipeyard.services.time_slots import generate_time_slots
from pipeyard.services.workflow_state import (
    calculate_project_progress,
    calculate_workflow_state,
    requires_admin_action,
)

router = APIRouter()


async def _provisioning(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    documents: DocumentService = Depends(get_document_service),
) -> ShipmentProvisioningService:
    return ShipmentProvisioningService(db, notifier=notifier, documents=documents)


async def _lifecycle(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
) -> LoadLifecycleService:
    return LoadLifecycleService(db, notifier=notifier)


async def _projects(db: AsyncSession = Depends(get_db)) -> ProjectRepository:
    return ProjectRepository(db)


@router.get("/requests/{request_id}/loads/next-sequence")
async def next_sequence(
    request_id: str,
    direction: Literal["INBOUND", "OUTBOUND"] = Query("INBOUND"),
    db: AsyncSession = Depends(get_db),
) -> dict:
    try:
        number = await LoadSequencer(db).next_sequence_number(request_id, direction)
    except LogisticsError as exc:
        raise http_error(exc)
    return {"request_id": request_id, "direction": direction, "sequence_number": number}


@router.post(
    "/requests/{request_id}/inbound-loads",
    response_model=BookingResult,
    status_code=status.HTTP_201_CREATED,
)
async def schedule_inbound(
    request_id: str,
    payload: InboundBookingCreate,
    service: ShipmentProvisioningService = Depends(_provisioning),
) -> BookingResult:
    try:
        return await service.schedule_inbound(request_id, payload)
    except LogisticsError as exc:
        raise http_error(exc)


@router.post(
    "/requests/{request_id}/outbound-loads",
    response_model=BookingResult,
    status_code=status.HTTP_201_CREATED,
)
async def schedule_outbound(
    request_id: str,
    payload: OutboundBookingCreate,
    service: ShipmentProvisioningService = Depends(_provisioning),
) -> BookingResult:
    try:
        return await service.schedule_outbound(request_id, payload)
    except LogisticsError as exc:
        raise http_error(exc)


@router.post("/loads/{load_id}/status", response_model=TruckingLoadResponse)
async def update_load_status(
    load_id: str,
    payload: LoadStatusUpdate,
    service: LoadLifecycleService = Depends(_lifecycle),
) -> TruckingLoadResponse:
    try:
        load = await service.transition(load_id, payload)
    except LogisticsError as exc:
        raise http_error(exc)
    return TruckingLoadResponse.model_validate(load)


@router.get("/requests/{request_id}/logistics", response_model=RequestLogisticsSnapshot)
async def request_logistics(
    request_id: str,
    projects: ProjectRepository = Depends(_projects),
) -> RequestLogisticsSnapshot:
    try:
        project = await projects.load_project(request_id)
    except LogisticsError as exc:
        raise http_error(exc)
    return get_request_logistics_snapshot(project)


@router.get("/requests/{request_id}/workflow", response_model=WorkflowResponse)
async def request_workflow(
    request_id: str,
    projects: ProjectRepository = Depends(_projects),
) -> WorkflowResponse:
    try:
        project = await projects.load_project(request_id)
    except LogisticsError as exc:
        raise http_error(exc)
    return WorkflowResponse(
        request_id=project.id,
        reference_id=project.reference_id,
        workflow=calculate_workflow_state(project),
        progress_percent=calculate_project_progress(project),
        requires_admin_action=requires_admin_action(project),
    )


@router.get("/time-slots", response_model=List[TimeSlot])
async def available_time_slots(db: AsyncSession = Depends(get_db)) -> List[TimeSlot]:
    settings = get_settings()
    now = datetime.now()
    horizon = now + timedelta(days=settings.booking_horizon_days + 1)
    try:
        blocked = await TruckingRepository(db).blocked_slot_starts(now, horizon)
    except LogisticsError as exc:
        # Without appointment data every slot looks free; refuse rather than double-book
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message)
    return generate_time_slots(now, blocked, settings)
