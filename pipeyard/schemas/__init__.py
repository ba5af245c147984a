"""Pydantic schemas."""

from pipeyard.schemas.logistics import (  # noqa: F401
    LoadProgressSummary,
    LoadSnapshot,
    ProjectView,
    RequestLogisticsSnapshot,
    WorkflowStateResult,
)
from pipeyard.schemas.trucking import (  # noqa: F401
    BookingResult,
    InboundBookingCreate,
    OutboundBookingCreate,
    TimeSlot,
    TruckingLoadResponse,
)
