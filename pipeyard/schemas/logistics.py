"""Read-only views consumed by the aggregator and the workflow calculator.

Views are frozen: projections never mutate what they are handed, and the
tuples below are built once from persisted rows.
"""

from datetime import datetime
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

LoadAggregateState = Literal["NONE", "PENDING", "APPROVED", "IN_PROGRESS", "COMPLETED"]
BadgeTone = Literal["pending", "info", "success", "danger", "neutral"]
WorkflowState = Literal[
    "Pending Approval",
    "Waiting on Load #N to MPS",
    "All Loads Received",
    "In Storage",
    "Pending Pickup Request",
    "Pickup Requested",
    "Waiting on Load #N Pickup",
    "Complete",
]


class DocumentSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    file_name: str = ""
    document_type: Optional[str] = None
    parsed_payload: Optional[list] = None


class LoadSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    direction: str
    sequence_number: int
    status: str
    scheduled_slot_start: Optional[datetime] = None
    scheduled_slot_end: Optional[datetime] = None
    total_joints_planned: Optional[int] = None
    total_joints_completed: Optional[int] = None
    total_length_ft_planned: Optional[float] = None
    total_length_ft_completed: Optional[float] = None
    total_weight_lbs_planned: Optional[float] = None
    total_weight_lbs_completed: Optional[float] = None
    documents: Tuple[DocumentSnapshot, ...] = ()


class InventorySummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_joints: int = 0
    total_length_ft: float = 0
    total_weight_lbs: float = 0
    rack_names: Tuple[str, ...] = ()


class ProjectView(BaseModel):
    """A storage request with everything needed to derive its status."""

    model_config = ConfigDict(frozen=True)

    id: str
    reference_id: str
    status: str
    company_name: Optional[str] = None
    total_joints_estimate: Optional[int] = None
    loads: Tuple[LoadSnapshot, ...] = ()
    inventory: InventorySummary = Field(default_factory=InventorySummary)

    @property
    def inbound_loads(self) -> Tuple[LoadSnapshot, ...]:
        return tuple(load for load in self.loads if load.direction == "INBOUND")

    @property
    def outbound_loads(self) -> Tuple[LoadSnapshot, ...]:
        return tuple(load for load in self.loads if load.direction == "OUTBOUND")


class LoadProgressSummary(BaseModel):
    planned_joints: int = 0
    completed_joints: int = 0
    remaining_joints: int = 0


class QuantityTotals(BaseModel):
    planned_joints: int = 0
    completed_joints: int = 0
    planned_length_ft: float = 0
    completed_length_ft: float = 0
    planned_weight_lbs: float = 0
    completed_weight_lbs: float = 0


class RequestLogisticsSnapshot(BaseModel):
    inbound_loads: Tuple[LoadSnapshot, ...]
    outbound_loads: Tuple[LoadSnapshot, ...]
    inbound_state: LoadAggregateState
    outbound_state: LoadAggregateState
    customer_status_label: str
    customer_status_tone: BadgeTone
    inbound_status_label: Optional[str] = None
    outbound_status_label: Optional[str] = None
    inbound_progress: LoadProgressSummary
    outbound_progress: LoadProgressSummary


class WorkflowStateResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: WorkflowState
    label: str
    badge_tone: BadgeTone
    next_action: Optional[str] = None


class WorkflowResponse(BaseModel):
    request_id: str
    reference_id: str
    workflow: WorkflowStateResult
    progress_percent: int
    requires_admin_action: bool
