from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class TimeSlot(BaseModel):
    start: datetime
    end: datetime
    is_after_hours: bool = False
    surcharge_amount: float = 0


class LoadSummary(BaseModel):
    """Totals computed from a parsed manifest."""
    total_joints: int = 0
    total_length_ft: float = 0
    total_weight_lbs: float = 0


class UploadedDocumentRef(BaseModel):
    """A file the customer already placed in the document store during booking."""
    file_name: str
    storage_path: str
    document_type: Optional[str] = "manifest"


class InboundBookingCreate(BaseModel):
    slot: TimeSlot
    trucking_method: Literal["CUSTOMER_PROVIDED", "MPS_QUOTE"] = "CUSTOMER_PROVIDED"
    trucking_company: str
    driver_name: Optional[str] = None
    driver_phone: Optional[str] = None

    storage_company_name: str
    storage_yard_address: Optional[str] = None
    storage_contact_name: str
    storage_contact_phone: Optional[str] = None
    storage_contact_email: Optional[str] = None

    load_summary: Optional[LoadSummary] = None
    notes: Optional[str] = None
    documents: List[UploadedDocumentRef] = Field(default_factory=list)
    created_by: Optional[str] = None


class OutboundDestination(BaseModel):
    lsd: str = ""
    well_name: Optional[str] = None
    uwi: Optional[str] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    special_instructions: Optional[str] = None


class OutboundBookingCreate(BaseModel):
    slot: TimeSlot
    destination: OutboundDestination
    shipping_method: Literal["CUSTOMER_ARRANGED", "MPS_QUOTE"] = "CUSTOMER_ARRANGED"
    trucking_company: Optional[str] = None
    driver_name: Optional[str] = None
    driver_phone: Optional[str] = None
    created_by: Optional[str] = None


class TruckingDocumentResponse(BaseModel):
    id: str
    trucking_load_id: str
    truck_id: Optional[str] = None
    file_name: str
    storage_path: str
    document_type: Optional[str] = None
    uploaded_by: Optional[str] = None
    parsed_payload: Optional[List[dict]] = None
    uploaded_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TruckingLoadResponse(BaseModel):
    id: str
    storage_request_id: str
    direction: str
    sequence_number: int
    status: str
    scheduled_slot_start: Optional[datetime] = None
    scheduled_slot_end: Optional[datetime] = None
    pickup_location: Optional[dict] = None
    delivery_location: Optional[dict] = None
    destination_lsd: Optional[str] = None
    destination_well_name: Optional[str] = None
    destination_uwi: Optional[str] = None
    trucking_company: Optional[str] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    driver_name: Optional[str] = None
    driver_phone: Optional[str] = None
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    total_joints_planned: Optional[int] = None
    total_length_ft_planned: Optional[float] = None
    total_weight_lbs_planned: Optional[float] = None
    total_joints_completed: Optional[int] = None
    total_length_ft_completed: Optional[float] = None
    total_weight_lbs_completed: Optional[float] = None
    approved_at: Optional[datetime] = None
    in_transit_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingResult(BaseModel):
    success: bool
    message: str
    degraded: bool = False  # shipment tables unavailable; logistics notified instead
    load: Optional[TruckingLoadResponse] = None
    shipment_id: Optional[str] = None
    truck_id: Optional[str] = None
    appointment_id: Optional[str] = None
    documents: List[TruckingDocumentResponse] = Field(default_factory=list)


class LoadStatusUpdate(BaseModel):
    status: Literal["NEW", "APPROVED", "IN_TRANSIT", "COMPLETED", "REJECTED"]
    rejection_reason: Optional[str] = None
    actual_joints: Optional[int] = None
    actual_length_ft: Optional[float] = None
    actual_weight_lbs: Optional[float] = None
    rack_name: Optional[str] = None

    @model_validator(mode="after")
    def rejection_requires_reason(self):
        if self.status == "REJECTED" and not (self.rejection_reason or "").strip():
            raise ValueError("A rejection reason is required to reject a load")
        return self


class ManifestItem(BaseModel):
    manufacturer: Optional[str] = None
    heat_number: Optional[str] = None
    serial_number: Optional[str] = None
    tally_length_ft: Optional[float] = None
    quantity: int = 1
    grade: Optional[str] = None
    outer_diameter: Optional[float] = None
    weight_lbs_ft: Optional[float] = None


class ManifestPayload(BaseModel):
    items: List[ManifestItem] = Field(..., min_length=1)
