from enum import Enum

from sqlalchemy import Column, DateTime, JSON, String, func
from sqlalchemy.orm import relationship

from pipeyard.models.base import Base


class RequestStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"


class StorageRequest(Base):
    """Customer storage project. Status is owned by the approval workflow."""

    id = Column(String, primary_key=True)
    company_id = Column(String, nullable=False, index=True)
    company_name = Column(String, nullable=True)
    reference_id = Column(String, nullable=False, index=True)
    contact_email = Column(String, nullable=True)
    status = Column(String, nullable=False, default=RequestStatus.DRAFT.value, index=True)

    # pipe details captured at intake, e.g. {"total_joints": 120, "pipe_type": "Casing"}
    request_details = Column(JSON, nullable=True)
    rejection_reason = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    loads = relationship(
        "TruckingLoad",
        back_populates="storage_request",
        order_by="TruckingLoad.sequence_number",
    )
    inventory_items = relationship("InventoryItem", back_populates="storage_request")

    @property
    def total_joints_estimate(self) -> int | None:
        if not self.request_details:
            return None
        value = self.request_details.get("total_joints")
        return int(value) if value is not None else None
