from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from pipeyard.models.base import Base


class LoadDirection(str, Enum):
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"


class LoadStatus(str, Enum):
    NEW = "NEW"
    APPROVED = "APPROVED"
    IN_TRANSIT = "IN_TRANSIT"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


class TruckingLoad(Base):
    """One truck movement into (INBOUND) or out of (OUTBOUND) the storage yard."""

    __table_args__ = (
        UniqueConstraint(
            "storage_request_id",
            "direction",
            "sequence_number",
            name="uq_trucking_load_request_direction_sequence",
        ),
        CheckConstraint("sequence_number > 0", name="ck_trucking_load_sequence_positive"),
    )

    id = Column(String, primary_key=True)
    storage_request_id = Column(String, ForeignKey("storage_request.id", ondelete="CASCADE"), nullable=False, index=True)
    direction = Column(String, nullable=False, index=True)
    sequence_number = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default=LoadStatus.NEW.value, index=True)

    scheduled_slot_start = Column(DateTime, nullable=True)
    scheduled_slot_end = Column(DateTime, nullable=True)
    pickup_location = Column(JSON, nullable=True)
    delivery_location = Column(JSON, nullable=True)

    # Outbound destination (LSD plus well name and/or UWI)
    destination_lsd = Column(String, nullable=True)
    destination_well_name = Column(String, nullable=True)
    destination_uwi = Column(String, nullable=True)
    shipping_method = Column(String, nullable=True)

    trucking_company = Column(String, nullable=True)
    contact_company = Column(String, nullable=True)
    contact_name = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)
    contact_email = Column(String, nullable=True)
    driver_name = Column(String, nullable=True)
    driver_phone = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    rejection_reason = Column(String, nullable=True)

    total_joints_planned = Column(Integer, nullable=True)
    total_length_ft_planned = Column(Numeric(12, 2), nullable=True)
    total_weight_lbs_planned = Column(Numeric(12, 2), nullable=True)
    total_joints_completed = Column(Integer, nullable=True, default=0)
    total_length_ft_completed = Column(Numeric(12, 2), nullable=True, default=0)
    total_weight_lbs_completed = Column(Numeric(12, 2), nullable=True, default=0)

    approved_at = Column(DateTime, nullable=True)
    in_transit_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    storage_request = relationship("StorageRequest", back_populates="loads")
    documents = relationship(
        "TruckingDocument",
        back_populates="load",
        cascade="all, delete-orphan",
        order_by="TruckingDocument.uploaded_at",
    )


class TruckingDocument(Base):
    id = Column(String, primary_key=True)
    trucking_load_id = Column(String, ForeignKey("trucking_load.id", ondelete="CASCADE"), nullable=False, index=True)
    truck_id = Column(String, ForeignKey("shipment_truck.id", ondelete="SET NULL"), nullable=True)

    file_name = Column(String, nullable=False)
    storage_path = Column(String, nullable=False)
    document_type = Column(String, nullable=True)  # manifest, proof_of_delivery
    uploaded_by = Column(String, nullable=True)
    # Manifest rows produced by the extraction service; null until processed
    parsed_payload = Column(JSON, nullable=True)

    uploaded_at = Column(DateTime, nullable=False, server_default=func.now())

    load = relationship("TruckingLoad", back_populates="documents")
