from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, func

from pipeyard.models.base import Base


class Shipment(Base):
    """Booking record for a single delivery or pickup event."""

    id = Column(String, primary_key=True)
    request_id = Column(String, ForeignKey("storage_request.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = Column(String, nullable=False, index=True)
    created_by = Column(String, nullable=True)
    direction = Column(String, nullable=False, default="INBOUND")
    status = Column(String, nullable=False, default="SCHEDULED")  # SCHEDULED, SCHEDULING

    trucking_method = Column(String, nullable=False, default="CUSTOMER_PROVIDED")
    trucking_company = Column(String, nullable=True)
    trucking_contact_name = Column(String, nullable=True)
    trucking_contact_phone = Column(String, nullable=True)
    trucking_contact_email = Column(String, nullable=True)
    number_of_trucks = Column(Integer, nullable=False, default=1)
    estimated_joint_count = Column(Integer, nullable=True)
    estimated_total_length_ft = Column(Numeric(12, 2), nullable=True)
    special_instructions = Column(String, nullable=True)

    surcharge_applicable = Column(Boolean, nullable=False, default=False)
    surcharge_amount = Column(Numeric(10, 2), nullable=False, default=0)
    documents_status = Column(String, nullable=True)  # UPLOADED, PENDING

    trucking_load_id = Column(String, ForeignKey("trucking_load.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())


class ShipmentTruck(Base):
    id = Column(String, primary_key=True)
    shipment_id = Column(String, ForeignKey("shipment.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence_number = Column(Integer, nullable=False, default=1)
    status = Column(String, nullable=False, default="PENDING")  # PENDING, SCHEDULED

    trucking_company = Column(String, nullable=True)
    contact_name = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)
    contact_email = Column(String, nullable=True)
    scheduled_slot_start = Column(DateTime, nullable=True)
    scheduled_slot_end = Column(DateTime, nullable=True)
    notes = Column(String, nullable=True)

    trucking_load_id = Column(String, ForeignKey("trucking_load.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())


class DockAppointment(Base):
    """Reserved unloading/loading window at the yard dock."""

    id = Column(String, primary_key=True)
    shipment_id = Column(String, ForeignKey("shipment.id", ondelete="CASCADE"), nullable=False, unique=True)
    truck_id = Column(String, ForeignKey("shipment_truck.id", ondelete="SET NULL"), nullable=True)
    slot_start = Column(DateTime, nullable=False, index=True)
    slot_end = Column(DateTime, nullable=False)
    after_hours = Column(Boolean, nullable=False, default=False)
    surcharge_applied = Column(Boolean, nullable=False, default=False)
    status = Column(String, nullable=False, default="PENDING")  # PENDING, CONFIRMED, CANCELLED

    trucking_load_id = Column(String, ForeignKey("trucking_load.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
