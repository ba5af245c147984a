from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import relationship

from pipeyard.models.base import Base


class InventoryItem(Base):
    """Joints received on one inbound load and still (or formerly) held in the yard."""

    id = Column(String, primary_key=True)
    storage_request_id = Column(String, ForeignKey("storage_request.id", ondelete="CASCADE"), nullable=False, index=True)
    trucking_load_id = Column(String, ForeignKey("trucking_load.id", ondelete="SET NULL"), nullable=True)
    status = Column(String, nullable=False, default="IN_STORAGE")  # IN_STORAGE, PICKED_UP
    joints = Column(Integer, nullable=False, default=0)
    length_ft = Column(Numeric(12, 2), nullable=True)
    weight_lbs = Column(Numeric(12, 2), nullable=True)
    rack_name = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    storage_request = relationship("StorageRequest", back_populates="inventory_items")
