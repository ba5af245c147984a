"""SQLAlchemy models for the pipe storage logistics engine."""

from pipeyard.models.storage_request import RequestStatus, StorageRequest  # noqa: F401
from pipeyard.models.trucking import LoadDirection, LoadStatus, TruckingDocument, TruckingLoad  # noqa: F401
from pipeyard.models.shipment import DockAppointment, Shipment, ShipmentTruck  # noqa: F401
from pipeyard.models.inventory import InventoryItem  # noqa: F401
