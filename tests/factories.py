import uuid
from datetime import datetime
from decimal import Decimal

from pipeyard.models.inventory import InventoryItem
from pipeyard.models.storage_request import StorageRequest
from pipeyard.models.trucking import TruckingDocument, TruckingLoad
from pipeyard.schemas.logistics import DocumentSnapshot, InventorySummary, LoadSnapshot, ProjectView
from pipeyard.services.notifications import NotificationResult

# Monday, inside receiving hours
WEEKDAY_MORNING = datetime(2026, 10, 19, 10, 0)
# Monday, after the dock closes
WEEKDAY_EVENING = datetime(2026, 10, 19, 17, 0)


class RecordingSender:
    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.messages = []

    async def send(self, recipient, subject, body):
        self.messages.append((subject, body))
        return NotificationResult(self.succeed, "recorded")


def snapshot(sequence_number, status, direction="INBOUND", parsed=None, **fields):
    documents = ()
    if parsed is not None:
        documents = (DocumentSnapshot(id=f"doc-{direction}-{sequence_number}", parsed_payload=parsed or None),)
    return LoadSnapshot(
        id=f"{direction.lower()}-{sequence_number}",
        direction=direction,
        sequence_number=sequence_number,
        status=status,
        documents=documents,
        **fields,
    )


def project(status="APPROVED", loads=(), inventory_joints=0, total_joints_estimate=None):
    return ProjectView(
        id="request-1",
        reference_id="REF-1001",
        status=status,
        company_name="Summit Drilling",
        total_joints_estimate=total_joints_estimate,
        loads=tuple(loads),
        inventory=InventorySummary(total_joints=inventory_joints),
    )


async def make_request(db, status="APPROVED", total_joints=None, **fields):
    request = StorageRequest(
        id=str(uuid.uuid4()),
        company_id=fields.pop("company_id", "company-1"),
        company_name=fields.pop("company_name", "Summit Drilling"),
        reference_id=fields.pop("reference_id", "REF-1001"),
        contact_email=fields.pop("contact_email", "ops@summit.example"),
        status=status,
        request_details={"total_joints": total_joints} if total_joints is not None else None,
        **fields,
    )
    db.add(request)
    await db.commit()
    return request


async def make_load(db, request, sequence_number, status="NEW", direction="INBOUND", **fields):
    load = TruckingLoad(
        id=str(uuid.uuid4()),
        storage_request_id=request.id,
        direction=direction,
        sequence_number=sequence_number,
        status=status,
        **fields,
    )
    db.add(load)
    await db.commit()
    return load


async def make_document(db, load, parsed_payload=None):
    document = TruckingDocument(
        id=str(uuid.uuid4()),
        trucking_load_id=load.id,
        file_name="manifest.pdf",
        storage_path=f"trucking/{load.storage_request_id}/manifest.pdf",
        document_type="manifest",
        parsed_payload=parsed_payload,
    )
    db.add(document)
    await db.commit()
    return document


async def make_inventory(db, request, joints, load=None, rack_name=None, **fields):
    item = InventoryItem(
        id=str(uuid.uuid4()),
        storage_request_id=request.id,
        trucking_load_id=load.id if load else None,
        status=fields.pop("status", "IN_STORAGE"),
        joints=joints,
        length_ft=Decimal("40.00") * joints,
        rack_name=rack_name,
        **fields,
    )
    db.add(item)
    await db.commit()
    return item
