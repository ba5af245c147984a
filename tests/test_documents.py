from decimal import Decimal

import pytest

from pipeyard.core.exceptions import NotFoundError, TransientStoreError
from pipeyard.models.shipment import Shipment
from pipeyard.models.trucking import TruckingLoad
from pipeyard.schemas.trucking import ManifestItem
from pipeyard.services.documents import DocumentService, PendingUpload
from pipeyard.services.repository import TruckingRepository

from factories import make_document, make_load, make_request


class MemoryStore:
    def __init__(self):
        self.objects = {}
        self.deleted = []

    async def upload_file(self, content, filename, prefix="trucking", content_type=None):
        key = f"{prefix}/{filename}"
        self.objects[key] = content
        return key

    async def delete_file(self, key):
        self.deleted.append(key)
        return self.objects.pop(key, None) is not None

    def get_file_url(self, key, expires_in=3600):
        return f"https://files.example/{key}?expires={expires_in}"


async def test_upload_is_stored_under_the_load(db):
    request = await make_request(db)
    load = await make_load(db, request, 2)
    store = MemoryStore()

    document = await DocumentService(db, store).attach_document(
        load, PendingUpload(file_name="manifest.pdf", content=b"%PDF"), uploaded_by="dana"
    )

    assert document.storage_path == f"trucking/{request.id}/inbound-load-2/manifest.pdf"
    assert document.document_type == "manifest"
    assert document.uploaded_by == "dana"
    assert store.objects[document.storage_path] == b"%PDF"


async def test_failed_registration_removes_uploaded_object(db, monkeypatch):
    request = await make_request(db)
    load = await make_load(db, request, 1)
    store = MemoryStore()
    service = DocumentService(db, store)

    async def broken_create_document(**fields):
        raise TransientStoreError("disk full")

    monkeypatch.setattr(service.repository, "create_document", broken_create_document)

    with pytest.raises(TransientStoreError):
        await service.attach_document(load, PendingUpload(file_name="manifest.pdf", content=b"%PDF"))

    assert store.objects == {}
    assert store.deleted == [f"trucking/{request.id}/inbound-load-1/manifest.pdf"]


async def test_failed_registration_keeps_customer_upload(db, monkeypatch):
    request = await make_request(db)
    load = await make_load(db, request, 1)
    store = MemoryStore()
    service = DocumentService(db, store)

    async def broken_create_document(**fields):
        raise TransientStoreError("disk full")

    monkeypatch.setattr(service.repository, "create_document", broken_create_document)

    with pytest.raises(TransientStoreError):
        await service.attach_document(load, PendingUpload(file_name="bol.pdf", storage_path="uploads/bol.pdf"))

    assert store.deleted == []


async def test_attach_documents_continues_past_a_bad_file(db):
    request = await make_request(db)
    load = await make_load(db, request, 1)

    documents = await DocumentService(db, MemoryStore()).attach_documents(
        load,
        [
            PendingUpload(file_name="empty.pdf"),
            PendingUpload(file_name="manifest.pdf", storage_path="uploads/manifest.pdf"),
        ],
    )

    assert [document.file_name for document in documents] == ["manifest.pdf"]


async def test_record_manifest_sets_planned_totals(db):
    request = await make_request(db)
    load = await make_load(db, request, 1)
    document = await make_document(db, load)
    items = [
        ManifestItem(heat_number="H-1", tally_length_ft=40.0, quantity=20, weight_lbs_ft=26.4),
        ManifestItem(heat_number="H-2", tally_length_ft=39.5, quantity=5, weight_lbs_ft=26.4),
    ]

    updated = await DocumentService(db, MemoryStore()).record_manifest_payload(document.id, items)

    assert [row["heat_number"] for row in updated.parsed_payload] == ["H-1", "H-2"]
    refreshed = await db.get(TruckingLoad, load.id, populate_existing=True)
    assert refreshed.total_joints_planned == 25
    assert refreshed.total_length_ft_planned == Decimal("997.50")


async def test_record_manifest_for_unknown_document(db):
    with pytest.raises(NotFoundError):
        await DocumentService(db, MemoryStore()).record_manifest_payload("missing", [ManifestItem()])


async def _booked_shipment(db, request, load):
    return await TruckingRepository(db).create_shipment(
        request_id=request.id,
        company_id=request.company_id,
        documents_status="PENDING",
        trucking_load_id=load.id,
    )


async def test_upload_marks_booked_shipment_documents_uploaded(db):
    request = await make_request(db)
    load = await make_load(db, request, 1)
    shipment = await _booked_shipment(db, request, load)

    await DocumentService(db, MemoryStore()).attach_document(
        load, PendingUpload(file_name="manifest.pdf", content=b"%PDF")
    )

    refreshed = await db.get(Shipment, shipment.id, populate_existing=True)
    assert refreshed.documents_status == "UPLOADED"


async def test_nothing_attached_leaves_shipment_pending(db):
    request = await make_request(db)
    load = await make_load(db, request, 1)
    shipment = await _booked_shipment(db, request, load)

    documents = await DocumentService(db, MemoryStore()).attach_documents(load, [PendingUpload(file_name="empty.pdf")])

    assert documents == []
    refreshed = await db.get(Shipment, shipment.id, populate_existing=True)
    assert refreshed.documents_status == "PENDING"


async def test_status_stamp_failure_keeps_the_document(db, monkeypatch):
    request = await make_request(db)
    load = await make_load(db, request, 1)
    service = DocumentService(db, MemoryStore())

    async def broken_set_documents_status(load_id, status):
        raise TransientStoreError("lock timeout")

    monkeypatch.setattr(service.repository, "set_documents_status", broken_set_documents_status)

    documents = await service.attach_documents(
        load, [PendingUpload(file_name="manifest.pdf", storage_path="uploads/manifest.pdf")]
    )

    assert [document.storage_path for document in documents] == ["uploads/manifest.pdf"]


async def test_document_url(db):
    request = await make_request(db)
    load = await make_load(db, request, 1)
    document = await make_document(db, load)

    url = await DocumentService(db, MemoryStore()).get_document_url(document.id, expires_in=600)

    assert url == f"https://files.example/{document.storage_path}?expires=600"


async def test_document_url_for_unknown_document(db):
    with pytest.raises(NotFoundError):
        await DocumentService(db, MemoryStore()).get_document_url("missing")
