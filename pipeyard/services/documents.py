from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pipeyard.core.exceptions import NotFoundError, TransientStoreError
from pipeyard.models.trucking import TruckingDocument, TruckingLoad
from pipeyard.schemas.trucking import ManifestItem
from pipeyard.services.progress import calculate_load_summary
from pipeyard.services.repository import TruckingRepository
from pipeyard.services.storage import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class PendingUpload:
    """A document to attach to a load.

    Either ``content`` is set (we upload it) or ``storage_path`` points at an
    object the customer already uploaded.
    """

    file_name: str
    document_type: Optional[str] = "manifest"
    content: Optional[bytes] = None
    storage_path: Optional[str] = None
    content_type: Optional[str] = None


class DocumentService:
    def __init__(self, db: AsyncSession, store: Optional[DocumentStore] = None) -> None:
        self.db = db
        self.store = store or DocumentStore()
        self.repository = TruckingRepository(db)

    def _prefix(self, load: TruckingLoad) -> str:
        return f"trucking/{load.storage_request_id}/{load.direction.lower()}-load-{load.sequence_number}"

    async def attach_document(
        self,
        load: TruckingLoad,
        upload: PendingUpload,
        truck_id: Optional[str] = None,
        uploaded_by: Optional[str] = None,
        mark_uploaded: bool = True,
    ) -> TruckingDocument:
        uploaded_here = False
        storage_path = upload.storage_path
        if upload.content is not None:
            storage_path = await self.store.upload_file(
                upload.content,
                upload.file_name,
                prefix=self._prefix(load),
                content_type=upload.content_type,
            )
            uploaded_here = True
        if not storage_path:
            raise ValueError(f"No content or storage path for {upload.file_name}")

        try:
            document = await self.repository.create_document(
                trucking_load_id=load.id,
                truck_id=truck_id,
                file_name=upload.file_name,
                storage_path=storage_path,
                document_type=upload.document_type,
                uploaded_by=uploaded_by,
            )
        except TransientStoreError:
            if uploaded_here:
                # Do not leave an orphaned object behind
                if not await self.store.delete_file(storage_path):
                    logger.warning(
                        f"[DocumentService.attach_document] could not remove orphaned object {storage_path}"
                    )
            raise

        if mark_uploaded:
            await self._mark_documents_uploaded(load, [document])
        return document

    async def _mark_documents_uploaded(self, load: TruckingLoad, documents: Sequence[TruckingDocument]) -> None:
        load_id = load.id
        try:
            await self.repository.set_documents_status(load_id, "UPLOADED")
        except TransientStoreError:
            logger.exception(
                "[DocumentService._mark_documents_uploaded] shipment still shows documents pending",
                extra={"trucking_load_id": load_id},
            )
            await self.db.refresh(load)
            for document in documents:
                await self.db.refresh(document)

    async def attach_documents(
        self,
        load: TruckingLoad,
        uploads: Sequence[PendingUpload],
        truck_id: Optional[str] = None,
        uploaded_by: Optional[str] = None,
    ) -> List[TruckingDocument]:
        """Attach each upload to ``load``; a failure on one file does not stop the rest."""
        load_id = load.id
        documents: List[TruckingDocument] = []
        for upload in uploads:
            try:
                documents.append(
                    await self.attach_document(load, upload, truck_id, uploaded_by, mark_uploaded=False)
                )
            except Exception:
                logger.exception(
                    f"[DocumentService.attach_documents] failed to attach {upload.file_name}",
                    extra={"trucking_load_id": load_id},
                )
                # The rollback behind a failed registration expires everything in the session
                await self.db.refresh(load)
                for document in documents:
                    await self.db.refresh(document)
        if documents:
            await self._mark_documents_uploaded(load, documents)
        return documents

    async def record_manifest_payload(self, document_id: str, items: Sequence[ManifestItem]) -> TruckingDocument:
        result = await self.db.execute(select(TruckingDocument).where(TruckingDocument.id == document_id))
        document = result.scalar_one_or_none()
        if not document:
            raise NotFoundError("Document not found")

        load = await self.db.get(TruckingLoad, document.trucking_load_id)
        if not load:
            raise NotFoundError("Load not found")

        document.parsed_payload = [item.model_dump() for item in items]
        summary = calculate_load_summary(items)
        load.total_joints_planned = summary.total_joints
        load.total_length_ft_planned = Decimal(str(summary.total_length_ft))
        load.total_weight_lbs_planned = Decimal(str(summary.total_weight_lbs))

        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise TransientStoreError(f"Failed to record manifest: {exc}", original=exc) from exc

        await self.db.refresh(document)
        logger.info(
            f"[DocumentService.record_manifest_payload] document={document.id} rows={len(items)} "
            f"joints={summary.total_joints}",
            extra={"trucking_load_id": load.id},
        )
        return document

    async def get_document_url(self, document_id: str, expires_in: int = 3600) -> str:
        """Signed link for previewing a stored document."""
        document = await self.db.get(TruckingDocument, document_id)
        if not document:
            raise NotFoundError("Document not found")
        return self.store.get_file_url(document.storage_path, expires_in=expires_in)
