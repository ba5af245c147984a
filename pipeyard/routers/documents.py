from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from pipeyard.api.deps import get_document_service, http_error
from pipeyard.core.db import get_db
from pipeyard.core.exceptions import LogisticsError
from pipeyard.schemas.trucking import ManifestPayload, TruckingDocumentResponse
from pipeyard.services.documents import DocumentService, PendingUpload
from pipeyard.services.load_lifecycle import LoadLifecycleService

router = APIRouter()


@router.post("/loads/{load_id}/documents", response_model=TruckingDocumentResponse)
async def upload_load_document(
    load_id: str,
    file: UploadFile = File(...),
    document_type: str = Form(default="manifest"),
    truck_id: Optional[str] = Form(default=None),
    uploaded_by: Optional[str] = Form(default=None),
    db: AsyncSession = Depends(get_db),
    service: DocumentService = Depends(get_document_service),
) -> TruckingDocumentResponse:
    try:
        load = await LoadLifecycleService(db).get_load(load_id)
        document = await service.attach_document(
            load,
            PendingUpload(
                file_name=file.filename or "document",
                document_type=document_type,
                content=await file.read(),
                content_type=file.content_type,
            ),
            truck_id=truck_id,
            uploaded_by=uploaded_by,
        )
    except LogisticsError as exc:
        raise http_error(exc)
    except ValueError as exc:
        # Document store rejected the upload
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return TruckingDocumentResponse.model_validate(document)


@router.post("/documents/{document_id}/manifest", response_model=TruckingDocumentResponse)
async def record_manifest(
    document_id: str,
    payload: ManifestPayload,
    service: DocumentService = Depends(get_document_service),
) -> TruckingDocumentResponse:
    try:
        document = await service.record_manifest_payload(document_id, payload.items)
    except LogisticsError as exc:
        raise http_error(exc)
    return TruckingDocumentResponse.model_validate(document)


@router.get("/documents/{document_id}/url")
async def document_url(
    document_id: str,
    expires_in: int = Query(3600, ge=60, le=86400),
    service: DocumentService = Depends(get_document_service),
) -> dict:
    try:
        url = await service.get_document_url(document_id, expires_in=expires_in)
    except LogisticsError as exc:
        raise http_error(exc)
    except ValueError as exc:
        # Document store is unconfigured or refused to sign
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return {"document_id": document_id, "url": url, "expires_in": expires_in}
