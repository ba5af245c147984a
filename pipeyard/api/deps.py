from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from pipeyard.core.config import get_settings
from pipeyard.core.db import get_db
from pipeyard.core.exceptions import (
    DuplicateLoadError,
    InvalidTransitionError,
    LogisticsError,
    NotFoundError,
    ProvisioningError,
    TransientStoreError,
    ValidationError,
)
from pipeyard.services.documents import DocumentService
from pipeyard.services.notifications import NotificationService
from pipeyard.services.storage import DocumentStore


def get_notifier() -> NotificationService:
    return NotificationService(get_settings())


def get_document_store() -> DocumentStore:
    return DocumentStore(get_settings())


async def get_document_service(
    db: AsyncSession = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
) -> DocumentService:
    return DocumentService(db, store)


def http_error(exc: LogisticsError) -> HTTPException:
    """Map a domain error onto the HTTP status the client sees."""
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (InvalidTransitionError, DuplicateLoadError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, ProvisioningError):
        code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(exc, TransientStoreError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=exc.message)
