from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pipeyard.models.trucking import LoadDirection, TruckingLoad
from pipeyard.services.schema_guard import raise_store_error

logger = logging.getLogger(__name__)


class LoadSequencer:
    """Per (request, direction) load numbering read straight from the store.

    Every call issues a fresh aggregate query; nothing is cached between calls
    because displayed load lists may be stale.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def next_sequence_number(self, storage_request_id: str, direction: str) -> int:
        try:
            result = await self.db.execute(
                select(func.max(TruckingLoad.sequence_number)).where(
                    TruckingLoad.storage_request_id == storage_request_id,
                    TruckingLoad.direction == LoadDirection(direction).value,
                )
            )
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise_store_error("read latest load sequence", exc)
        latest = result.scalar()
        return (latest or 0) + 1

    async def load_exists_at(self, storage_request_id: str, direction: str, sequence_number: int) -> bool:
        try:
            result = await self.db.execute(
                select(TruckingLoad.id).where(
                    TruckingLoad.storage_request_id == storage_request_id,
                    TruckingLoad.direction == LoadDirection(direction).value,
                    TruckingLoad.sequence_number == sequence_number,
                ).limit(1)
            )
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise_store_error("check existing load sequence", exc)
        return result.scalar_one_or_none() is not None


