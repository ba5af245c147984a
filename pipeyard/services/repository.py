"""Storage boundary for the trucking engine.

Every write commits before returning so that a later read (in particular the
sequence re-query) sees it. Store failures are rolled back and re-raised as
``TransientStoreError`` or ``SchemaMissingError``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pipeyard.core.exceptions import NotFoundError
from pipeyard.models.inventory import InventoryItem
from pipeyard.models.shipment import DockAppointment, Shipment, ShipmentTruck
from pipeyard.models.storage_request import StorageRequest
from pipeyard.models.trucking import TruckingDocument, TruckingLoad
from pipeyard.schemas.logistics import InventorySummary, LoadSnapshot, ProjectView
from pipeyard.services.schema_guard import raise_store_error

logger = logging.getLogger(__name__)

ACTIVE_APPOINTMENT_STATUSES = ("PENDING", "CONFIRMED")


class TruckingRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _persist(self, instance, action: str):
        if not instance.id:
            instance.id = str(uuid.uuid4())
        self.db.add(instance)
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise_store_error(action, exc)
        await self.db.refresh(instance)
        return instance

    async def _execute_write(self, statement, action: str) -> None:
        try:
            await self.db.execute(statement)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise_store_error(action, exc)

    async def get_request(self, request_id: str) -> StorageRequest:
        request = await self.db.get(StorageRequest, request_id)
        if not request:
            raise NotFoundError("Storage request not found")
        return request

    async def create_shipment(self, **fields) -> Shipment:
        return await self._persist(Shipment(**fields), "create shipment")

    async def create_truck(self, **fields) -> ShipmentTruck:
        return await self._persist(ShipmentTruck(**fields), "create shipment truck")

    async def create_appointment(self, **fields) -> DockAppointment:
        return await self._persist(DockAppointment(**fields), "create dock appointment")

    async def create_load(self, **fields) -> TruckingLoad:
        return await self._persist(TruckingLoad(**fields), "create trucking load")

    async def create_document(self, **fields) -> TruckingDocument:
        return await self._persist(TruckingDocument(**fields), "register trucking document")

    async def find_appointment_by_shipment(self, shipment_id: str) -> Optional[DockAppointment]:
        try:
            result = await self.db.execute(
                select(DockAppointment).where(DockAppointment.shipment_id == shipment_id).limit(1)
            )
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise_store_error("look up dock appointment", exc)
        return result.scalar_one_or_none()

    async def find_loads(self, request_id: str, direction: str, status: Optional[str] = None) -> List[TruckingLoad]:
        query = select(TruckingLoad).where(
            TruckingLoad.storage_request_id == request_id,
            TruckingLoad.direction == direction,
        )
        if status:
            query = query.where(TruckingLoad.status == status)
        try:
            result = await self.db.execute(query.order_by(TruckingLoad.sequence_number))
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise_store_error("list trucking loads", exc)
        return list(result.scalars().all())

    async def delete_shipment(self, shipment_id: str) -> None:
        await self._execute_write(delete(Shipment).where(Shipment.id == shipment_id), "delete shipment")

    async def delete_truck(self, truck_id: str) -> None:
        await self._execute_write(delete(ShipmentTruck).where(ShipmentTruck.id == truck_id), "delete shipment truck")

    async def delete_appointment(self, appointment_id: str) -> None:
        await self._execute_write(
            delete(DockAppointment).where(DockAppointment.id == appointment_id),
            "delete dock appointment",
        )

    async def link_to_load(self, model, record_id: str, load_id: str) -> None:
        await self._execute_write(
            update(model).where(model.id == record_id).values(trucking_load_id=load_id),
            f"link {model.__tablename__} to load",
        )

    async def set_documents_status(self, load_id: str, status: str) -> None:
        """Stamp the shipment booked for ``load_id``; a load without one is left alone."""
        await self._execute_write(
            update(Shipment).where(Shipment.trucking_load_id == load_id).values(documents_status=status),
            "update shipment documents status",
        )

    async def blocked_slot_starts(self, start: datetime, end: datetime) -> List[datetime]:
        try:
            result = await self.db.execute(
                select(DockAppointment.slot_start).where(
                    DockAppointment.slot_start >= start,
                    DockAppointment.slot_start < end,
                    DockAppointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
                )
            )
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise_store_error("read booked dock appointments", exc)
        return list(result.scalars().all())


class ProjectRepository:
    """Builds the read-only ``ProjectView`` the status projections consume."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def load_project(self, request_id: str) -> ProjectView:
        result = await self.db.execute(
            select(StorageRequest)
            .where(StorageRequest.id == request_id)
            .options(selectinload(StorageRequest.loads).selectinload(TruckingLoad.documents))
        )
        request = result.scalar_one_or_none()
        if not request:
            raise NotFoundError("Storage request not found")

        inventory = await self._inventory_summary(request_id)
        return ProjectView(
            id=request.id,
            reference_id=request.reference_id,
            status=request.status,
            company_name=request.company_name,
            total_joints_estimate=request.total_joints_estimate,
            loads=tuple(LoadSnapshot.model_validate(load) for load in request.loads),
            inventory=inventory,
        )

    async def _inventory_summary(self, request_id: str) -> InventorySummary:
        result = await self.db.execute(
            select(
                func.coalesce(func.sum(InventoryItem.joints), 0),
                func.coalesce(func.sum(InventoryItem.length_ft), 0),
                func.coalesce(func.sum(InventoryItem.weight_lbs), 0),
            ).where(
                InventoryItem.storage_request_id == request_id,
                InventoryItem.status == "IN_STORAGE",
            )
        )
        joints, length_ft, weight_lbs = result.one()

        racks = await self.db.execute(
            select(InventoryItem.rack_name)
            .where(
                InventoryItem.storage_request_id == request_id,
                InventoryItem.status == "IN_STORAGE",
                InventoryItem.rack_name.is_not(None),
            )
            .distinct()
        )
        return InventorySummary(
            total_joints=int(joints or 0),
            total_length_ft=float(length_ft or 0),
            total_weight_lbs=float(weight_lbs or 0),
            rack_names=tuple(sorted(_unique(racks.scalars().all()))),
        )


def _unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))
