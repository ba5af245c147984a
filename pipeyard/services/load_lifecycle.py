from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pipeyard.core.exceptions import InvalidTransitionError, NotFoundError, TransientStoreError, ValidationError
from pipeyard.models.inventory import InventoryItem
from pipeyard.models.storage_request import StorageRequest
from pipeyard.models.trucking import LoadDirection, LoadStatus, TruckingLoad
from pipeyard.schemas.trucking import LoadStatusUpdate
from pipeyard.services.notifications import NotificationService

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[LoadStatus, tuple[LoadStatus, ...]] = {
    LoadStatus.NEW: (LoadStatus.APPROVED, LoadStatus.REJECTED),
    LoadStatus.APPROVED: (LoadStatus.IN_TRANSIT,),
    LoadStatus.IN_TRANSIT: (LoadStatus.COMPLETED,),
    LoadStatus.COMPLETED: (),
    LoadStatus.REJECTED: (),
}

TERMINAL_STATUSES = frozenset({LoadStatus.COMPLETED, LoadStatus.REJECTED})

# Position along the happy path; REJECTED sits off the path
_STAGE = {
    LoadStatus.NEW: 0,
    LoadStatus.APPROVED: 1,
    LoadStatus.IN_TRANSIT: 2,
    LoadStatus.COMPLETED: 3,
}

_STATUS_WORDS = {
    LoadStatus.NEW: "pending",
    LoadStatus.APPROVED: "approved",
    LoadStatus.IN_TRANSIT: "in transit",
    LoadStatus.COMPLETED: "completed",
    LoadStatus.REJECTED: "rejected",
}


def is_valid_transition(from_status: str, to_status: str) -> bool:
    current, target = LoadStatus(from_status), LoadStatus(to_status)
    if current == target:
        return True
    return target in VALID_TRANSITIONS[current]


def classify_transition(from_status: str, to_status: str) -> Optional[str]:
    """Name the kind of illegality, or None when the move is allowed.

    Kinds: ``terminal``, ``in_transit_only``, ``reversion``, ``skipped_stage``
    and ``rejection_after_approval``.
    """
    if is_valid_transition(from_status, to_status):
        return None

    current, target = LoadStatus(from_status), LoadStatus(to_status)
    if current in TERMINAL_STATUSES:
        return "terminal"
    if current == LoadStatus.IN_TRANSIT:
        return "in_transit_only"
    if target == LoadStatus.REJECTED:
        return "rejection_after_approval"
    if _STAGE[target] < _STAGE[current]:
        return "reversion"
    return "skipped_stage"


def validate_transition(from_status: str, to_status: str) -> Optional[str]:
    """Return None if the transition is allowed, otherwise a message for the caller."""
    kind = classify_transition(from_status, to_status)
    if kind is None:
        return None

    current, target = LoadStatus(from_status), LoadStatus(to_status)
    if kind == "terminal":
        return f"Cannot change status of a {_STATUS_WORDS[current]} load"
    if kind == "in_transit_only":
        return "Loads in transit can only be marked as completed"
    if kind == "rejection_after_approval":
        return "Only pending loads can be rejected"
    if kind == "reversion":
        return f"Cannot revert an {_STATUS_WORDS[current]} load to {_STATUS_WORDS[target]} status"

    expected = VALID_TRANSITIONS[current][0]
    return (
        f"Cannot skip from {current.value} to {target.value}; "
        f"the load must be {_STATUS_WORDS[expected]} first"
    )


def ensure_transition(from_status: str, to_status: str) -> None:
    error = validate_transition(from_status, to_status)
    if error:
        raise InvalidTransitionError(
            error, from_status=LoadStatus(from_status).value, to_status=LoadStatus(to_status).value
        )


class LoadLifecycleService:
    """Applies validated status changes to persisted loads."""

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationService] = None) -> None:
        self.db = db
        self.notifier = notifier

    async def get_load(self, load_id: str) -> TruckingLoad:
        result = await self.db.execute(select(TruckingLoad).where(TruckingLoad.id == load_id))
        load = result.scalar_one_or_none()
        if not load:
            raise NotFoundError("Load not found")
        return load

    async def transition(self, load_id: str, update: LoadStatusUpdate) -> TruckingLoad:
        load = await self.get_load(load_id)
        ensure_transition(load.status, update.status)

        if load.status == update.status:
            return load

        if (
            update.status == LoadStatus.COMPLETED.value
            and load.direction == LoadDirection.OUTBOUND.value
            and update.actual_joints is None
        ):
            # Nothing is drawn from inventory without a counted pickup
            raise ValidationError("Enter the number of joints picked up to complete this pickup")

        previous = load.status
        now = datetime.utcnow()
        target = LoadStatus(update.status)

        if target == LoadStatus.APPROVED:
            load.approved_at = now
        elif target == LoadStatus.REJECTED:
            load.rejection_reason = update.rejection_reason
        elif target == LoadStatus.IN_TRANSIT:
            load.in_transit_at = now
        elif target == LoadStatus.COMPLETED:
            load.completed_at = now
            load.total_joints_completed = (
                update.actual_joints if update.actual_joints is not None else load.total_joints_planned or 0
            )
            if update.actual_length_ft is not None:
                load.total_length_ft_completed = Decimal(str(update.actual_length_ft))
            elif load.total_length_ft_planned is not None:
                load.total_length_ft_completed = load.total_length_ft_planned
            if update.actual_weight_lbs is not None:
                load.total_weight_lbs_completed = Decimal(str(update.actual_weight_lbs))
            elif load.total_weight_lbs_planned is not None:
                load.total_weight_lbs_completed = load.total_weight_lbs_planned

        load.status = target.value

        try:
            if target == LoadStatus.COMPLETED:
                await self._apply_inventory(load, update.rack_name)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise TransientStoreError(f"Failed to update load status: {exc}", original=exc) from exc

        await self.db.refresh(load)
        logger.info(
            f"[LoadLifecycleService.transition] load={load.id} {previous} -> {load.status}",
            extra={"storage_request_id": load.storage_request_id},
        )
        await self._notify(load)
        return load

    async def _apply_inventory(self, load: TruckingLoad, rack_name: Optional[str]) -> None:
        joints = int(load.total_joints_completed or 0)
        if load.direction == LoadDirection.INBOUND.value:
            self.db.add(
                InventoryItem(
                    id=str(uuid.uuid4()),
                    storage_request_id=load.storage_request_id,
                    trucking_load_id=load.id,
                    status="IN_STORAGE",
                    joints=joints,
                    length_ft=load.total_length_ft_completed,
                    weight_lbs=load.total_weight_lbs_completed,
                    rack_name=rack_name,
                )
            )
            return

        # Outbound: draw down stored joints oldest first
        result = await self.db.execute(
            select(InventoryItem)
            .where(
                InventoryItem.storage_request_id == load.storage_request_id,
                InventoryItem.status == "IN_STORAGE",
            )
            .order_by(InventoryItem.created_at, InventoryItem.id)
        )
        remaining = joints
        for item in result.scalars().all():
            if remaining <= 0:
                break
            taken = min(item.joints, remaining)
            item.joints -= taken
            remaining -= taken
            if item.joints == 0:
                item.status = "PICKED_UP"
        if remaining > 0:
            logger.warning(
                f"[LoadLifecycleService._apply_inventory] outbound load {load.id} picked up "
                f"{remaining} more joints than were in storage"
            )

    async def _notify(self, load: TruckingLoad) -> None:
        if not self.notifier:
            return
        request = await self.db.get(StorageRequest, load.storage_request_id)
        try:
            await self.notifier.notify_load_status(request, load)
        except Exception:
            logger.exception("Failed to send load status notification", extra={"load_id": load.id})
