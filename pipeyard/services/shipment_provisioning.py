"""Booking a delivery or pickup for a storage request.

A booking creates a shipment, a truck (deliveries only), a dock appointment
and finally the trucking load. Every record created along the way pushes an
undo onto a ``CompensationStack``; if the load cannot be created the stack
is unwound newest first so no half-built booking is left behind.

When the shipment tables are missing (the migration has not run on this
deployment yet) the booking is not lost: whatever was created is rolled
back and the logistics team is notified to book it by hand.

A failed write rolls the session back, which expires every ORM instance it
holds. The steps below therefore pass ids and plain values between each
other rather than the rows themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pipeyard.core.config import Settings, get_settings
from pipeyard.core.exceptions import (
    DuplicateLoadError,
    ProvisioningError,
    SchemaMissingError,
    TransientStoreError,
    ValidationError,
)
from pipeyard.models.shipment import DockAppointment, Shipment, ShipmentTruck
from pipeyard.models.storage_request import RequestStatus
from pipeyard.models.trucking import LoadDirection, LoadStatus, TruckingLoad
from pipeyard.schemas.trucking import (
    BookingResult,
    InboundBookingCreate,
    OutboundBookingCreate,
    TimeSlot,
    TruckingDocumentResponse,
    TruckingLoadResponse,
)
from pipeyard.services.compensation import CompensationStack
from pipeyard.services.documents import DocumentService, PendingUpload
from pipeyard.services.load_sequencer import LoadSequencer
from pipeyard.services.notifications import BookingNotification, NotificationService
from pipeyard.services.repository import TruckingRepository
from pipeyard.services.time_slots import build_slot

logger = logging.getLogger(__name__)


def _decimal(value) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


@dataclass(frozen=True)
class RequestRef:
    id: str
    company_id: str
    reference_id: str
    company_name: Optional[str]
    contact_email: Optional[str]


class ShipmentProvisioningService:
    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[NotificationService] = None,
        documents: Optional[DocumentService] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.repository = TruckingRepository(db)
        self.sequencer = LoadSequencer(db)
        self.notifier = notifier or NotificationService(self.settings)
        self._documents = documents

    @property
    def documents(self) -> DocumentService:
        if self._documents is None:
            self._documents = DocumentService(self.db)
        return self._documents

    async def _get_bookable_request(self, request_id: str) -> RequestRef:
        request = await self.repository.get_request(request_id)
        if request.status != RequestStatus.APPROVED.value:
            raise ValidationError("Trucking can only be scheduled for approved storage requests")
        return RequestRef(
            id=request.id,
            company_id=request.company_id,
            reference_id=request.reference_id,
            company_name=request.company_name,
            contact_email=request.contact_email,
        )

    def _classify_slot(self, slot: TimeSlot) -> TimeSlot:
        # The surcharge follows the yard's hours, not the caller's flag
        return build_slot(slot.start, self.settings)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def schedule_inbound(self, request_id: str, booking: InboundBookingCreate) -> BookingResult:
        request = await self._get_bookable_request(request_id)
        slot = self._classify_slot(booking.slot)
        direction = LoadDirection.INBOUND.value
        summary = booking.load_summary
        notice = BookingNotification(
            reference_id=request.reference_id,
            company_name=request.company_name or booking.storage_company_name,
            contact_name=booking.storage_contact_name,
            contact_email=booking.storage_contact_email,
            contact_phone=booking.storage_contact_phone,
            direction=direction,
            slot_start=slot.start,
            slot_end=slot.end,
            is_after_hours=slot.is_after_hours,
            surcharge_amount=slot.surcharge_amount if slot.is_after_hours else None,
            trucking_company=booking.trucking_company,
            driver_name=booking.driver_name,
        )
        compensation = CompensationStack()

        try:
            sequence = await self.sequencer.next_sequence_number(request.id, direction)
            shipment_id = await self._create_shipment(
                request,
                direction,
                slot,
                compensation,
                created_by=booking.created_by,
                trucking_method=booking.trucking_method,
                trucking_company=booking.trucking_company,
                trucking_contact_name=booking.driver_name or booking.storage_contact_name,
                trucking_contact_phone=booking.driver_phone or booking.storage_contact_phone,
                trucking_contact_email=booking.storage_contact_email,
                estimated_joint_count=summary.total_joints if summary else None,
                estimated_total_length_ft=_decimal(summary.total_length_ft) if summary else None,
                special_instructions=booking.notes,
                documents_status="PENDING",
            )
            truck_id = await self._create_truck(shipment_id, booking, slot, compensation)
            appointment_id = await self._ensure_appointment(shipment_id, truck_id, slot, compensation)

            load = await self._create_load(
                compensation,
                storage_request_id=request.id,
                direction=direction,
                status=LoadStatus.NEW.value,
                scheduled_slot_start=slot.start,
                scheduled_slot_end=slot.end,
                pickup_location=(
                    {"company": booking.storage_company_name, "address": booking.storage_yard_address}
                    if booking.storage_yard_address
                    else None
                ),
                delivery_location={
                    "facility": self.settings.facility_name,
                    "address": self.settings.facility_address,
                },
                shipping_method=booking.trucking_method,
                trucking_company=booking.trucking_company,
                contact_company=booking.storage_company_name,
                contact_name=booking.storage_contact_name,
                contact_phone=booking.storage_contact_phone,
                contact_email=booking.storage_contact_email,
                driver_name=booking.driver_name,
                driver_phone=booking.driver_phone,
                notes=booking.notes,
                total_joints_planned=summary.total_joints if summary else None,
                total_length_ft_planned=_decimal(summary.total_length_ft) if summary else None,
                total_weight_lbs_planned=_decimal(summary.total_weight_lbs) if summary else None,
            )
        except SchemaMissingError:
            await compensation.unwind()
            return await self._fallback(request, slot, notice)

        self._log_sequence_drift("schedule_inbound", request, sequence, load)
        await self._cross_link(load.id, shipment_id, truck_id, appointment_id)
        documents = await self._attach_uploaded(load.id, booking, truck_id)
        await self._notify(notice.model_copy(update={"load_number": load.sequence_number}))

        message = (
            "Delivery submitted. MPS will confirm the after-hours slot shortly."
            if slot.is_after_hours
            else "Delivery successfully scheduled!"
        )
        if not documents:
            message += " Upload your manifest documents before booking another load."

        logger.info(
            f"[ShipmentProvisioningService.schedule_inbound] booked inbound load #{load.sequence_number} "
            f"for request {request.reference_id}",
            extra={"storage_request_id": request.id, "trucking_load_id": load.id, "after_hours": slot.is_after_hours},
        )
        return BookingResult(
            success=True,
            message=message,
            load=load,
            shipment_id=shipment_id,
            truck_id=truck_id,
            appointment_id=appointment_id,
            documents=documents,
        )

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def schedule_outbound(self, request_id: str, booking: OutboundBookingCreate) -> BookingResult:
        destination = booking.destination
        if not destination.lsd.strip():
            raise ValidationError("LSD (Legal Subdivision) is required for outbound destination")
        if not (destination.well_name or "").strip() and not (destination.uwi or "").strip():
            raise ValidationError("Either Well Name or UWI is required (at least one)")

        request = await self._get_bookable_request(request_id)
        direction = LoadDirection.OUTBOUND.value

        pending = await self.repository.find_loads(request.id, direction, status=LoadStatus.NEW.value)
        if pending:
            raise ValidationError(
                f"Pickup Load {pending[0].sequence_number} is still pending approval. "
                "Wait for it to be confirmed before requesting another pickup."
            )

        slot = self._classify_slot(booking.slot)
        destination_label = " / ".join(
            part for part in (destination.lsd, destination.well_name, destination.uwi) if part
        )
        notice = BookingNotification(
            reference_id=request.reference_id,
            company_name=request.company_name or "Unknown Company",
            contact_name=destination.contact_name,
            contact_email=request.contact_email,
            contact_phone=destination.contact_phone,
            direction=direction,
            slot_start=slot.start,
            slot_end=slot.end,
            is_after_hours=slot.is_after_hours,
            surcharge_amount=slot.surcharge_amount if slot.is_after_hours else None,
            trucking_company=booking.trucking_company,
            driver_name=booking.driver_name,
            destination=destination_label,
        )
        compensation = CompensationStack()

        try:
            sequence = await self.sequencer.next_sequence_number(request.id, direction)
            shipment_id = await self._create_shipment(
                request,
                direction,
                slot,
                compensation,
                created_by=booking.created_by,
                trucking_method=booking.shipping_method,
                trucking_company=booking.trucking_company,
                trucking_contact_name=booking.driver_name or destination.contact_name,
                trucking_contact_phone=booking.driver_phone or destination.contact_phone,
                special_instructions=destination.special_instructions,
            )
            appointment_id = await self._ensure_appointment(shipment_id, None, slot, compensation)

            load = await self._create_load(
                compensation,
                storage_request_id=request.id,
                direction=direction,
                status=LoadStatus.NEW.value,
                scheduled_slot_start=slot.start,
                scheduled_slot_end=slot.end,
                pickup_location={
                    "facility": self.settings.facility_name,
                    "address": self.settings.facility_address,
                },
                delivery_location={
                    "lsd": destination.lsd,
                    "well_name": destination.well_name,
                    "uwi": destination.uwi,
                },
                destination_lsd=destination.lsd,
                destination_well_name=destination.well_name,
                destination_uwi=destination.uwi,
                shipping_method=booking.shipping_method,
                trucking_company=booking.trucking_company,
                contact_name=destination.contact_name,
                contact_phone=destination.contact_phone,
                contact_email=request.contact_email,
                driver_name=booking.driver_name,
                driver_phone=booking.driver_phone,
                notes=destination.special_instructions,
            )
        except SchemaMissingError:
            await compensation.unwind()
            return await self._fallback(request, slot, notice)

        self._log_sequence_drift("schedule_outbound", request, sequence, load)
        await self._cross_link(load.id, shipment_id, None, appointment_id)
        await self._notify(notice.model_copy(update={"load_number": load.sequence_number}))

        message = (
            "Pickup submitted. MPS will confirm the after-hours slot shortly."
            if slot.is_after_hours
            else "Pickup request submitted. MPS will confirm your pickup shortly."
        )
        logger.info(
            f"[ShipmentProvisioningService.schedule_outbound] booked outbound load #{load.sequence_number} "
            f"for request {request.reference_id}",
            extra={"storage_request_id": request.id, "trucking_load_id": load.id},
        )
        return BookingResult(
            success=True,
            message=message,
            load=load,
            shipment_id=shipment_id,
            appointment_id=appointment_id,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _create_shipment(
        self,
        request: RequestRef,
        direction: str,
        slot: TimeSlot,
        compensation: CompensationStack,
        **fields,
    ) -> str:
        try:
            shipment = await self.repository.create_shipment(
                request_id=request.id,
                company_id=request.company_id,
                direction=direction,
                status="SCHEDULING" if slot.is_after_hours else "SCHEDULED",
                number_of_trucks=1,
                surcharge_applicable=slot.is_after_hours,
                surcharge_amount=_decimal(slot.surcharge_amount) if slot.is_after_hours else Decimal("0"),
                **fields,
            )
        except SchemaMissingError:
            raise
        except TransientStoreError as exc:
            logger.error(
                f"[ShipmentProvisioningService._create_shipment] {exc.message}",
                extra={"storage_request_id": request.id},
            )
            raise ProvisioningError("Failed to create the shipment. Please try again.") from exc

        shipment_id = shipment.id
        compensation.push(f"shipment {shipment_id}", lambda: self.repository.delete_shipment(shipment_id))
        return shipment_id

    async def _create_truck(
        self,
        shipment_id: str,
        booking: InboundBookingCreate,
        slot: TimeSlot,
        compensation: CompensationStack,
    ) -> Optional[str]:
        try:
            truck = await self.repository.create_truck(
                shipment_id=shipment_id,
                sequence_number=1,
                status="PENDING" if slot.is_after_hours else "SCHEDULED",
                trucking_company=booking.trucking_company,
                contact_name=booking.driver_name or booking.storage_contact_name,
                contact_phone=booking.driver_phone or booking.storage_contact_phone,
                contact_email=booking.storage_contact_email,
                scheduled_slot_start=slot.start,
                scheduled_slot_end=slot.end,
                notes=booking.notes,
            )
        except SchemaMissingError:
            raise
        except TransientStoreError:
            logger.exception(
                "[ShipmentProvisioningService._create_truck] continuing without a truck record",
                extra={"shipment_id": shipment_id},
            )
            return None

        truck_id = truck.id
        compensation.push(f"shipment truck {truck_id}", lambda: self.repository.delete_truck(truck_id))
        return truck_id

    async def _ensure_appointment(
        self,
        shipment_id: str,
        truck_id: Optional[str],
        slot: TimeSlot,
        compensation: CompensationStack,
    ) -> Optional[str]:
        try:
            existing = await self.repository.find_appointment_by_shipment(shipment_id)
            if existing:
                return existing.id
            appointment = await self.repository.create_appointment(
                shipment_id=shipment_id,
                truck_id=truck_id,
                slot_start=slot.start,
                slot_end=slot.end,
                after_hours=slot.is_after_hours,
                surcharge_applied=slot.is_after_hours,
                status="PENDING" if slot.is_after_hours else "CONFIRMED",
            )
        except SchemaMissingError:
            raise
        except TransientStoreError:
            logger.exception(
                "[ShipmentProvisioningService._ensure_appointment] continuing without a dock appointment",
                extra={"shipment_id": shipment_id},
            )
            return None

        appointment_id = appointment.id
        compensation.push(
            f"dock appointment {appointment_id}",
            lambda: self.repository.delete_appointment(appointment_id),
        )
        return appointment_id

    async def _create_load(self, compensation: CompensationStack, **fields) -> TruckingLoadResponse:
        """Insert the load at the authoritative next sequence number.

        The sequence is re-read here because the number allocated at the start
        of the booking may have been taken by another submission since.
        """
        request_id = fields["storage_request_id"]
        direction = fields["direction"]
        sequence = 0
        try:
            sequence = await self.sequencer.next_sequence_number(request_id, direction)
            if await self.sequencer.load_exists_at(request_id, direction, sequence):
                raise DuplicateLoadError(
                    f"Load #{sequence} already exists for this request. Refresh to see the latest bookings.",
                    sequence_number=sequence,
                )
            load = await self.repository.create_load(sequence_number=sequence, **fields)
        except SchemaMissingError:
            raise
        except DuplicateLoadError:
            await compensation.unwind()
            raise
        except TransientStoreError as exc:
            await compensation.unwind()
            if isinstance(exc.original, IntegrityError):
                raise DuplicateLoadError(
                    f"Load #{sequence} was just booked by another submission. Refresh and try again.",
                    sequence_number=sequence,
                ) from exc
            logger.error(
                f"[ShipmentProvisioningService._create_load] {exc.message}",
                extra={"storage_request_id": request_id},
            )
            raise ProvisioningError("Unable to create trucking load. Please try again.") from exc

        compensation.clear()
        return TruckingLoadResponse.model_validate(load)

    def _log_sequence_drift(self, operation: str, request: RequestRef, allocated: int, load: TruckingLoadResponse) -> None:
        if load.sequence_number != allocated:
            logger.info(
                f"[ShipmentProvisioningService.{operation}] load number moved from {allocated} "
                f"to {load.sequence_number} while booking",
                extra={"storage_request_id": request.id},
            )

    async def _cross_link(
        self,
        load_id: str,
        shipment_id: str,
        truck_id: Optional[str],
        appointment_id: Optional[str],
    ) -> None:
        links = [(Shipment, shipment_id), (ShipmentTruck, truck_id), (DockAppointment, appointment_id)]
        for model, record_id in links:
            if not record_id:
                continue
            try:
                await self.repository.link_to_load(model, record_id, load_id)
            except TransientStoreError:
                logger.exception(
                    f"[ShipmentProvisioningService._cross_link] failed to link {model.__tablename__} {record_id}",
                    extra={"trucking_load_id": load_id},
                )

    async def _attach_uploaded(
        self,
        load_id: str,
        booking: InboundBookingCreate,
        truck_id: Optional[str],
    ) -> List[TruckingDocumentResponse]:
        if not booking.documents:
            return []
        uploads = [
            PendingUpload(file_name=ref.file_name, document_type=ref.document_type, storage_path=ref.storage_path)
            for ref in booking.documents
        ]
        try:
            load = await self.db.get(TruckingLoad, load_id, populate_existing=True)
            documents = await self.documents.attach_documents(
                load,
                uploads,
                truck_id=truck_id,
                uploaded_by=booking.created_by,
            )
        except Exception:
            logger.exception(
                "[ShipmentProvisioningService._attach_uploaded] failed to attach documents",
                extra={"trucking_load_id": load_id},
            )
            return []
        return [TruckingDocumentResponse.model_validate(document) for document in documents]

    async def _notify(self, notification: BookingNotification) -> None:
        try:
            await self.notifier.notify_booking(notification)
        except Exception:
            logger.exception(
                "[ShipmentProvisioningService._notify] booking notification failed",
                extra={"reference_id": notification.reference_id},
            )

    async def _fallback(self, request: RequestRef, slot: TimeSlot, notice: BookingNotification) -> BookingResult:
        """Hand the booking to the logistics team when shipment tables are missing."""
        logger.warning(
            "[ShipmentProvisioningService._fallback] shipment tables unavailable, notifying logistics instead",
            extra={"storage_request_id": request.id, "direction": notice.direction},
        )
        results = await self.notifier.notify_booking(notice.model_copy(update={"degraded": True}))
        if not any(result.success for result in results):
            raise ProvisioningError(
                "Scheduling is temporarily unavailable and MPS logistics could not be notified. Please try again."
            )

        kind = "Pickup" if notice.direction == LoadDirection.OUTBOUND.value else "Delivery"
        message = (
            f"{kind} request sent to MPS logistics. After-hours slots require manual confirmation."
            if slot.is_after_hours
            else f"{kind} request sent to MPS logistics. Our team will follow up to confirm your slot."
        )
        return BookingResult(success=True, message=message, degraded=True)
