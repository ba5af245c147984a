from __future__ import annotations

import asyncio
import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from typing import Dict, List, Optional, Protocol

import httpx
from pydantic import BaseModel

from pipeyard.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class NotificationResult:
    def __init__(self, success: bool, detail: str = "") -> None:
        self.success = success
        self.detail = detail


class NotificationSender(Protocol):
    async def send(self, recipient: str, subject: str, body: str) -> NotificationResult:
        ...


class EmailSender:
    """Delivers to the logistics inbox over SMTP with STARTTLS."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def configured(self) -> bool:
        settings = self.settings
        return bool(settings.smtp_host and settings.smtp_username and settings.smtp_password)

    def _compose(self, recipient: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = f"{self.settings.facility_name} <{self.settings.smtp_username}>"
        message["To"] = recipient
        message["Subject"] = f"[{self.settings.facility_name}] {subject}"
        message.set_content(body)
        return message

    def _deliver(self, message: EmailMessage) -> None:
        settings = self.settings
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.notification_timeout_seconds) as server:
            server.starttls()
            server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(message)

    async def send(self, recipient: str, subject: str, body: str) -> NotificationResult:
        if not self.configured:
            return NotificationResult(False, "SMTP not configured")
        if not recipient:
            return NotificationResult(False, "No logistics inbox configured")
        try:
            await asyncio.to_thread(self._deliver, self._compose(recipient, subject, body))
        except (smtplib.SMTPException, OSError) as exc:
            logger.exception("[EmailSender.send] SMTP delivery failed", extra={"recipient": recipient})
            return NotificationResult(False, f"SMTP failure: {exc}")
        return NotificationResult(True, f"Emailed {recipient}")


class SlackSender:
    """Posts to the yard's logistics channel through an incoming webhook.

    The dispatch recipient is the email inbox, so it is never used here.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.settings = settings
        self.transport = transport

    def _payload(self, subject: str, body: str) -> dict:
        return {
            "text": subject,
            "blocks": [
                {"type": "header", "text": {"type": "plain_text", "text": subject[:150]}},
                {"type": "section", "text": {"type": "mrkdwn", "text": body}},
            ],
        }

    async def send(self, recipient: str, subject: str, body: str) -> NotificationResult:
        webhook = self.settings.slack_webhook_url
        if not webhook:
            return NotificationResult(False, "Slack webhook not configured")

        async with httpx.AsyncClient(
            transport=self.transport,
            timeout=self.settings.notification_timeout_seconds,
        ) as client:
            response = await client.post(webhook, json=self._payload(subject, body))
        if response.is_success:
            return NotificationResult(True, "Posted to Slack")
        logger.error(f"[SlackSender.send] webhook returned {response.status_code}", extra={"body": response.text})
        return NotificationResult(False, f"Slack failure: {response.status_code}")


class LogSender:
    async def send(self, recipient: str, subject: str, body: str) -> NotificationResult:
        logger.info("Notification recorded", extra={"recipient": recipient, "subject": subject})
        return NotificationResult(True, "Recorded in application log")


def build_channel_registry(settings: Optional[Settings] = None) -> Dict[str, NotificationSender]:
    settings = settings or get_settings()
    return {
        "email": EmailSender(settings),
        "slack": SlackSender(settings),
        "log": LogSender(),
    }


class BookingNotification(BaseModel):
    """Structured payload handed to the logistics team for a delivery or pickup."""
    reference_id: str
    company_name: str
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    direction: str = "INBOUND"
    load_number: Optional[int] = None
    slot_start: datetime
    slot_end: datetime
    is_after_hours: bool = False
    surcharge_amount: Optional[float] = None
    trucking_company: Optional[str] = None
    driver_name: Optional[str] = None
    destination: Optional[str] = None
    degraded: bool = False  # sent instead of creating shipment records

    def subject(self) -> str:
        kind = "Pickup" if self.direction == "OUTBOUND" else "Delivery"
        if self.degraded:
            return f"{kind} request for {self.reference_id} (manual booking required)"
        return f"{kind} booked: {self.reference_id} Load #{self.load_number}"

    def body(self) -> str:
        lines = [
            f"Company: {self.company_name}",
            f"Reference: {self.reference_id}",
            f"Window: {self.slot_start:%Y-%m-%d %H:%M} - {self.slot_end:%H:%M}",
        ]
        if self.load_number is not None:
            lines.append(f"Load #: {self.load_number}")
        if self.contact_name or self.contact_email or self.contact_phone:
            contact = " / ".join(v for v in (self.contact_name, self.contact_phone, self.contact_email) if v)
            lines.append(f"Contact: {contact}")
        if self.trucking_company:
            driver = f" ({self.driver_name})" if self.driver_name else ""
            lines.append(f"Trucking: {self.trucking_company}{driver}")
        if self.destination:
            lines.append(f"Destination: {self.destination}")
        if self.is_after_hours:
            lines.append(f"After-hours slot, surcharge ${self.surcharge_amount or 0:,.2f} (needs confirmation)")
        return "\n".join(lines)


class NotificationService:
    """Fans a message out to the configured channels without ever raising."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[Dict[str, NotificationSender]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.registry = registry if registry is not None else build_channel_registry(self.settings)

    async def dispatch(self, subject: str, body: str) -> List[NotificationResult]:
        results: List[NotificationResult] = []
        recipient = self.settings.notification_recipient or ""
        for channel in self.settings.notification_channels:
            sender = self.registry.get(channel)
            if sender is None:
                results.append(NotificationResult(False, f"Unknown channel {channel}"))
                continue
            try:
                result = await asyncio.wait_for(
                    sender.send(recipient, subject, body),
                    timeout=self.settings.notification_timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning(f"[NotificationService.dispatch] {channel} timed out")
                result = NotificationResult(False, f"{channel} timed out")
            except Exception as exc:
                logger.exception(f"[NotificationService.dispatch] {channel} failed")
                result = NotificationResult(False, f"{channel} failure: {exc}")
            results.append(result)
        return results

    async def notify_booking(self, notification: BookingNotification) -> List[NotificationResult]:
        return await self.dispatch(notification.subject(), notification.body())

    async def notify_load_status(self, request, load) -> List[NotificationResult]:
        reference = getattr(request, "reference_id", None) or load.storage_request_id
        kind = "Pickup load" if load.direction == "OUTBOUND" else "Load"
        subject = f"{kind} #{load.sequence_number} for {reference} is now {load.status}"
        lines = [f"Company: {getattr(request, 'company_name', None) or 'Unknown Company'}"]
        if load.rejection_reason:
            lines.append(f"Reason: {load.rejection_reason}")
        if load.status == "COMPLETED":
            lines.append(f"Joints: {load.total_joints_completed or 0}")
        return await self.dispatch(subject, "\n".join(lines))
