import asyncio
from datetime import datetime

import httpx

from pipeyard.core.config import Settings
from pipeyard.services.notifications import (
    BookingNotification,
    EmailSender,
    LogSender,
    NotificationService,
    SlackSender,
)

from factories import RecordingSender


class ExplodingSender:
    async def send(self, recipient, subject, body):
        raise RuntimeError("smtp down")


class SlowSender:
    async def send(self, recipient, subject, body):
        await asyncio.sleep(1)


def _notice(**fields):
    return BookingNotification(
        reference_id="REF-1001",
        company_name="Summit Drilling",
        slot_start=datetime(2026, 10, 19, 17, 0),
        slot_end=datetime(2026, 10, 19, 18, 0),
        **fields,
    )


async def test_dispatch_reports_every_channel():
    settings = Settings(_env_file=None, notification_channels=["ok", "boom", "pager"])
    ok = RecordingSender()
    service = NotificationService(settings, registry={"ok": ok, "boom": ExplodingSender()})

    results = await service.dispatch("subject", "body")

    assert [result.success for result in results] == [True, False, False]
    assert results[1].detail == "boom failure: smtp down"
    assert results[2].detail == "Unknown channel pager"
    assert ok.messages == [("subject", "body")]


async def test_dispatch_times_out_slow_channels():
    settings = Settings(_env_file=None, notification_channels=["slow"], notification_timeout_seconds=0.01)
    service = NotificationService(settings, registry={"slow": SlowSender()})

    results = await service.dispatch("subject", "body")

    assert results[0].success is False
    assert results[0].detail == "slow timed out"


def test_booking_notification_text():
    notice = _notice(
        direction="OUTBOUND",
        load_number=2,
        contact_name="Dana Reyes",
        contact_phone="306-555-0100",
        destination="04-12-045-22W4 / Summit 4-12",
        is_after_hours=True,
        surcharge_amount=450,
    )

    assert notice.subject() == "Pickup booked: REF-1001 Load #2"
    assert notice.body().splitlines() == [
        "Company: Summit Drilling",
        "Reference: REF-1001",
        "Window: 2026-10-19 17:00 - 18:00",
        "Load #: 2",
        "Contact: Dana Reyes / 306-555-0100",
        "Destination: 04-12-045-22W4 / Summit 4-12",
        "After-hours slot, surcharge $450.00 (needs confirmation)",
    ]


def test_degraded_subject():
    assert _notice(degraded=True).subject() == "Delivery request for REF-1001 (manual booking required)"


async def test_unconfigured_senders_decline():
    settings = Settings(_env_file=None)

    assert (await EmailSender(settings).send("ops@example.com", "s", "b")).success is False
    assert (await SlackSender(settings).send("", "s", "b")).success is False
    assert (await LogSender().send("", "s", "b")).success is True


async def test_slack_posts_only_to_the_webhook():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200)

    settings = Settings(
        _env_file=None,
        slack_webhook_url="https://hooks.slack.example/T000/B000",
        notification_recipient="logistics@mps.example",
    )
    sender = SlackSender(settings, transport=httpx.MockTransport(handler))

    result = await sender.send(settings.notification_recipient, "Delivery booked", "Load #: 1")

    assert result.success
    assert [str(request.url) for request in requests] == ["https://hooks.slack.example/T000/B000"]


async def test_slack_ignores_email_recipient_without_webhook():
    requests = []
    sender = SlackSender(
        Settings(_env_file=None),
        transport=httpx.MockTransport(lambda request: requests.append(request) or httpx.Response(200)),
    )

    result = await sender.send("logistics@mps.example", "Delivery booked", "Load #: 1")

    assert result.success is False
    assert result.detail == "Slack webhook not configured"
    assert requests == []


async def test_slack_reports_rejected_post():
    settings = Settings(_env_file=None, slack_webhook_url="https://hooks.slack.example/T000/B000")
    sender = SlackSender(settings, transport=httpx.MockTransport(lambda request: httpx.Response(404, text="no_team")))

    result = await sender.send("", "Delivery booked", "Load #: 1")

    assert (result.success, result.detail) == (False, "Slack failure: 404")


def test_email_is_branded_with_the_facility():
    settings = Settings(_env_file=None, smtp_host="smtp.example", smtp_username="yard@mps.example", smtp_password="x")

    message = EmailSender(settings)._compose("logistics@mps.example", "Delivery booked", "Load #: 1")

    assert message["From"] == "MPS Pipe Storage <yard@mps.example>"
    assert message["Subject"] == "[MPS Pipe Storage] Delivery booked"
