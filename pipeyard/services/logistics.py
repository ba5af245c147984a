"""Customer-facing status derived from a request's trucking loads.

Everything here is a pure projection over a ``ProjectView``; nothing is
persisted and inputs are never reordered in place.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence

from pipeyard.schemas.logistics import LoadSnapshot, ProjectView, RequestLogisticsSnapshot
from pipeyard.services.progress import summarize_load_totals

INBOUND_STATE_LABELS = {
    "PENDING": "Pending Trucking Approval",
    "APPROVED": "Trucking to MPS",
    "IN_PROGRESS": "Trucking to MPS",
    "COMPLETED": "Stored at MPS",
}

OUTBOUND_STATE_LABELS = {
    "PENDING": "Pending Approval Trucking from MPS",
    "APPROVED": "Trucking from MPS",
    "IN_PROGRESS": "Trucking from MPS",
    "COMPLETED": "Complete",
}

OUTBOUND_LOAD_PHRASES = {
    "NEW": "pending confirmation",
    "APPROVED": "scheduled",
    "IN_TRANSIT": "en route",
}

INBOUND_LOAD_PHRASES = {
    "NEW": "pending confirmation",
    "APPROVED": "booked",
    "IN_TRANSIT": "en route",
}

REQUEST_STATUS_LABELS = {
    "PENDING": "Pending Pipe Storage Approval",
    "APPROVED": "Approved for Storage",
    "COMPLETED": "Complete",
    "DRAFT": "Draft",
}

# Checked in order; first match wins
_TONE_PATTERNS = (
    (re.compile(r"Rejected", re.IGNORECASE), "danger"),
    (re.compile(r"Pending", re.IGNORECASE), "pending"),
    (re.compile(r"Trucking", re.IGNORECASE), "info"),
    (re.compile(r"Stored|Approved|Complete", re.IGNORECASE), "success"),
)


def sort_loads(loads: Iterable[LoadSnapshot]) -> List[LoadSnapshot]:
    return sorted(list(loads), key=lambda load: load.sequence_number)


def aggregate_load_state(loads: Sequence[LoadSnapshot]) -> str:
    statuses = [load.status for load in loads]
    if "IN_TRANSIT" in statuses:
        return "IN_PROGRESS"
    if "APPROVED" in statuses:
        return "APPROVED"
    if "NEW" in statuses:
        return "PENDING"
    active = [status for status in statuses if status != "REJECTED"]
    if active and all(status == "COMPLETED" for status in active):
        return "COMPLETED"
    return "NONE"


def get_load_state_label(state: str, direction: str) -> Optional[str]:
    if state == "NONE":
        return None
    labels = INBOUND_STATE_LABELS if direction == "INBOUND" else OUTBOUND_STATE_LABELS
    return labels[state]


def _newest(loads: Sequence[LoadSnapshot]) -> Optional[LoadSnapshot]:
    return max(loads, key=lambda load: load.sequence_number) if loads else None


def derive_customer_status_label(
    request_status: str,
    inbound_state: str,
    outbound_state: str,
    inbound_loads: Sequence[LoadSnapshot],
    outbound_loads: Sequence[LoadSnapshot],
) -> str:
    if request_status == "REJECTED":
        return "Storage Request Rejected"

    # The newest pickup says more about the project than any delivery does
    newest_outbound = _newest(outbound_loads)
    if newest_outbound:
        number = newest_outbound.sequence_number
        if newest_outbound.status in OUTBOUND_LOAD_PHRASES:
            return f"Pickup Load {number} {OUTBOUND_LOAD_PHRASES[newest_outbound.status]}"
        if newest_outbound.status == "COMPLETED":
            return "Complete"

    newest_inbound = _newest(inbound_loads)
    if newest_inbound:
        number = newest_inbound.sequence_number
        if newest_inbound.status in INBOUND_LOAD_PHRASES:
            return f"Load {number} {INBOUND_LOAD_PHRASES[newest_inbound.status]}"
        if newest_inbound.status == "COMPLETED" and outbound_state == "NONE":
            return f"Load {number} stored on site"

    if outbound_state == "PENDING":
        return OUTBOUND_STATE_LABELS["PENDING"]
    if outbound_state in ("APPROVED", "IN_PROGRESS"):
        return OUTBOUND_STATE_LABELS["APPROVED"]
    if outbound_state == "COMPLETED":
        return "Complete"
    if inbound_state == "PENDING":
        return INBOUND_STATE_LABELS["PENDING"]
    if inbound_state in ("APPROVED", "IN_PROGRESS"):
        return INBOUND_STATE_LABELS["APPROVED"]
    if inbound_state == "COMPLETED" and outbound_state == "NONE":
        return INBOUND_STATE_LABELS["COMPLETED"]

    return REQUEST_STATUS_LABELS.get(request_status, REQUEST_STATUS_LABELS["PENDING"])


def get_status_badge_tone(label: str) -> str:
    for pattern, tone in _TONE_PATTERNS:
        if pattern.search(label):
            return tone
    return "neutral"


def get_request_logistics_snapshot(project: ProjectView) -> RequestLogisticsSnapshot:
    inbound_loads = sort_loads(project.inbound_loads)
    outbound_loads = sort_loads(project.outbound_loads)
    inbound_state = aggregate_load_state(inbound_loads)
    outbound_state = aggregate_load_state(outbound_loads)

    label = derive_customer_status_label(
        project.status,
        inbound_state,
        outbound_state,
        inbound_loads,
        outbound_loads,
    )
    return RequestLogisticsSnapshot(
        inbound_loads=tuple(inbound_loads),
        outbound_loads=tuple(outbound_loads),
        inbound_state=inbound_state,
        outbound_state=outbound_state,
        customer_status_label=label,
        customer_status_tone=get_status_badge_tone(label),
        inbound_status_label=get_load_state_label(inbound_state, "INBOUND"),
        outbound_status_label=get_load_state_label(outbound_state, "OUTBOUND"),
        inbound_progress=summarize_load_totals(inbound_loads, project.total_joints_estimate),
        outbound_progress=summarize_load_totals(outbound_loads),
    )
