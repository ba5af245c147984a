"""Project-level workflow state.

The state is chosen by walking ``WORKFLOW_RULES`` top to bottom; the first
rule whose predicate holds builds the result. Order matters: manifest
processing is checked before "In Storage", and inbound work before outbound.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Tuple

from pipeyard.schemas.logistics import LoadSnapshot, ProjectView, WorkflowStateResult
from pipeyard.services.logistics import sort_loads

logger = logging.getLogger(__name__)

WAITING_STATUSES = frozenset({"NEW", "APPROVED", "IN_TRANSIT"})
ARRIVED_STATUSES = frozenset({"COMPLETED"})


@dataclass(frozen=True)
class ProjectFacts:
    """Signals derived once per evaluation; loads exclude rejected ones."""

    project: ProjectView
    inbound: Tuple[LoadSnapshot, ...]
    outbound: Tuple[LoadSnapshot, ...]
    next_inbound_number: int

    @classmethod
    def from_project(cls, project: ProjectView) -> "ProjectFacts":
        all_inbound = sort_loads(project.inbound_loads)
        highest = all_inbound[-1].sequence_number if all_inbound else 0
        return cls(
            project=project,
            inbound=tuple(load for load in all_inbound if load.status != "REJECTED"),
            outbound=tuple(load for load in sort_loads(project.outbound_loads) if load.status != "REJECTED"),
            next_inbound_number=highest + 1,
        )

    @property
    def status(self) -> str:
        return self.project.status

    @property
    def inventory_joints(self) -> int:
        return self.project.inventory.total_joints

    @property
    def next_waiting_inbound(self) -> Optional[LoadSnapshot]:
        return next((load for load in self.inbound if load.status in WAITING_STATUSES), None)

    @property
    def next_waiting_outbound(self) -> Optional[LoadSnapshot]:
        return next((load for load in self.outbound if load.status in WAITING_STATUSES), None)

    @property
    def all_inbound_arrived(self) -> bool:
        return bool(self.inbound) and all(load.status in ARRIVED_STATUSES for load in self.inbound)

    @property
    def all_manifests_processed(self) -> bool:
        return all(
            any(document.parsed_payload for document in load.documents)
            for load in self.inbound
        )


def _scheduled_date(load: LoadSnapshot) -> str:
    if load.scheduled_slot_start is None:
        return "TBD"
    return load.scheduled_slot_start.strftime("%Y-%m-%d")


def _pending_approval(_: ProjectFacts) -> WorkflowStateResult:
    return WorkflowStateResult(
        state="Pending Approval",
        label="Pending Admin Approval",
        badge_tone="pending",
        next_action="Admin must approve or reject this request",
    )


def _rejected(_: ProjectFacts) -> WorkflowStateResult:
    return WorkflowStateResult(state="Complete", label="Rejected", badge_tone="danger")


def _awaiting_first_delivery(facts: ProjectFacts) -> WorkflowStateResult:
    number = facts.next_inbound_number
    return WorkflowStateResult(
        state="Waiting on Load #N to MPS",
        label=f"Waiting on Load #{number} to MPS",
        badge_tone="info",
        next_action="Customer must schedule first delivery" if number == 1 else f"Customer must schedule Load #{number}",
    )


def _waiting_on_inbound(facts: ProjectFacts) -> WorkflowStateResult:
    load = facts.next_waiting_inbound
    return WorkflowStateResult(
        state="Waiting on Load #N to MPS",
        label=f"Waiting on Load #{load.sequence_number} to MPS",
        badge_tone="info",
        next_action=f"Load #{load.sequence_number} scheduled for {_scheduled_date(load)}",
    )


def _processing_manifests(_: ProjectFacts) -> WorkflowStateResult:
    return WorkflowStateResult(
        state="All Loads Received",
        label="Processing Manifests",
        badge_tone="info",
        next_action="Admin must upload and process manifest documents",
    )


def _in_storage(_: ProjectFacts) -> WorkflowStateResult:
    return WorkflowStateResult(
        state="In Storage",
        label="In Storage",
        badge_tone="success",
        next_action="Inventory stored. Awaiting customer pickup request.",
    )


def _waiting_on_pickup(facts: ProjectFacts) -> WorkflowStateResult:
    load = facts.next_waiting_outbound
    return WorkflowStateResult(
        state="Waiting on Load #N Pickup",
        label=f"Waiting on Load #{load.sequence_number} Pickup",
        badge_tone="info",
        next_action=f"Pickup scheduled for {_scheduled_date(load)}",
    )


def _all_pipe_returned(_: ProjectFacts) -> WorkflowStateResult:
    return WorkflowStateResult(state="Complete", label="All Pipe Returned", badge_tone="success")


def _pickup_in_progress(_: ProjectFacts) -> WorkflowStateResult:
    return WorkflowStateResult(
        state="Pickup Requested",
        label="Pickup in Progress",
        badge_tone="info",
        next_action="Outbound loads being prepared for pickup",
    )


class WorkflowRule(NamedTuple):
    name: str
    applies: Callable[[ProjectFacts], bool]
    build: Callable[[ProjectFacts], WorkflowStateResult]


WORKFLOW_RULES: List[WorkflowRule] = [
    WorkflowRule("pending_approval", lambda f: f.status == "PENDING", _pending_approval),
    WorkflowRule("rejected", lambda f: f.status == "REJECTED", _rejected),
    WorkflowRule(
        "awaiting_first_delivery",
        lambda f: f.status == "APPROVED" and not f.inbound,
        _awaiting_first_delivery,
    ),
    WorkflowRule("waiting_on_inbound", lambda f: f.next_waiting_inbound is not None, _waiting_on_inbound),
    WorkflowRule(
        "processing_manifests",
        lambda f: f.all_inbound_arrived and not f.all_manifests_processed,
        _processing_manifests,
    ),
    WorkflowRule(
        "in_storage",
        lambda f: f.all_inbound_arrived and f.inventory_joints > 0 and not f.outbound,
        _in_storage,
    ),
    WorkflowRule(
        "waiting_on_pickup",
        lambda f: bool(f.outbound) and f.next_waiting_outbound is not None,
        _waiting_on_pickup,
    ),
    WorkflowRule(
        "all_pipe_returned",
        lambda f: bool(f.outbound)
        and all(load.status == "COMPLETED" for load in f.outbound)
        and f.inventory_joints == 0,
        _all_pipe_returned,
    ),
    WorkflowRule("pickup_in_progress", lambda f: bool(f.outbound), _pickup_in_progress),
]

FALLBACK_STATE = WorkflowStateResult(state="In Storage", label="In Storage", badge_tone="neutral")


def calculate_workflow_state(project: ProjectView) -> WorkflowStateResult:
    facts = ProjectFacts.from_project(project)
    for rule in WORKFLOW_RULES:
        if rule.applies(facts):
            return rule.build(facts)

    logger.warning(
        f"[workflow_state] no workflow rule matched project {project.reference_id}",
        extra={
            "status": project.status,
            "inbound_count": len(facts.inbound),
            "outbound_count": len(facts.outbound),
            "inventory_joints": facts.inventory_joints,
        },
    )
    return FALLBACK_STATE


def calculate_project_progress(project: ProjectView) -> int:
    """Rough 0-100 completion: approval 10, deliveries up to 60, pickups up to 100."""
    if project.status == "REJECTED":
        return 0
    if project.status == "PENDING":
        return 10

    facts = ProjectFacts.from_project(project)
    if not facts.inbound:
        return 20

    arrived = sum(1 for load in facts.inbound if load.status in ARRIVED_STATUSES)
    inbound_progress = 20 + arrived / len(facts.inbound) * 40
    if facts.inventory_joints == 0 and not facts.outbound:
        return round(inbound_progress)
    if not facts.outbound:
        return 70

    completed = sum(1 for load in facts.outbound if load.status == "COMPLETED")
    return round(70 + completed / len(facts.outbound) * 30)


def requires_admin_action(project: ProjectView) -> bool:
    if project.status == "PENDING":
        return True
    facts = ProjectFacts.from_project(project)
    return facts.all_inbound_arrived and not facts.all_manifests_processed


def get_next_milestone(project: ProjectView) -> Optional[str]:
    return calculate_workflow_state(project).next_action
