from datetime import datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select

from pipeyard.core.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from pipeyard.models.inventory import InventoryItem
from pipeyard.schemas.trucking import LoadStatusUpdate
from pipeyard.services.load_lifecycle import (
    LoadLifecycleService,
    classify_transition,
    ensure_transition,
    is_valid_transition,
    validate_transition,
)
from pipeyard.services.repository import ProjectRepository
from pipeyard.services.workflow_state import calculate_workflow_state

from factories import make_document, make_inventory, make_load, make_request

STATUSES = ["NEW", "APPROVED", "IN_TRANSIT", "COMPLETED", "REJECTED"]

ALLOWED = {
    ("NEW", "NEW"),
    ("NEW", "APPROVED"),
    ("NEW", "REJECTED"),
    ("APPROVED", "APPROVED"),
    ("APPROVED", "IN_TRANSIT"),
    ("IN_TRANSIT", "IN_TRANSIT"),
    ("IN_TRANSIT", "COMPLETED"),
    ("COMPLETED", "COMPLETED"),
    ("REJECTED", "REJECTED"),
}


@pytest.mark.parametrize("current", STATUSES)
@pytest.mark.parametrize("target", STATUSES)
def test_transition_table(current, target):
    expected = (current, target) in ALLOWED

    assert is_valid_transition(current, target) is expected
    assert (validate_transition(current, target) is None) is expected


def test_rejected_pairs_count():
    rejected = [(a, b) for a in STATUSES for b in STATUSES if not is_valid_transition(a, b)]

    assert len(rejected) == 16


@pytest.mark.parametrize(
    "current,target,kind,message",
    [
        ("COMPLETED", "NEW", "terminal", "Cannot change status of a completed load"),
        ("REJECTED", "APPROVED", "terminal", "Cannot change status of a rejected load"),
        ("IN_TRANSIT", "APPROVED", "in_transit_only", "Loads in transit can only be marked as completed"),
        ("IN_TRANSIT", "REJECTED", "in_transit_only", "Loads in transit can only be marked as completed"),
        ("APPROVED", "REJECTED", "rejection_after_approval", "Only pending loads can be rejected"),
        ("APPROVED", "NEW", "reversion", "Cannot revert an approved load to pending status"),
        (
            "NEW",
            "IN_TRANSIT",
            "skipped_stage",
            "Cannot skip from NEW to IN_TRANSIT; the load must be approved first",
        ),
        (
            "APPROVED",
            "COMPLETED",
            "skipped_stage",
            "Cannot skip from APPROVED to COMPLETED; the load must be in transit first",
        ),
    ],
)
def test_illegal_transition_messages(current, target, kind, message):
    assert classify_transition(current, target) == kind
    assert validate_transition(current, target) == message


def test_ensure_transition_raises_with_statuses():
    with pytest.raises(InvalidTransitionError) as excinfo:
        ensure_transition("NEW", "COMPLETED")

    assert excinfo.value.from_status == "NEW"
    assert excinfo.value.to_status == "COMPLETED"


def test_rejection_requires_a_reason():
    with pytest.raises(PydanticValidationError):
        LoadStatusUpdate(status="REJECTED", rejection_reason="  ")


async def test_approve_sets_timestamp_and_notifies(db, notifier, sender):
    request = await make_request(db)
    load = await make_load(db, request, 1)

    updated = await LoadLifecycleService(db, notifier).transition(load.id, LoadStatusUpdate(status="APPROVED"))

    assert updated.status == "APPROVED"
    assert updated.approved_at is not None
    subject, _ = sender.messages[0]
    assert subject == "Load #1 for REF-1001 is now APPROVED"


async def test_reject_records_reason(db):
    request = await make_request(db)
    load = await make_load(db, request, 1)

    updated = await LoadLifecycleService(db).transition(
        load.id, LoadStatusUpdate(status="REJECTED", rejection_reason="Yard full")
    )

    assert updated.status == "REJECTED"
    assert updated.rejection_reason == "Yard full"


async def test_same_status_is_a_no_op(db, notifier, sender):
    request = await make_request(db)
    load = await make_load(db, request, 1, status="APPROVED")

    updated = await LoadLifecycleService(db, notifier).transition(load.id, LoadStatusUpdate(status="APPROVED"))

    assert updated.status == "APPROVED"
    assert updated.approved_at is None
    assert sender.messages == []


async def test_illegal_transition_leaves_load_untouched(db):
    request = await make_request(db)
    load = await make_load(db, request, 1)
    service = LoadLifecycleService(db)

    with pytest.raises(InvalidTransitionError):
        await service.transition(load.id, LoadStatusUpdate(status="COMPLETED"))

    assert (await service.get_load(load.id)).status == "NEW"


async def test_unknown_load(db):
    with pytest.raises(NotFoundError):
        await LoadLifecycleService(db).transition("missing", LoadStatusUpdate(status="APPROVED"))


async def test_completing_inbound_load_stores_inventory(db):
    request = await make_request(db)
    load = await make_load(
        db,
        request,
        1,
        status="IN_TRANSIT",
        total_joints_planned=80,
        total_length_ft_planned=Decimal("3200.00"),
    )

    updated = await LoadLifecycleService(db).transition(
        load.id, LoadStatusUpdate(status="COMPLETED", actual_joints=78, rack_name="A-1")
    )

    assert updated.completed_at is not None
    assert updated.total_joints_completed == 78
    assert updated.total_length_ft_completed == Decimal("3200.00")
    items = (await db.execute(select(InventoryItem))).scalars().all()
    assert [(item.joints, item.rack_name, item.trucking_load_id) for item in items] == [(78, "A-1", load.id)]


async def test_completing_inbound_load_defaults_to_planned_joints(db):
    request = await make_request(db)
    load = await make_load(db, request, 1, status="IN_TRANSIT", total_joints_planned=40)

    updated = await LoadLifecycleService(db).transition(load.id, LoadStatusUpdate(status="COMPLETED"))

    assert updated.total_joints_completed == 40


async def test_completing_outbound_load_draws_down_inventory(db):
    request = await make_request(db)
    inbound = await make_load(db, request, 1, status="COMPLETED")
    first = await make_inventory(
        db, request, 30, load=inbound, rack_name="A-1", created_at=datetime(2026, 10, 1, 9, 0)
    )
    second = await make_inventory(
        db, request, 50, load=inbound, rack_name="B-2", created_at=datetime(2026, 10, 2, 9, 0)
    )
    pickup = await make_load(db, request, 1, status="IN_TRANSIT", direction="OUTBOUND")

    await LoadLifecycleService(db).transition(pickup.id, LoadStatusUpdate(status="COMPLETED", actual_joints=45))

    await db.refresh(first)
    await db.refresh(second)
    assert (first.joints, first.status) == (0, "PICKED_UP")
    assert (second.joints, second.status) == (35, "IN_STORAGE")


async def test_completing_pickup_requires_joint_count(db):
    request = await make_request(db)
    inbound = await make_load(db, request, 1, status="COMPLETED")
    stored = await make_inventory(db, request, 80, load=inbound, rack_name="A-1")
    pickup = await make_load(db, request, 1, status="IN_TRANSIT", direction="OUTBOUND")
    service = LoadLifecycleService(db)

    with pytest.raises(ValidationError) as excinfo:
        await service.transition(pickup.id, LoadStatusUpdate(status="COMPLETED"))

    assert excinfo.value.message == "Enter the number of joints picked up to complete this pickup"
    await db.refresh(pickup)
    await db.refresh(stored)
    assert pickup.status == "IN_TRANSIT"
    assert pickup.completed_at is None
    assert (stored.joints, stored.status) == (80, "IN_STORAGE")


async def test_completing_every_pickup_returns_all_pipe(db):
    request = await make_request(db)
    inbound = await make_load(db, request, 1, status="COMPLETED")
    await make_document(db, inbound, parsed_payload=[{"quantity": 80}])
    await make_inventory(db, request, 80, load=inbound, rack_name="A-1")
    pickup = await make_load(db, request, 1, status="IN_TRANSIT", direction="OUTBOUND")

    await LoadLifecycleService(db).transition(pickup.id, LoadStatusUpdate(status="COMPLETED", actual_joints=80))

    view = await ProjectRepository(db).load_project(request.id)
    assert view.inventory.total_joints == 0
    assert calculate_workflow_state(view).label == "All Pipe Returned"
