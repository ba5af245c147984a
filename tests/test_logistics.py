import pytest

from pipeyard.services.logistics import (
    aggregate_load_state,
    derive_customer_status_label,
    get_load_state_label,
    get_request_logistics_snapshot,
    get_status_badge_tone,
    sort_loads,
)

from factories import project, snapshot


def _label(request_status="APPROVED", inbound=(), outbound=()):
    return derive_customer_status_label(
        request_status,
        aggregate_load_state(inbound),
        aggregate_load_state(outbound),
        inbound,
        outbound,
    )


@pytest.mark.parametrize(
    "statuses,expected",
    [
        ([], "NONE"),
        (["REJECTED"], "NONE"),
        (["COMPLETED", "NEW", "IN_TRANSIT"], "IN_PROGRESS"),
        (["COMPLETED", "NEW", "APPROVED"], "APPROVED"),
        (["COMPLETED", "NEW"], "PENDING"),
        (["COMPLETED", "REJECTED", "COMPLETED"], "COMPLETED"),
    ],
)
def test_aggregate_load_state(statuses, expected):
    loads = [snapshot(index + 1, status) for index, status in enumerate(statuses)]

    assert aggregate_load_state(loads) == expected


def test_state_labels_per_direction():
    assert get_load_state_label("NONE", "INBOUND") is None
    assert get_load_state_label("PENDING", "INBOUND") == "Pending Trucking Approval"
    assert get_load_state_label("IN_PROGRESS", "INBOUND") == "Trucking to MPS"
    assert get_load_state_label("COMPLETED", "INBOUND") == "Stored at MPS"
    assert get_load_state_label("PENDING", "OUTBOUND") == "Pending Approval Trucking from MPS"
    assert get_load_state_label("COMPLETED", "OUTBOUND") == "Complete"


def test_sort_loads_does_not_reorder_input():
    loads = [snapshot(3, "NEW"), snapshot(1, "COMPLETED"), snapshot(2, "APPROVED")]

    ordered = sort_loads(loads)

    assert [load.sequence_number for load in ordered] == [1, 2, 3]
    assert [load.sequence_number for load in loads] == [3, 1, 2]


def test_rejected_request_wins():
    assert _label("REJECTED", inbound=[snapshot(1, "IN_TRANSIT")]) == "Storage Request Rejected"


def test_newest_pickup_takes_precedence():
    inbound = [snapshot(1, "COMPLETED"), snapshot(2, "IN_TRANSIT")]
    outbound = [snapshot(1, "COMPLETED", "OUTBOUND"), snapshot(2, "NEW", "OUTBOUND")]

    assert _label(inbound=inbound, outbound=outbound) == "Pickup Load 2 pending confirmation"


@pytest.mark.parametrize(
    "status,expected",
    [
        ("APPROVED", "Pickup Load 1 scheduled"),
        ("IN_TRANSIT", "Pickup Load 1 en route"),
        ("COMPLETED", "Complete"),
    ],
)
def test_pickup_phrases(status, expected):
    outbound = [snapshot(1, status, "OUTBOUND")]

    assert _label(inbound=[snapshot(1, "COMPLETED")], outbound=outbound) == expected


@pytest.mark.parametrize(
    "status,expected",
    [
        ("NEW", "Load 2 pending confirmation"),
        ("APPROVED", "Load 2 booked"),
        ("IN_TRANSIT", "Load 2 en route"),
        ("COMPLETED", "Load 2 stored on site"),
    ],
)
def test_delivery_phrases(status, expected):
    inbound = [snapshot(2, status), snapshot(1, "COMPLETED")]

    assert _label(inbound=inbound) == expected


def test_rejected_newest_delivery_falls_back_to_aggregate():
    inbound = [snapshot(1, "COMPLETED"), snapshot(2, "REJECTED")]

    assert _label(inbound=inbound) == "Stored at MPS"


@pytest.mark.parametrize(
    "request_status,expected",
    [
        ("PENDING", "Pending Pipe Storage Approval"),
        ("APPROVED", "Approved for Storage"),
        ("DRAFT", "Draft"),
        ("SOMETHING_NEW", "Pending Pipe Storage Approval"),
    ],
)
def test_no_loads_uses_request_status(request_status, expected):
    assert _label(request_status) == expected


@pytest.mark.parametrize(
    "label,tone",
    [
        ("Storage Request Rejected", "danger"),
        ("Pickup Load 2 pending confirmation", "pending"),
        ("Trucking to MPS", "info"),
        ("Stored at MPS", "success"),
        ("Approved for Storage", "success"),
        ("Complete", "success"),
        ("Load 1 en route", "neutral"),
    ],
)
def test_status_badge_tone(label, tone):
    assert get_status_badge_tone(label) == tone


def test_request_snapshot():
    view = project(
        total_joints_estimate=200,
        loads=[
            snapshot(2, "IN_TRANSIT", total_joints_planned=90),
            snapshot(1, "COMPLETED", total_joints_planned=100, total_joints_completed=98),
        ],
    )

    result = get_request_logistics_snapshot(view)

    assert [load.sequence_number for load in result.inbound_loads] == [1, 2]
    assert result.outbound_loads == ()
    assert result.inbound_state == "IN_PROGRESS"
    assert result.outbound_state == "NONE"
    assert result.customer_status_label == "Load 2 en route"
    assert result.inbound_status_label == "Trucking to MPS"
    assert result.outbound_status_label is None
    assert result.inbound_progress.planned_joints == 190
    assert result.inbound_progress.completed_joints == 98
    assert result.inbound_progress.remaining_joints == 92


def test_request_snapshot_falls_back_to_estimate():
    result = get_request_logistics_snapshot(project(total_joints_estimate=200, loads=[snapshot(1, "NEW")]))

    assert result.inbound_progress.planned_joints == 200
    assert result.inbound_progress.remaining_joints == 200
    assert result.customer_status_tone == "pending"
