from datetime import datetime

from pipeyard.services.time_slots import build_slot, generate_time_slots, is_within_receiving_hours

from factories import WEEKDAY_EVENING, WEEKDAY_MORNING


def test_receiving_hours(settings):
    assert is_within_receiving_hours(WEEKDAY_MORNING, settings)
    assert is_within_receiving_hours(datetime(2026, 10, 19, 7, 0), settings)
    assert not is_within_receiving_hours(datetime(2026, 10, 19, 16, 0), settings)
    assert not is_within_receiving_hours(datetime(2026, 10, 19, 6, 0), settings)
    assert not is_within_receiving_hours(datetime(2026, 10, 17, 10, 0), settings)


def test_after_hours_slot_carries_surcharge(settings):
    slot = build_slot(WEEKDAY_EVENING, settings)

    assert slot.is_after_hours
    assert slot.surcharge_amount == 450
    assert slot.end == datetime(2026, 10, 19, 18, 0)


def test_regular_slot_has_no_surcharge(settings):
    slot = build_slot(WEEKDAY_MORNING, settings)

    assert not slot.is_after_hours
    assert slot.surcharge_amount == 0


def test_generate_skips_weekends_and_past_slots(settings):
    slots = generate_time_slots(datetime(2026, 10, 19, 12, 30), settings=settings)

    assert len(slots) == 123
    assert slots[0].start == datetime(2026, 10, 19, 13, 0)
    assert slots[-1].start == datetime(2026, 10, 30, 18, 0)
    assert all(slot.start.weekday() < 5 for slot in slots)
    assert sum(1 for slot in slots if slot.is_after_hours) == 9 * 4 + 3


def test_generate_skips_booked_slots(settings):
    booked = [datetime(2026, 10, 20, 9, 0, 30)]

    slots = generate_time_slots(datetime(2026, 10, 19, 12, 30), blocked=booked, settings=settings)

    assert len(slots) == 122
    assert datetime(2026, 10, 20, 9, 0) not in {slot.start for slot in slots}


def test_generate_from_weekend(settings):
    slots = generate_time_slots(datetime(2026, 10, 17, 8, 0), settings=settings)

    assert slots[0].start == datetime(2026, 10, 19, 6, 0)
