from datetime import date, time

from courtqueue.models.court_availability import CourtAvailability
from courtqueue.models.court_booking import BOOKING_CANCELLED, CourtBooking
from courtqueue.services import availability_service, booking_service, court_service
from courtqueue.services.slot_generator import generate_slots, get_available_slots, list_courts_with_slots
from courtqueue.utils import clock

DAY = date(2026, 3, 2)


def _window(open_time, close_time):
    return CourtAvailability(court_id=1, day_of_week=1, open_time=open_time, close_time=close_time)


def _booking(start, end, status="confirmed"):
    return CourtBooking(court_id=1, day_date=DAY, start_time=start, end_time=end, status=status)


def test_no_availability_means_no_slots():
    assert generate_slots(None, []) == []


def test_slots_tile_the_window_without_overlap():
    slots = generate_slots(_window(time(8), time(12)), [])

    assert [(s.start, s.end) for s in slots] == [
        (time(8), time(9)),
        (time(9), time(10)),
        (time(10), time(11)),
        (time(11), time(12)),
    ]
    assert all(s.available for s in slots)
    for earlier, later in zip(slots, slots[1:]):
        assert earlier.end <= later.start


def test_trailing_partial_slot_is_dropped():
    slots = generate_slots(_window(time(8), time(10, 30)), [])

    assert [(s.start, s.end) for s in slots] == [(time(8), time(9)), (time(9), time(10))]
    assert all(s.end <= time(10, 30) for s in slots)


def test_window_shorter_than_a_slot_yields_nothing():
    assert generate_slots(_window(time(8), time(8, 45)), []) == []


def test_partially_overlapped_slots_are_unavailable():
    bookings = [_booking(time(9, 30), time(10, 30))]

    slots = generate_slots(_window(time(8), time(12)), bookings)

    assert [s.available for s in slots] == [True, False, False, True]


def test_cancelled_bookings_do_not_block_slots():
    bookings = [_booking(time(9), time(10), status=BOOKING_CANCELLED)]

    slots = generate_slots(_window(time(8), time(11)), bookings)

    assert all(s.available for s in slots)


def test_custom_slot_length():
    slots = generate_slots(_window(time(8), time(9, 30)), [], slot_minutes=30)
    assert [s.to_dict()["start"] for s in slots] == ["08:00", "08:30", "09:00"]


def test_to_dict_uses_hhmm():
    slot = generate_slots(_window(time(8), time(9)), [])[0]
    assert slot.to_dict() == {"start": "08:00", "end": "09:00", "available": True}


def test_get_available_slots_reads_bookings(session, open_all_week):
    day = DAY
    booking_service.create_booking(session, open_all_week.id, day, time(10), time(11), user_id=1, today=day)

    slots = get_available_slots(session, open_all_week.id, day)

    assert len(slots) == 14
    taken = [s.to_dict()["start"] for s in slots if not s.available]
    assert taken == ["10:00"]


def test_get_available_slots_empty_on_closed_day(session, court):
    assert get_available_slots(session, court.id, DAY) == []
    assert clock.day_of_week(DAY) == 1


def test_list_courts_with_slots_skips_closed_and_inactive_courts(session, open_all_week):
    # DAY is a Monday (1); this court only opens on Sundays
    sunday_only = court_service.create_court(session, owner_id=101, name="Sunday court")
    availability_service.create_availability(session, sunday_only.id, 0, time(8), time(12))
    inactive = court_service.create_court(session, owner_id=102, name="Resurfacing", is_active=False)
    availability_service.create_availability(session, inactive.id, 1, time(8), time(12))
    evening = court_service.create_court(session, owner_id=103, name="Evening court", hourly_rate=250)
    availability_service.create_availability(session, evening.id, 1, time(18), time(20))

    listed = list_courts_with_slots(session, DAY)

    assert [entry.court.id for entry in listed] == [open_all_week.id, evening.id]
    assert listed[1].to_dict() == {
        "id": evening.id,
        "name": "Evening court",
        "hourly_rate": 250,
        "reservation_fee_percentage": 0,
        "slots": [
            {"start": "18:00", "end": "19:00", "available": True},
            {"start": "19:00", "end": "20:00", "available": True},
        ],
    }


def test_list_courts_with_slots_marks_bookings(session, open_all_week):
    booking_service.create_booking(session, open_all_week.id, DAY, time(8), time(9), user_id=1, today=DAY)

    listed = list_courts_with_slots(session, DAY)

    assert listed[0].slots[0].available is False
    assert all(slot.available for slot in listed[0].slots[1:])
