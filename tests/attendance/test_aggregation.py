from datetime import datetime, timezone

from src.attendance_sync.attendance_sync.attendance.aggregation import (
    ShiftTimes,
    aggregate,
    break_minutes,
    build_day,
    fill_missing_dates,
    group_key,
    is_missed_checkout,
    is_stale_check_in,
    is_within_shift_window,
)
from src.attendance_sync.attendance_sync.core.enums import AttendanceStatus

from tests.fakes import make_record, ms


def _day(days, date):
    return next(d for d in days if d.date_of_punch == date)


def test_overnight_checkout_moves_to_check_in_day(fixed_now):
    records = [
        make_record(ms(2025, 1, 10, 22), "IN"),
        make_record(ms(2025, 1, 11, 2, 30), "OUT"),
    ]

    days = aggregate(records, now=fixed_now)

    d10 = _day(days, "2025-01-10")
    d11 = _day(days, "2025-01-11")
    assert [r.timestamp for r in d10.records] == [ms(2025, 1, 10, 22), ms(2025, 1, 11, 2, 30)]
    assert d11.records == ()
    assert d10.total_duration == "04:30"
    assert d11.attendance_status == AttendanceStatus.ABSENT


def test_only_earliest_early_checkout_is_linked(fixed_now):
    records = [
        make_record(ms(2025, 1, 10, 22), "IN"),
        make_record(ms(2025, 1, 11, 1), "OUT"),
        make_record(ms(2025, 1, 11, 3), "OUT"),
        make_record(ms(2025, 1, 11, 7), "OUT"),
    ]

    days = aggregate(records, now=fixed_now)

    assert len(_day(days, "2025-01-10").records) == 2
    assert [r.timestamp for r in _day(days, "2025-01-11").records] == [ms(2025, 1, 11, 3), ms(2025, 1, 11, 7)]


def test_late_morning_checkout_is_not_linked(fixed_now):
    records = [
        make_record(ms(2025, 1, 10, 22), "IN"),
        make_record(ms(2025, 1, 11, 6, 30), "OUT"),
    ]

    days = aggregate(records, now=fixed_now)

    assert len(_day(days, "2025-01-10").records) == 1
    assert _day(days, "2025-01-10").attendance_status == AttendanceStatus.PARTIAL


def test_linked_entry_date_groups_out_under_check_in_day():
    out = make_record(ms(2025, 1, 11, 2), "OUT", linked_entry_date="2025-01-10")
    punch_in = make_record(ms(2025, 1, 11, 2), "IN", linked_entry_date="2025-01-10")

    assert group_key(out) == "2025-01-10"
    assert group_key(punch_in) == "2025-01-11"


def test_total_and_break_durations(fixed_now):
    records = [
        make_record(ms(2025, 1, 13, 9), "IN"),
        make_record(ms(2025, 1, 13, 12), "OUT", attendance_status="LUNCH"),
        make_record(ms(2025, 1, 13, 12, 30), "IN"),
        make_record(ms(2025, 1, 13, 18), "OUT"),
    ]

    day = aggregate(records, now=fixed_now)[0]

    assert day.total_duration == "09:00"
    assert day.break_duration == "00:30"
    assert day.worked_hours == 9.0
    assert day.attendance_status == AttendanceStatus.PRESENT


def test_hours_deficit_versus_present(fixed_now):
    short = [
        make_record(ms(2025, 1, 13, 9), "IN", minimum_hours_required=8),
        make_record(ms(2025, 1, 13, 16, 30), "OUT"),
    ]
    enough = [
        make_record(ms(2025, 1, 14, 9), "IN", minimum_hours_required=8),
        make_record(ms(2025, 1, 14, 17, 15), "OUT"),
    ]

    days = aggregate(short + enough, now=fixed_now)

    assert _day(days, "2025-01-13").attendance_status == AttendanceStatus.HOURS_DEFICIT
    assert _day(days, "2025-01-13").total_duration == "07:30"
    assert _day(days, "2025-01-14").attendance_status == AttendanceStatus.PRESENT


def test_minimum_hours_defaults_to_eight(fixed_now):
    records = [
        make_record(ms(2025, 1, 13, 9), "IN"),
        make_record(ms(2025, 1, 13, 16, 59), "OUT"),
    ]

    assert aggregate(records, now=fixed_now)[0].attendance_status == AttendanceStatus.HOURS_DEFICIT


def test_empty_past_day_is_absent(fixed_now):
    day = build_day("2025-01-10", [], now=fixed_now)

    assert day.attendance_status == AttendanceStatus.ABSENT


def test_empty_today_inside_shift_is_partial(fixed_now):
    shift = ShiftTimes("09:00", "18:00")

    inside = build_day("2025-01-15", [], now=fixed_now, default_shift=shift)
    no_shift = build_day("2025-01-15", [], now=fixed_now)

    assert inside.attendance_status == AttendanceStatus.PARTIAL
    assert no_shift.attendance_status == AttendanceStatus.ABSENT


def test_open_day_today_within_shift_is_present(fixed_now):
    records = [make_record(ms(2025, 1, 15, 3, 30), "IN", shift_start_time="09:00", shift_end_time="18:00")]

    day = aggregate(records, now=fixed_now)[0]

    assert day.attendance_status == AttendanceStatus.PRESENT
    assert day.worked_hours == 2.0
    assert day.total_duration == "00:00"


def test_open_day_in_past_is_partial(fixed_now):
    records = [make_record(ms(2025, 1, 12, 3, 30), "IN", shift_start_time="09:00", shift_end_time="18:00")]

    assert aggregate(records, now=fixed_now)[0].attendance_status == AttendanceStatus.PARTIAL


def test_check_in_without_shift_times_counts_as_active(fixed_now):
    records = [make_record(ms(2025, 1, 15, 3, 30), "IN")]

    assert is_within_shift_window(records, now=fixed_now) is True
    assert aggregate(records, now=fixed_now)[0].attendance_status == AttendanceStatus.PRESENT


def test_overnight_shift_window():
    records = [make_record(ms(2025, 1, 15, 16), "IN", shift_start_time="22:00", shift_end_time="06:00")]
    late_evening = datetime(2025, 1, 15, 17, 30, tzinfo=timezone.utc)  # 23:00 IST
    early_morning = datetime(2025, 1, 15, 23, 0, tzinfo=timezone.utc)  # 04:30 IST
    midday = datetime(2025, 1, 15, 5, 30, tzinfo=timezone.utc)  # 11:00 IST

    assert is_within_shift_window(records, now=late_evening)
    assert is_within_shift_window(records, now=early_morning)
    assert not is_within_shift_window(records, now=midday)


def test_ist_date_counts_as_today():
    now = datetime(2025, 1, 15, 20, 0, tzinfo=timezone.utc)  # 2025-01-16 01:30 IST
    shift = ShiftTimes("00:00", "23:59")

    assert build_day("2025-01-16", [], now=now, default_shift=shift).attendance_status == AttendanceStatus.PARTIAL


def test_days_sorted_most_recent_first(fixed_now):
    records = [make_record(ms(2025, 1, d, 9), "IN") for d in (3, 11, 7)]

    assert [d.date_of_punch for d in aggregate(records, now=fixed_now)] == [
        "2025-01-11",
        "2025-01-07",
        "2025-01-03",
    ]


def test_requires_approval_when_any_record_flags_it(fixed_now):
    records = [
        make_record(ms(2025, 1, 13, 9), "IN"),
        make_record(ms(2025, 1, 13, 18), "OUT", approval_required=True),
    ]

    assert aggregate(records, now=fixed_now)[0].requires_approval is True


def test_fill_missing_dates_up_to_today(fixed_now):
    days = aggregate(
        [make_record(ms(2025, 1, 13, 9), "IN"), make_record(ms(2025, 1, 13, 18), "OUT")], now=fixed_now
    )

    filled = fill_missing_dates(days, month="2025-01", now=fixed_now)

    assert len(filled) == 15
    assert filled[0].date_of_punch == "2025-01-15"
    assert filled[-1].date_of_punch == "2025-01-01"
    assert _day(filled, "2025-01-02").attendance_status == AttendanceStatus.ABSENT
    assert _day(filled, "2025-01-13").attendance_status == AttendanceStatus.PRESENT


def test_stale_and_missed_checkout(fixed_now):
    stale = make_record(ms(2025, 1, 10, 3, 30), "IN")
    today = make_record(ms(2025, 1, 14, 3, 30), "IN", shift_start_time="09:00", shift_end_time="18:00")
    fresh = make_record(ms(2025, 1, 15, 3, 30), "IN", shift_start_time="09:00", shift_end_time="18:00")

    assert is_stale_check_in(stale, now=fixed_now)
    assert not is_stale_check_in(today, now=fixed_now)
    assert is_missed_checkout(today, now=fixed_now)
    assert not is_missed_checkout(fresh, now=fixed_now)


def test_back_to_back_break_outs_count_only_the_gap_before_resume():
    records = [
        make_record(ms(2025, 1, 13, 9), "IN"),
        make_record(ms(2025, 1, 13, 12), "OUT", attendance_status="LUNCH"),
        make_record(ms(2025, 1, 13, 12, 10), "OUT", attendance_status="TEA"),
        make_record(ms(2025, 1, 13, 13), "IN"),
        make_record(ms(2025, 1, 13, 18), "OUT"),
    ]

    assert break_minutes(records) == 50
