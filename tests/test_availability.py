"""
Tests for the time grid and the availability filter.
"""

import pendulum
from datetime import time

from slotengine.domain.availability import RejectionReason, check_availability, is_free
from slotengine.domain.models import BookedInterval, BreakPeriod, DaySchedule, OperatingHours, WeeklySchedule
from slotengine.domain.time_grid import generate_candidates, iter_days

TZ = "Europe/Berlin"


def _at(value: str):
    return pendulum.parse(value, tz=TZ)


def _booking(start: str, end: str, appointment_id: str = "a1") -> BookedInterval:
    return BookedInterval(start=_at(start), end=_at(end), appointment_id=appointment_id)


SALON_HOURS = OperatingHours(
    start=time(8, 0),
    end=time(18, 0),
    business_days={0, 1, 2, 3, 4, 5},
    breaks=[BreakPeriod(start=time(13, 0), end=time(14, 0))],
    step_minutes=15,
)


class TestTimeGrid:

    def test_steps_from_opening_until_closing(self):
        hours = OperatingHours(start=time(9, 0), end=time(12, 0), step_minutes=30)

        candidates = generate_candidates(_at("2024-11-25"), hours)

        assert [c.format("HH:mm") for c in candidates] == [
            "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
        ]

    def test_uneven_step_never_reaches_closing_time(self):
        hours = OperatingHours(start=time(9, 0), end=time(10, 0), step_minutes=25)

        candidates = generate_candidates(_at("2024-11-25"), hours)

        assert [c.format("HH:mm") for c in candidates] == ["09:00", "09:25", "09:50"]

    def test_closed_day_has_no_candidates(self):
        assert generate_candidates(_at("2024-11-24"), SALON_HOURS) == ()

    def test_candidates_can_be_iterated_twice(self):
        candidates = generate_candidates(_at("2024-11-25"), SALON_HOURS)

        assert list(candidates) == list(candidates)
        assert len(candidates) == 40

    def test_iter_days_is_inclusive(self):
        days = list(iter_days(_at("2024-11-25 15:00"), _at("2024-11-27 09:00")))

        assert [d.format("YYYY-MM-DD HH:mm") for d in days] == [
            "2024-11-25 00:00",
            "2024-11-26 00:00",
            "2024-11-27 00:00",
        ]


class TestAvailabilityFilter:

    def test_free_inside_hours(self):
        assert is_free(_at("2024-11-25 09:00"), 60, SALON_HOURS, [])

    def test_service_must_not_spill_past_closing(self):
        rejection = check_availability(_at("2024-11-25 17:30"), 40, SALON_HOURS, [])

        assert rejection.reason is RejectionReason.OUTSIDE_HOURS

    def test_service_may_end_exactly_at_closing(self):
        assert is_free(_at("2024-11-25 17:20"), 40, SALON_HOURS, [])

    def test_start_before_opening_is_rejected(self):
        rejection = check_availability(_at("2024-11-25 07:45"), 30, SALON_HOURS, [])

        assert rejection.reason is RejectionReason.OUTSIDE_HOURS

    def test_closed_day_is_rejected(self):
        rejection = check_availability(_at("2024-11-24 10:00"), 30, SALON_HOURS, [])

        assert rejection.reason is RejectionReason.CLOSED_DAY

    def test_overlapping_a_break_is_rejected(self):
        rejection = check_availability(_at("2024-11-25 12:40"), 40, SALON_HOURS, [])

        assert rejection.reason is RejectionReason.BREAK
        assert "13:00-14:00" in rejection.detail

    def test_touching_a_break_is_allowed(self):
        """Ending at the break start or starting at the break end is fine."""
        assert is_free(_at("2024-11-25 12:20"), 40, SALON_HOURS, [])
        assert is_free(_at("2024-11-25 14:00"), 40, SALON_HOURS, [])

    def test_break_for_other_weekday_is_ignored(self):
        hours = OperatingHours(
            start=time(8, 0),
            end=time(18, 0),
            breaks=[BreakPeriod(start=time(10, 0), end=time(10, 30), weekday=5)],
        )

        assert is_free(_at("2024-11-25 10:00"), 30, hours, [])
        assert not is_free(_at("2024-11-30 10:00"), 30, hours, [])

    def test_overlapping_a_booking_is_rejected(self):
        bookings = [_booking("2024-11-25 10:00", "2024-11-25 10:30")]

        rejection = check_availability(_at("2024-11-25 09:45"), 30, SALON_HOURS, bookings)

        assert rejection.reason is RejectionReason.CONFLICT
        assert "a1" in rejection.detail

    def test_adjacent_bookings_do_not_conflict(self):
        bookings = [
            _booking("2024-11-25 09:00", "2024-11-25 09:30", "a1"),
            _booking("2024-11-25 10:30", "2024-11-25 11:00", "a2"),
        ]

        assert is_free(_at("2024-11-25 09:30"), 60, SALON_HOURS, bookings)


class TestWeeklySchedules:
    """Per-weekday hours of the salon and of single employees."""

    EMPLOYEE = WeeklySchedule(
        days=[
            DaySchedule(
                weekday=0,
                start=time(10, 0),
                end=time(16, 0),
                breaks=[BreakPeriod(start=time(12, 0), end=time(12, 30))],
            ),
            DaySchedule(weekday=1, available=False),
        ]
    )

    def test_inside_employee_hours_is_free(self):
        assert is_free(_at("2024-11-25 10:00"), 60, SALON_HOURS, [], self.EMPLOYEE)

    def test_employee_day_off_is_rejected(self):
        rejection = check_availability(_at("2024-11-26 10:00"), 30, SALON_HOURS, [], self.EMPLOYEE)

        assert rejection.reason is RejectionReason.OFF_SCHEDULE
        assert "Tuesday" in rejection.detail

    def test_missing_weekday_is_a_day_off(self):
        rejection = check_availability(_at("2024-11-27 10:00"), 30, SALON_HOURS, [], self.EMPLOYEE)

        assert rejection.reason is RejectionReason.OFF_SCHEDULE

    def test_outside_employee_hours_is_rejected(self):
        rejection = check_availability(_at("2024-11-25 15:40"), 30, SALON_HOURS, [], self.EMPLOYEE)

        assert rejection.reason is RejectionReason.OFF_SCHEDULE
        assert "employee hours" in rejection.detail

    def test_employee_break_is_rejected(self):
        rejection = check_availability(_at("2024-11-25 11:45"), 30, SALON_HOURS, [], self.EMPLOYEE)

        assert rejection.reason is RejectionReason.BREAK
        assert "employee break" in rejection.detail

    def test_salon_hours_still_apply(self):
        long_day = WeeklySchedule(days=[DaySchedule(weekday=0, start=time(6, 0), end=time(22, 0))])

        rejection = check_availability(_at("2024-11-25 07:00"), 30, SALON_HOURS, [], long_day)

        assert rejection.reason is RejectionReason.OUTSIDE_HOURS

    def test_salon_weekly_hours_replace_the_default_window(self):
        hours = OperatingHours(
            start=time(8, 0),
            end=time(18, 0),
            weekly=WeeklySchedule(
                days=[
                    DaySchedule(weekday=0, start=time(12, 0), end=time(20, 0)),
                    DaySchedule(
                        weekday=5,
                        start=time(9, 0),
                        end=time(14, 0),
                        breaks=[BreakPeriod(start=time(11, 0), end=time(11, 30))],
                    ),
                ]
            ),
        )

        assert is_free(_at("2024-11-25 19:00"), 60, hours, [])
        assert check_availability(_at("2024-11-25 10:00"), 30, hours, []).reason is RejectionReason.OUTSIDE_HOURS
        assert check_availability(_at("2024-11-26 10:00"), 30, hours, []).reason is RejectionReason.CLOSED_DAY
        assert check_availability(_at("2024-11-30 11:00"), 30, hours, []).reason is RejectionReason.BREAK
