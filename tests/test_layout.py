"""
Tests for the calendar column layout.
"""

import pendulum
import pytest

from slotengine.domain.exceptions import InvalidInputError
from slotengine.domain.layout import layout
from slotengine.domain.models import BookedInterval

TZ = "Europe/Berlin"


def _appt(appointment_id: str, start: str, end: str) -> BookedInterval:
    return BookedInterval(
        start=pendulum.parse(f"2024-11-25 {start}", tz=TZ),
        end=pendulum.parse(f"2024-11-25 {end}", tz=TZ),
        appointment_id=appointment_id,
    )


def _as_tuples(assignments):
    return [(a.appointment_id, a.column, a.total_columns, a.cluster) for a in assignments]


class TestLayout:

    def test_two_overlapping_then_one_alone(self):
        appointments = [
            _appt("a1", "09:00", "10:00"),
            _appt("a2", "09:30", "10:30"),
            _appt("a3", "10:30", "11:00"),
        ]

        assert _as_tuples(layout(appointments)) == [
            ("a1", 0, 2, 0),
            ("a2", 1, 2, 0),
            ("a3", 0, 1, 1),
        ]

    def test_transitive_overlap_shares_column_count(self):
        """a and c never overlap but are joined through b."""
        appointments = [
            _appt("c", "10:30", "11:30"),
            _appt("a", "09:00", "10:00"),
            _appt("b", "09:45", "10:45"),
        ]

        assert _as_tuples(layout(appointments)) == [
            ("a", 0, 2, 0),
            ("b", 1, 2, 0),
            ("c", 0, 2, 0),
        ]

    def test_overlapping_appointments_never_share_a_column(self):
        appointments = [
            _appt("a", "09:00", "12:00"),
            _appt("b", "09:00", "10:00"),
            _appt("c", "09:30", "10:30"),
            _appt("d", "10:00", "11:00"),
            _appt("e", "11:00", "11:30"),
        ]

        result = {a.appointment_id: a for a in layout(appointments)}
        by_id = {appt.appointment_id: appt for appt in appointments}

        for first in appointments:
            for second in appointments:
                if first is second:
                    continue
                overlap = first.start < second.end and second.start < first.end
                if overlap:
                    assert result[first.appointment_id].column != result[second.appointment_id].column
        assert {a.total_columns for a in result.values()} == {3}
        assert all(0 <= a.column < a.total_columns for a in result.values())
        assert set(result) == set(by_id)

    def test_identical_times_get_separate_columns_in_id_order(self):
        appointments = [_appt("b", "09:00", "10:00"), _appt("a", "09:00", "10:00")]

        assert _as_tuples(layout(appointments)) == [("a", 0, 2, 0), ("b", 1, 2, 0)]

    def test_layout_is_idempotent(self):
        appointments = [
            _appt("a1", "09:00", "10:00"),
            _appt("a2", "09:30", "10:30"),
        ]

        assert layout(appointments) == layout(list(reversed(appointments)))

    def test_empty_input(self):
        assert layout([]) == []

    def test_missing_id_is_rejected(self):
        appointment = BookedInterval(
            start=pendulum.parse("2024-11-25 09:00", tz=TZ),
            end=pendulum.parse("2024-11-25 10:00", tz=TZ),
        )

        with pytest.raises(InvalidInputError, match="needs an id"):
            layout([appointment])

    def test_duplicate_id_is_rejected(self):
        with pytest.raises(InvalidInputError, match="Duplicate"):
            layout([_appt("a1", "09:00", "10:00"), _appt("a1", "11:00", "12:00")])
