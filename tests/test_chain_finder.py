"""
Tests for chained (back-to-back) slot finding.
"""

import pendulum
import pytest
from datetime import time

from slotengine.domain.availability import Rejection, RejectionReason, is_free
from slotengine.domain.budget import SearchBudget
from slotengine.domain.chain_finder import ChainSlotFinder
from slotengine.domain.exceptions import InvalidInputError, SearchBudgetExceeded
from slotengine.domain.models import (
    BookedInterval,
    BreakPeriod,
    ChainBlock,
    ChainService,
    DaySchedule,
    OperatingHours,
    WeeklySchedule,
)

TZ = "Europe/Berlin"


def _at(value: str):
    return pendulum.parse(value, tz=TZ)


def _booking(start: str, end: str, appointment_id: str = "a1") -> BookedInterval:
    return BookedInterval(start=_at(start), end=_at(end), appointment_id=appointment_id)


def _starts(blocks):
    return [b.block_start.format("HH:mm") for b in blocks]


class TestSalonScenario:
    """
    Mon-Sat 08:00-18:00, lunch 13:00-14:00. A 40 minute cut by anyone
    followed by a 20 minute color with E, who is booked 15:00-15:30.
    """

    def setup_method(self):
        self.hours = OperatingHours(
            start=time(8, 0),
            end=time(18, 0),
            business_days={0, 1, 2, 3, 4, 5},
            breaks=[BreakPeriod(start=time(13, 0), end=time(14, 0))],
            step_minutes=20,
        )
        self.finder = ChainSlotFinder(self.hours)
        self.chain = [
            ChainService(service_id="cut", duration_minutes=40),
            ChainService(service_id="color", duration_minutes=20, employee_id="E"),
        ]
        self.bookings = {"E": [_booking("2024-11-25 15:00", "2024-11-25 15:30")], "A": []}
        self.pools = {"cut": ["A", "E"], "color": ["E"]}

    def test_block_running_into_booking_is_rejected(self):
        blocks = self.finder.find_chain_slots(_at("2024-11-25"), self.chain, self.bookings, self.pools)

        assert "14:40" not in _starts(blocks)

        rejection = self.finder.evaluate_chain_at(_at("2024-11-25 14:40"), self.chain, self.bookings, self.pools)
        assert isinstance(rejection, Rejection)
        assert rejection.reason is RejectionReason.CONFLICT

    def test_block_ending_at_booking_is_accepted(self):
        blocks = self.finder.find_chain_slots(_at("2024-11-25"), self.chain, self.bookings, self.pools)
        by_start = {b.block_start.format("HH:mm"): b for b in blocks}

        block = by_start["14:00"]
        assert [(i.service_id, i.employee_id, i.start.format("HH:mm"), i.end.format("HH:mm")) for i in block.intervals] == [
            ("cut", "A", "14:00", "14:40"),
            ("color", "E", "14:40", "15:00"),
        ]
        assert block.block_end == _at("2024-11-25 15:00")

    def test_blocks_crossing_the_break_are_rejected(self):
        starts = _starts(self.finder.find_chain_slots(_at("2024-11-25"), self.chain, self.bookings, self.pools))

        assert "12:00" in starts
        assert "12:20" not in starts
        assert "12:40" not in starts
        assert "13:00" not in starts

    def test_whole_chain_fits_before_closing(self):
        blocks = self.finder.find_chain_slots(_at("2024-11-25"), self.chain, self.bookings, self.pools)

        assert _starts(blocks)[-1] == "17:00"
        assert all(b.block_end <= _at("2024-11-25 18:00") for b in blocks)

    def test_sunday_has_no_blocks(self):
        assert self.finder.find_chain_slots(_at("2024-11-24"), self.chain, self.bookings, self.pools) == []

    def test_every_interval_passes_the_filter(self):
        blocks = self.finder.find_chain_slots(_at("2024-11-25"), self.chain, self.bookings, self.pools)

        for block in blocks:
            cursor = block.block_start
            for interval in block.intervals:
                assert interval.start == cursor
                assert is_free(
                    interval.start,
                    (interval.end - interval.start).in_minutes(),
                    self.hours,
                    self.bookings.get(interval.employee_id, []),
                )
                cursor = interval.end

    def test_same_input_same_output(self):
        first = self.finder.find_chain_slots(_at("2024-11-25"), self.chain, self.bookings, self.pools)
        second = self.finder.find_chain_slots(_at("2024-11-25"), self.chain, self.bookings, self.pools)

        assert first == second


class TestAllOrNothing:

    def setup_method(self):
        self.hours = OperatingHours(start=time(9, 0), end=time(12, 0), step_minutes=30)
        self.finder = ChainSlotFinder(self.hours)

    def test_failing_second_step_rejects_the_start(self):
        chain = [
            ChainService(service_id="wash", duration_minutes=30, employee_id="E"),
            ChainService(service_id="cut", duration_minutes=30, employee_id="E"),
        ]
        bookings = {"E": [_booking("2024-11-25 10:00", "2024-11-25 10:30")]}

        blocks = self.finder.find_chain_slots(_at("2024-11-25"), chain, bookings, {})

        assert _starts(blocks) == ["09:00", "10:30", "11:00"]

    def test_fully_booked_pool_explains_itself(self):
        chain = [ChainService(service_id="cut", duration_minutes=30)]
        bookings = {"A": [_booking("2024-11-25 09:00", "2024-11-25 12:00")]}

        outcome = self.finder.evaluate_chain_at(_at("2024-11-25 09:00"), chain, bookings, {"cut": ["A"]})

        assert outcome.reason is RejectionReason.NO_EMPLOYEE

    def test_empty_pool_yields_no_blocks(self):
        chain = [ChainService(service_id="cut", duration_minutes=30)]

        assert self.finder.find_chain_slots(_at("2024-11-25"), chain, {}, {"cut": []}) == []

    def test_single_service_chain_matches_slot_semantics(self):
        chain = [ChainService(service_id="cut", duration_minutes=30, employee_id="E")]
        bookings = {"E": [_booking("2024-11-25 10:00", "2024-11-25 10:30")]}

        blocks = self.finder.find_chain_slots(_at("2024-11-25"), chain, bookings, {})

        assert _starts(blocks) == ["09:00", "09:30", "10:30", "11:00", "11:30"]

    def test_empty_chain_is_an_error(self):
        with pytest.raises(InvalidInputError):
            self.finder.find_chain_slots(_at("2024-11-25"), [], {}, {})


class TestAutoAssignment:

    def test_earlier_steps_do_not_count_toward_load(self):
        """Only existing bookings count; a tie keeps the first employee for every step."""
        finder = ChainSlotFinder(OperatingHours(start=time(9, 0), end=time(10, 0), step_minutes=60))
        chain = [
            ChainService(service_id="wash", duration_minutes=30),
            ChainService(service_id="cut", duration_minutes=30),
        ]
        pools = {"wash": ["A", "B"], "cut": ["A", "B"]}

        blocks = finder.find_chain_slots(_at("2024-11-25"), chain, {}, pools)

        assert len(blocks) == 1
        assert blocks[0].employee_ids() == ["A", "A"]

    def test_least_loaded_employee_is_chosen(self):
        finder = ChainSlotFinder(OperatingHours(start=time(9, 0), end=time(18, 0), step_minutes=60))
        chain = [ChainService(service_id="cut", duration_minutes=30)]
        bookings = {
            "A": [_booking("2024-11-25 15:00", "2024-11-25 15:30", "a1")],
            "B": [],
        }

        outcome = finder.evaluate_chain_at(_at("2024-11-25 09:00"), chain, bookings, {"cut": ["A", "B"]})

        assert isinstance(outcome, ChainBlock)
        assert outcome.employee_ids() == ["B"]

    def test_employee_off_that_weekday_is_not_assigned(self):
        finder = ChainSlotFinder(OperatingHours(start=time(9, 0), end=time(18, 0), step_minutes=60))
        chain = [ChainService(service_id="cut", duration_minutes=30)]
        tuesdays_only = WeeklySchedule(days=[DaySchedule(weekday=1, start=time(9, 0), end=time(18, 0))])

        outcome = finder.evaluate_chain_at(
            _at("2024-11-25 09:00"),
            chain,
            {},
            {"cut": ["A", "B"]},
            {"A": tuesdays_only},
        )

        assert isinstance(outcome, ChainBlock)
        assert outcome.employee_ids() == ["B"]

    def test_fixed_step_outside_employee_hours_is_rejected(self):
        finder = ChainSlotFinder(OperatingHours(start=time(9, 0), end=time(18, 0), step_minutes=60))
        chain = [ChainService(service_id="cut", duration_minutes=30, employee_id="A")]
        mornings = WeeklySchedule(days=[DaySchedule(weekday=0, start=time(9, 0), end=time(12, 0))])

        blocks = finder.find_chain_slots(
            _at("2024-11-25"),
            chain,
            {},
            {},
            schedules_by_employee={"A": mornings},
        )

        assert _starts(blocks) == ["09:00", "10:00", "11:00"]


class TestChainBudget:

    def test_exhausted_budget_keeps_found_blocks(self):
        finder = ChainSlotFinder(OperatingHours(start=time(9, 0), end=time(12, 0), step_minutes=30))
        chain = [ChainService(service_id="cut", duration_minutes=30, employee_id="E")]

        with pytest.raises(SearchBudgetExceeded) as exc_info:
            finder.find_chain_slots(_at("2024-11-25"), chain, {}, {}, budget=SearchBudget(max_candidates=3))

        assert _starts(exc_info.value.partial) == ["09:00", "09:30", "10:00"]
