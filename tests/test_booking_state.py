"""Unit tests for booking lifecycle transitions."""

import pytest

from cabbooking.domain.entities import check_transition
from cabbooking.domain.enums import BookingStatus
from cabbooking.domain.exceptions import InvalidStateTransition


class TestBookingStateMachine:
    # ── Valid transitions ─────────────────────────────────────────

    def test_pending_to_confirmed(self):
        check_transition(BookingStatus.PENDING, BookingStatus.CONFIRMED)

    def test_confirmed_to_completed(self):
        check_transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED)

    def test_confirmed_to_cancelled(self):
        check_transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED)

    def test_accepts_raw_status_strings(self):
        check_transition("CONFIRMED", BookingStatus.COMPLETED)

    # ── Invalid transitions ───────────────────────────────────────

    def test_pending_to_completed_fails(self):
        with pytest.raises(InvalidStateTransition):
            check_transition(BookingStatus.PENDING, BookingStatus.COMPLETED)

    @pytest.mark.parametrize("terminal", [BookingStatus.COMPLETED, BookingStatus.CANCELLED])
    def test_terminal_states_have_no_exits(self, terminal):
        with pytest.raises(InvalidStateTransition):
            check_transition(terminal, BookingStatus.CONFIRMED)

    def test_cancelled_cannot_complete(self):
        with pytest.raises(InvalidStateTransition, match="CANCELLED to COMPLETED"):
            check_transition(BookingStatus.CANCELLED, BookingStatus.COMPLETED)
