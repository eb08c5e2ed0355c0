"""Tests for the time ledger (logged + live minutes)."""

from datetime import datetime

import pytest

from ticketdesk.models import TimeLogEntry
from ticketdesk.services.time_ledger import (
    TRACKING_DESCRIPTION,
    elapsed_minutes,
    format_duration,
    round_half_up,
)

from conftest import T0, make_ticket, minutes


def opening_log(**overrides):
    data = {"minutes": 0, "description": "Ticket opened", "timestamp": T0, "logged_by": "System"}
    data.update(overrides)
    return data


# =============================================================================
# Helpers
# =============================================================================


class TestHelpers:

    @pytest.mark.parametrize("value,expected", [
        (0, "0h 0m"),
        (59, "0h 59m"),
        (60, "1h 0m"),
        (125, "2h 5m"),
        (1441, "24h 1m"),
    ])
    def test_format_duration(self, value, expected):
        assert format_duration(value) == expected

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2
        assert round_half_up(0.5) == 1

    def test_elapsed_rounds_to_nearest_minute(self):
        assert elapsed_minutes(T0, T0 + minutes(10) + minutes(0.5)) == 11
        assert elapsed_minutes(T0, T0 + minutes(10) + minutes(0.4)) == 10

    def test_elapsed_clamps_clock_skew(self):
        assert elapsed_minutes(T0 + minutes(5), T0) == 0

    def test_elapsed_without_start_is_zero(self):
        assert elapsed_minutes(None, T0) == 0

    def test_naive_timestamps_are_utc(self):
        naive = datetime(2025, 3, 10, 8, 0)
        assert elapsed_minutes(naive, T0 + minutes(30)) == 30


# =============================================================================
# compute_elapsed
# =============================================================================


class TestComputeElapsed:

    def test_open_ticket_without_updates_accrues_from_creation(self, ledger):
        ticket = make_ticket()

        elapsed = ledger.compute_elapsed(ticket, T0 + minutes(125))

        assert elapsed.logged_minutes == 0
        assert elapsed.live_minutes == 125
        assert elapsed.total_minutes == 125
        assert elapsed.display == "2h 5m"

    def test_live_tail_starts_at_last_update(self, ledger):
        ticket = make_ticket(
            time_logs=[opening_log()],
            updates=[{"text": "Replaced cable", "timestamp": T0 + minutes(10)}],
            total_time_minutes=10,
        )

        elapsed = ledger.compute_elapsed(ticket, T0 + minutes(40))

        assert elapsed.live_minutes == 30
        assert elapsed.total_minutes == 40

    def test_anchor_is_most_recent_update(self, ledger):
        ticket = make_ticket(updates=[
            {"text": "first", "timestamp": T0 + minutes(5)},
            {"text": "second", "timestamp": T0 + minutes(20)},
        ])

        assert ledger.anchor(ticket) == T0 + minutes(20)

    def test_absent_total_counts_as_zero(self, ledger):
        ticket = make_ticket(total_time_minutes=None)

        assert ledger.compute_elapsed(ticket, T0).logged_minutes == 0

    def test_absent_anchor_gives_no_live_minutes(self, ledger):
        ticket = make_ticket(created_at=None, total_time_minutes=7)

        elapsed = ledger.compute_elapsed(ticket, T0 + minutes(60))

        assert elapsed.live_minutes == 0
        assert elapsed.total_minutes == 7

    def test_clock_skew_is_clamped(self, ledger):
        ticket = make_ticket(total_time_minutes=3)

        elapsed = ledger.compute_elapsed(ticket, T0 - minutes(10))

        assert elapsed.live_minutes == 0
        assert elapsed.total_minutes == 3

    @pytest.mark.parametrize("offset", [0, 15, 90, 60 * 24 * 7])
    def test_closed_ticket_has_no_live_component(self, ledger, offset):
        ticket = make_ticket(status="closed", total_time_minutes=47, closed_at=T0 + minutes(47))

        elapsed = ledger.compute_elapsed(ticket, T0 + minutes(offset))

        assert elapsed.live_minutes == 0
        assert elapsed.total_minutes == elapsed.logged_minutes == 47

    def test_open_total_never_decreases_as_time_passes(self, ledger):
        ticket = make_ticket(
            total_time_minutes=12,
            updates=[{"text": "update", "timestamp": T0 + minutes(12)}],
        )

        totals = [
            ledger.compute_elapsed(ticket, T0 + minutes(m)).total_minutes
            for m in range(0, 200, 7)
        ]

        assert totals == sorted(totals)

    def test_ticket_is_not_mutated(self, ledger):
        ticket = make_ticket(total_time_minutes=5)
        before = ticket.model_dump()

        ledger.compute_elapsed(ticket, T0 + minutes(99))

        assert ticket.model_dump() == before


# =============================================================================
# Tracker rows
# =============================================================================


class TestTimeLogLines:

    def test_opening_record_shows_live_minutes_while_open(self, ledger):
        ticket = make_ticket(time_logs=[opening_log()])

        lines = ledger.time_log_lines(ticket, T0 + minutes(45))

        assert lines[0].minutes == 45
        assert lines[0].is_live is True
        assert lines[0].logged_by is None  # System is hidden

    def test_opening_record_keeps_stored_value_once_closed(self, ledger):
        ticket = make_ticket(status="closed", time_logs=[opening_log()])

        lines = ledger.time_log_lines(ticket, T0 + minutes(45))

        assert lines[0].minutes == 0
        assert lines[0].is_live is False
        assert lines[0].label == "0m"

    def test_only_first_position_is_treated_as_opening(self, ledger):
        ticket = make_ticket(time_logs=[
            {"minutes": 15, "description": "Diagnosed", "timestamp": T0 + minutes(15), "logged_by": "Alice"},
            opening_log(),
        ])

        lines = ledger.time_log_lines(ticket, T0 + minutes(60))

        assert [line.minutes for line in lines] == [15, 0]
        assert not any(line.is_live for line in lines)
        assert lines[0].logged_by == "Alice"

    def test_legacy_sentinel_infers_opening_flag(self):
        assert TimeLogEntry(**opening_log()).is_opening is True
        assert TimeLogEntry(minutes=5, description="Ticket opened").is_opening is False

    def test_explicit_flag_wins_over_description(self, ledger):
        ticket = make_ticket(time_logs=[
            {"minutes": 0, "description": "Created from email", "timestamp": T0, "is_opening": True},
        ])

        lines = ledger.time_log_lines(ticket, T0 + minutes(20))

        assert lines[0].minutes == 20
        assert lines[0].is_live is True

    def test_explicit_false_disables_sentinel(self, ledger):
        ticket = make_ticket(time_logs=[opening_log(is_opening=False)])

        lines = ledger.time_log_lines(ticket, T0 + minutes(20))

        assert lines[0].minutes == 0
        assert lines[0].is_live is False


class TestTrackingLine:

    def test_shows_gap_since_last_update(self, ledger):
        ticket = make_ticket(updates=[{"text": "on site", "timestamp": T0 + minutes(10)}])

        line = ledger.tracking_line(ticket, T0 + minutes(40))

        assert line.minutes == 30
        assert line.description == TRACKING_DESCRIPTION
        assert line.is_live is True

    def test_hidden_without_updates(self, ledger):
        assert ledger.tracking_line(make_ticket(), T0 + minutes(40)) is None

    def test_hidden_when_closed(self, ledger):
        ticket = make_ticket(
            status="closed",
            updates=[{"text": "done", "timestamp": T0 + minutes(10)}],
        )

        assert ledger.tracking_line(ticket, T0 + minutes(40)) is None

    def test_hidden_when_nothing_has_elapsed(self, ledger):
        ticket = make_ticket(updates=[{"text": "just now", "timestamp": T0}])

        assert ledger.tracking_line(ticket, T0 + minutes(0.2)) is None


class TestTimeSheet:

    def test_bundles_elapsed_entries_and_tracking(self, ledger):
        ticket = make_ticket(
            time_logs=[opening_log()],
            updates=[{"text": "Replaced cable", "timestamp": T0 + minutes(10)}],
            total_time_minutes=10,
        )

        sheet = ledger.timesheet(ticket, T0 + minutes(40))

        assert sheet.elapsed.total_minutes == 40
        assert sheet.entries[0].minutes == 40
        assert sheet.tracking.minutes == 30
        assert sheet.visible is True

    def test_hidden_without_logs_or_minutes(self, ledger):
        sheet = ledger.timesheet(make_ticket(), T0 + minutes(5))

        assert sheet.visible is False
        assert sheet.entries == []
