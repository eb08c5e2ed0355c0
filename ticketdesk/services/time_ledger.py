"""
TicketDesk Time Ledger Service

Gap-tolerant elapsed time per ticket.

The ledger has two parts:
- Logged minutes: total_time_minutes, written by explicit log/close events
- Live minutes: time since the last recorded event, open tickets only

Live minutes are a projection of (ticket, now). They are never cached
and never written back. Callers evaluating many tickets pass the same
`now` to every call so one report reads one clock.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Optional, List
from dataclasses import dataclass

from ..models.ticket import (
    Ticket,
    TimeLogEntry,
    SYSTEM_LOGGER
)

logger = logging.getLogger(__name__)

TRACKING_DESCRIPTION = "Currently tracking since last update"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Naive timestamps from the store are UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def elapsed_minutes(since: Optional[datetime], now: datetime) -> int:
    """
    Whole minutes from `since` to `now`, rounded half-up.

    Absent `since` and clock skew both give 0.
    """
    if since is None:
        return 0
    seconds = (as_utc(now) - as_utc(since)).total_seconds()
    return max(0, round_half_up(seconds / 60))


def format_duration(minutes: int) -> str:
    """125 -> '2h 5m'"""
    return f"{minutes // 60}h {minutes % 60}m"


@dataclass
class ElapsedTime:
    """Breakdown of a ticket's tracked time at a given instant."""
    logged_minutes: int
    live_minutes: int
    total_minutes: int
    display: str


@dataclass
class TimeLogLine:
    """One display row of the time tracker."""
    minutes: int
    description: str
    timestamp: Optional[datetime] = None
    logged_by: Optional[str] = None
    is_live: bool = False

    @property
    def label(self) -> str:
        return f"{self.minutes}m" if self.minutes > 0 else "0m"


@dataclass
class TimeSheet:
    """Everything the tracker widget shows for one ticket."""
    elapsed: ElapsedTime
    entries: List[TimeLogLine]
    tracking: Optional[TimeLogLine]
    visible: bool


class TimeLedgerService:
    """
    Computes tracked time for tickets.

    Rules:
    1. Logged minutes come from total_time_minutes (absent = 0)
    2. Live minutes accrue from the ANCHOR: last update, else creation
    3. Closed tickets have no live minutes, whatever `now` is
    4. Nothing here mutates the ticket
    """

    def anchor(self, ticket: Ticket) -> Optional[datetime]:
        """Reference point for live accrual."""
        last = ticket.last_update
        if last is not None:
            return last.timestamp
        return ticket.created_at

    def compute_elapsed(
        self,
        ticket: Ticket,
        now: Optional[datetime] = None
    ) -> ElapsedTime:
        now = now or utcnow()

        logged = ticket.total_time_minutes or 0
        live = elapsed_minutes(self.anchor(ticket), now) if ticket.is_open else 0
        total = logged + live

        return ElapsedTime(
            logged_minutes=logged,
            live_minutes=live,
            total_minutes=total,
            display=format_duration(total)
        )

    def time_log_lines(
        self,
        ticket: Ticket,
        now: Optional[datetime] = None
    ) -> List[TimeLogLine]:
        """
        Display rows for the stored time logs.

        The opening record (first position, 0 minutes) of an open ticket
        shows minutes since creation instead of its stored 0.
        """
        now = now or utcnow()

        lines = []
        for idx, entry in enumerate(ticket.time_logs):
            live = ticket.is_open and self._is_opening_record(entry, idx)
            minutes = (
                elapsed_minutes(ticket.created_at, now) if live else entry.minutes
            )
            lines.append(TimeLogLine(
                minutes=minutes,
                description=entry.description,
                timestamp=entry.timestamp,
                logged_by=(
                    entry.logged_by if entry.logged_by != SYSTEM_LOGGER else None
                ),
                is_live=live
            ))
        return lines

    def tracking_line(
        self,
        ticket: Ticket,
        now: Optional[datetime] = None
    ) -> Optional[TimeLogLine]:
        """
        Gap since the last update, for open tickets with updates.

        Logged minutes already cover everything up to the last update,
        so this line only covers what came after it.
        """
        last = ticket.last_update
        if not ticket.is_open or last is None:
            return None

        minutes = elapsed_minutes(last.timestamp, now or utcnow())
        if minutes <= 0:
            return None

        return TimeLogLine(
            minutes=minutes,
            description=TRACKING_DESCRIPTION,
            timestamp=last.timestamp,
            is_live=True
        )

    def timesheet(
        self,
        ticket: Ticket,
        now: Optional[datetime] = None
    ) -> TimeSheet:
        now = now or utcnow()
        sheet = TimeSheet(
            elapsed=self.compute_elapsed(ticket, now),
            entries=self.time_log_lines(ticket, now),
            tracking=self.tracking_line(ticket, now),
            visible=bool(ticket.total_time_minutes or ticket.time_logs)
        )
        logger.debug(
            "Timesheet for ticket %s: %s (%d logged, %d live)",
            ticket.ticket_number, sheet.elapsed.display,
            sheet.elapsed.logged_minutes, sheet.elapsed.live_minutes
        )
        return sheet

    @staticmethod
    def _is_opening_record(entry: TimeLogEntry, idx: int) -> bool:
        return idx == 0 and entry.is_opening and entry.minutes == 0
