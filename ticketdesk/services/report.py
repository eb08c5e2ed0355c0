"""
TicketDesk Report Service

KPI aggregation and CSV export over a ticket snapshot.

The export is an external contract:
- 19 columns, fixed order and header labels
- One row per filtered ticket
- Standard CSV quoting so any reader gets the text back unchanged

A report pass reads the clock ONCE and hands that `now` to the ledger
for every ticket, so all live figures in one file agree.
"""

import csv
import io
import logging
from datetime import datetime, time
from typing import Optional, List, Callable, Iterable
from dataclasses import dataclass

from ..config import Settings, get_settings
from ..models.ticket import (
    Ticket,
    TicketStatus,
    WorkLocation,
    Profile,
    ExportFilter,
    ALL_MEMBERS
)
from .time_ledger import TimeLedgerService, as_utc, utcnow

logger = logging.getLogger(__name__)


EXPORT_HEADERS = [
    "Ticket Number",
    "Team Member",
    "Client Name",
    "Type (Hardware/Software)",
    "Estate or Building",
    "Location (as per CML)",
    "Work Type (On-Site/Remote)",
    "ClickUp Ticket Reference",
    "Ticket Status",
    "Issue Description",
    "Resolution Description",
    "Has Dependencies (Yes/No)",
    "Dependency Company/Department",
    "Ticket Updates",
    "Total Time Tracked (Minutes)",
    "Time Log Details",
    "Response Time (Minutes)",
    "Date Created",
    "Date Closed",
]

UNKNOWN_MEMBER = "Unknown"
ENTRY_SEPARATOR = " | "
TIMESTAMP_FORMAT = "%Y/%m/%d, %H:%M:%S"
END_OF_DAY = time(23, 59, 59, 999000)

LOCATION_LABELS = {
    WorkLocation.ON_SITE: "On-Site",
    WorkLocation.REMOTE: "Remote",
}

STATUS_LABELS = {
    TicketStatus.OPEN: "Open",
    TicketStatus.CLOSED: "Closed",
}

BOARD_STATUSES = ("all", "open", "closed")

Stage = Callable[[List[Ticket]], List[Ticket]]


class ReportError(Exception):
    """Raised when a report request cannot be answered."""
    pass


@dataclass
class ExportStats:
    """Preview figures for the export dialog."""
    total: int
    closed: int
    open: int
    closed_rate: str
    avg_response_time: int


@dataclass
class ExportResult:
    filename: str
    content: str
    stats: ExportStats
    generated_at: datetime


@dataclass
class BoardOverview:
    """Headline counters over the whole collection."""
    open: int
    closed: int
    on_site: int
    remote: int


@dataclass
class MemberLoad:
    profile_id: str
    full_name: Optional[str]
    is_admin: bool
    open: int
    closed: int


class ReportService:
    """
    Filters, summarizes and exports tickets.

    Filtering is three independent stages, each only narrowing:
    - assignee: "all" keeps everything, else user_id must match
    - from: created on or after the first day
    - to: created up to 23:59:59.999 of the last day
    Dates are calendar days in the report timezone.
    """

    def __init__(
        self,
        ledger: Optional[TimeLedgerService] = None,
        settings: Optional[Settings] = None
    ):
        self.ledger = ledger or TimeLedgerService()
        self.settings = settings or get_settings()

    # =========================================================================
    # Filtering
    # =========================================================================

    def stages(self, export_filter: ExportFilter) -> List[Stage]:
        """The filter as separate stages. Any order gives the same result."""
        return [
            lambda tickets: self._by_assignee(tickets, export_filter.assignee),
            lambda tickets: self._created_from(tickets, export_filter),
            lambda tickets: self._created_to(tickets, export_filter),
        ]

    @staticmethod
    def apply_stages(tickets: Iterable[Ticket], stages: List[Stage]) -> List[Ticket]:
        filtered = list(tickets)
        for stage in stages:
            filtered = stage(filtered)
        return filtered

    def filter_tickets(
        self,
        tickets: Iterable[Ticket],
        export_filter: ExportFilter
    ) -> List[Ticket]:
        filtered = self.apply_stages(tickets, self.stages(export_filter))
        logger.debug(
            "Export filter %s..%s assignee=%s kept %d tickets",
            export_filter.date_from, export_filter.date_to,
            export_filter.assignee, len(filtered)
        )
        return filtered

    def _by_assignee(self, tickets: List[Ticket], assignee: str) -> List[Ticket]:
        if assignee == ALL_MEMBERS:
            return tickets
        return [t for t in tickets if t.user_id == assignee]

    def _created_from(self, tickets: List[Ticket], export_filter: ExportFilter) -> List[Ticket]:
        if export_filter.date_from is None:
            return tickets
        start = datetime.combine(
            export_filter.date_from, time.min, tzinfo=self.settings.tzinfo
        )
        return [
            t for t in tickets
            if t.created_at is not None and as_utc(t.created_at) >= start
        ]

    def _created_to(self, tickets: List[Ticket], export_filter: ExportFilter) -> List[Ticket]:
        if export_filter.date_to is None:
            return tickets
        end = datetime.combine(
            export_filter.date_to, END_OF_DAY, tzinfo=self.settings.tzinfo
        )
        return [
            t for t in tickets
            if t.created_at is not None and as_utc(t.created_at) <= end
        ]

    # =========================================================================
    # Statistics
    # =========================================================================

    def summarize(self, tickets: Iterable[Ticket]) -> ExportStats:
        """
        KPI preview over an already filtered set.

        Empty input is not an error: rate "0", average 0.
        Average response rounds half to even (12.5 -> 12).
        """
        tickets = list(tickets)
        closed = [t for t in tickets if t.status == TicketStatus.CLOSED]
        opened = [t for t in tickets if t.status == TicketStatus.OPEN]

        responded = [
            t.response_time_minutes for t in closed
            if t.response_time_minutes and t.response_time_minutes > 0
        ]
        avg_response = sum(responded) / len(responded) if responded else 0

        if tickets:
            closed_rate = f"{len(closed) / len(tickets) * 100:.1f}"
        else:
            closed_rate = "0"

        return ExportStats(
            total=len(tickets),
            closed=len(closed),
            open=len(opened),
            closed_rate=closed_rate,
            avg_response_time=round(avg_response)
        )

    def total_time_tracked(
        self,
        tickets: Iterable[Ticket],
        now: Optional[datetime] = None
    ) -> int:
        """Sum of ledger totals, live minutes included."""
        now = now or utcnow()
        return sum(self.ledger.compute_elapsed(t, now).total_minutes for t in tickets)

    def overview(self, tickets: Iterable[Ticket]) -> BoardOverview:
        tickets = list(tickets)
        return BoardOverview(
            open=sum(1 for t in tickets if t.status == TicketStatus.OPEN),
            closed=sum(1 for t in tickets if t.status == TicketStatus.CLOSED),
            on_site=sum(1 for t in tickets if t.location == WorkLocation.ON_SITE),
            remote=sum(1 for t in tickets if t.location == WorkLocation.REMOTE)
        )

    def member_breakdown(
        self,
        tickets: Iterable[Ticket],
        profiles: Iterable[Profile]
    ) -> List[MemberLoad]:
        """Open/closed counts per team member, in profile order."""
        tickets = list(tickets)
        loads = []
        for profile in profiles:
            mine = [t for t in tickets if t.user_id == profile.id]
            loads.append(MemberLoad(
                profile_id=profile.id,
                full_name=profile.full_name,
                is_admin=profile.is_admin,
                open=sum(1 for t in mine if t.status == TicketStatus.OPEN),
                closed=sum(1 for t in mine if t.status == TicketStatus.CLOSED)
            ))
        return loads

    def board_filter(
        self,
        tickets: Iterable[Ticket],
        member: str = ALL_MEMBERS,
        status: str = "all"
    ) -> List[Ticket]:
        """Admin board list: by member and by status."""
        if status not in BOARD_STATUSES:
            raise ReportError(
                f"Unknown status filter '{status}'. "
                f"Expected one of: {', '.join(BOARD_STATUSES)}."
            )
        board = self._by_assignee(list(tickets), member)
        if status != "all":
            board = [t for t in board if t.status == status]
        return board

    # =========================================================================
    # Export
    # =========================================================================

    def render_rows(
        self,
        tickets: Iterable[Ticket],
        profiles: Iterable[Profile],
        now: Optional[datetime] = None
    ) -> List[List[str]]:
        """Header plus one 19-field row per ticket."""
        now = now or utcnow()
        names = {p.id: p.full_name for p in profiles}

        rows = [list(EXPORT_HEADERS)]
        for ticket in tickets:
            rows.append(self._row(ticket, names, now))
        return rows

    def export_csv(
        self,
        tickets: Iterable[Ticket],
        profiles: Iterable[Profile],
        export_filter: ExportFilter,
        now: Optional[datetime] = None
    ) -> ExportResult:
        now = now or utcnow()
        selected = self.filter_tickets(tickets, export_filter)
        rows = self.render_rows(selected, profiles, now)

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerows(rows)
        # no trailing newline after the last row
        content = buffer.getvalue()[:-1]

        result = ExportResult(
            filename=self.export_filename(export_filter),
            content=content,
            stats=self.summarize(selected),
            generated_at=now
        )
        logger.info(
            "Exported %d tickets to %s", len(selected), result.filename
        )
        return result

    @staticmethod
    def export_filename(export_filter: ExportFilter) -> str:
        date_from = export_filter.date_from.isoformat() if export_filter.date_from else ""
        date_to = export_filter.date_to.isoformat() if export_filter.date_to else ""
        return f"kpi-report-{date_from}-to-{date_to}.csv"

    def default_filter(
        self,
        now: Optional[datetime] = None,
        assignee: str = ALL_MEMBERS
    ) -> ExportFilter:
        """Last N days up to today, as the export dialog opens with."""
        today = as_utc(now or utcnow()).astimezone(self.settings.tzinfo).date()
        return ExportFilter.last_days(today, self.settings.report_window_days, assignee)

    def localize(self, moment: Optional[datetime]) -> str:
        if moment is None:
            return ""
        return as_utc(moment).astimezone(self.settings.tzinfo).strftime(TIMESTAMP_FORMAT)

    def _stamp(self, moment: Optional[datetime], text: str) -> str:
        if moment is None:
            return text
        return f"[{self.localize(moment)}] {text}"

    def _row(self, ticket: Ticket, names: dict, now: datetime) -> List[str]:
        updates = ENTRY_SEPARATOR.join(
            self._stamp(u.timestamp, u.text) for u in ticket.updates
        )
        time_logs = ENTRY_SEPARATOR.join(
            self._stamp(
                log.timestamp,
                f"{log.minutes}min - {log.description}"
                + (f" ({log.logged_by})" if log.logged_by else "")
            )
            for log in ticket.time_logs
        )
        elapsed = self.ledger.compute_elapsed(ticket, now)

        return [
            _text(ticket.ticket_number),
            names.get(ticket.user_id) or UNKNOWN_MEMBER,
            _text(ticket.client),
            ticket.ticket_type.value if ticket.ticket_type else "",
            _text(ticket.estate_or_building),
            _text(ticket.cml_location),
            LOCATION_LABELS.get(ticket.location, ""),
            _text(ticket.clickup_ticket),
            STATUS_LABELS.get(ticket.status, ""),
            _text(ticket.issue),
            _text(ticket.resolution),
            "Yes" if ticket.has_dependencies else "No",
            _text(ticket.dependency_name),
            updates,
            str(elapsed.total_minutes),
            time_logs,
            str(ticket.response_time_minutes) if ticket.response_time_minutes else "",
            self.localize(ticket.created_at),
            self.localize(ticket.closed_at),
        ]


def _text(value) -> str:
    return "" if value is None else str(value)
