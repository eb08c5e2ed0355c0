"""
TicketDesk API

FastAPI application with:
- Live timesheet for a ticket
- New-ticket intake validation
- KPI export preview and CSV download
- Admin board overview

The store is an external collaborator: callers post the ticket and
profile snapshots they already fetched. Each request reads the clock
once (or uses the `now` it was given).
"""

import logging
from datetime import datetime
from typing import Optional, List

from fastapi import FastAPI, HTTPException, Depends, Response, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..config import configure_logging, get_settings
from ..models import (
    Ticket,
    Profile,
    ExportFilter,
    NewTicketRequest,
    ALL_MEMBERS
)
from ..services import (
    TimeLedgerService,
    ReportService,
    ReportError,
    TicketIntakeService,
    IntakeError
)
from ..services.time_ledger import utcnow

configure_logging()
logger = logging.getLogger(__name__)

# =============================================================================
# APP SETUP
# =============================================================================

app = FastAPI(
    title="TicketDesk KPI Engine",
    description="Time accounting and KPI reporting for support tickets",
    version="0.1.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_ledger() -> TimeLedgerService:
    return TimeLedgerService()


def get_report_service() -> ReportService:
    return ReportService(settings=get_settings())


def get_intake_service() -> TicketIntakeService:
    return TicketIntakeService(settings=get_settings())


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class TimesheetRequest(BaseModel):
    ticket: Ticket
    now: Optional[datetime] = None


class IntakeRequest(NewTicketRequest):
    created_by: Optional[str] = None


class ReportRequest(BaseModel):
    tickets: List[Ticket] = Field(default_factory=list)
    profiles: List[Profile] = Field(default_factory=list)
    filter: Optional[ExportFilter] = None  # None = default window
    now: Optional[datetime] = None


class DashboardRequest(BaseModel):
    tickets: List[Ticket] = Field(default_factory=list)
    profiles: List[Profile] = Field(default_factory=list)
    member: str = ALL_MEMBERS
    status: str = "all"


# =============================================================================
# HEALTH CHECK
# =============================================================================

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "ticketdesk-kpi",
        "version": "0.1.0"
    }


# =============================================================================
# TICKET ENDPOINTS
# =============================================================================

@app.post("/tickets/timesheet")
async def get_timesheet(
    request: TimesheetRequest,
    ledger: TimeLedgerService = Depends(get_ledger)
):
    """
    Logged + live minutes and tracker rows for one ticket.
    """
    return ledger.timesheet(request.ticket, request.now or utcnow())


@app.post("/tickets/intake", status_code=status.HTTP_201_CREATED)
async def intake_ticket(
    request: IntakeRequest,
    intake: TicketIntakeService = Depends(get_intake_service)
):
    """
    Validate a new ticket and return the payload to store.

    Every problem is returned at once so the form can show them together.
    """
    try:
        ticket = intake.build_ticket(request, created_by=request.created_by)
    except IntakeError as e:
        raise HTTPException(
            status_code=422,
            detail={"problems": e.problems}
        )
    return ticket


# =============================================================================
# REPORT ENDPOINTS
# =============================================================================

@app.post("/reports/preview")
async def preview_report(
    request: ReportRequest,
    reports: ReportService = Depends(get_report_service)
):
    """
    Stats shown in the export dialog before download.
    """
    now = request.now or utcnow()
    export_filter = request.filter if request.filter is not None else reports.default_filter(now)
    selected = reports.filter_tickets(request.tickets, export_filter)

    return {
        "filter": export_filter,
        "filename": reports.export_filename(export_filter),
        "stats": reports.summarize(selected),
        "total_time_tracked": reports.total_time_tracked(selected, now),
        "generated_at": now
    }


@app.post("/reports/export")
async def export_report(
    request: ReportRequest,
    reports: ReportService = Depends(get_report_service)
):
    """
    KPI report as a CSV download.

    Column order and headers are a stable contract for downstream sheets.
    """
    now = request.now or utcnow()
    export_filter = request.filter if request.filter is not None else reports.default_filter(now)
    result = reports.export_csv(request.tickets, request.profiles, export_filter, now)

    return Response(
        content=result.content,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"'
        }
    )


# =============================================================================
# DASHBOARD ENDPOINTS
# =============================================================================

@app.post("/dashboard")
async def get_dashboard(
    request: DashboardRequest,
    reports: ReportService = Depends(get_report_service)
):
    """
    Admin board: headline counters, team load, filtered ticket list.
    """
    try:
        board = reports.board_filter(request.tickets, request.member, request.status)
    except ReportError as e:
        logger.warning("Dashboard request rejected: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {
        "overview": reports.overview(request.tickets),
        "members": reports.member_breakdown(request.tickets, request.profiles),
        "tickets": board,
        "showing": len(board),
        "total": len(request.tickets)
    }
