"""
TicketDesk Intake Service

Validates the admin's new-ticket form before submission.

Two ticket shapes:
- Hardware/Software: needs estate/building + CML location, capped attachments
- New Site: needs a site name; every site file carries a label

All problems are reported at once so the form can show them together.
"""

import logging
from datetime import datetime
from typing import Optional, List

from ..config import Settings, get_settings
from ..models.ticket import (
    Ticket,
    TicketType,
    TicketStatus,
    TimeLogEntry,
    NewTicketRequest,
    OPENING_LOG_DESCRIPTION,
    SYSTEM_LOGGER
)
from .time_ledger import utcnow

logger = logging.getLogger(__name__)


class IntakeError(Exception):
    """Raised when a new-ticket request fails validation."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


class TicketIntakeService:
    """
    Turns a NewTicketRequest into a store-ready Ticket.

    Every new ticket starts open, with zero logged minutes and one
    opening time log. The ledger measures live time from there.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def validate(self, request: NewTicketRequest) -> List[str]:
        """Return every problem with the request (empty = valid)."""
        problems = []

        if not request.user_id.strip():
            problems.append("Assign the ticket to a team member.")
        if not request.client.strip():
            problems.append("Client name is required.")
        if not request.issue.strip():
            problems.append("Issue description is required.")
        if request.ticket_type is None:
            problems.append("Ticket type is required.")
            return problems

        if request.ticket_type == TicketType.NEW_SITE:
            if not request.site_name.strip():
                problems.append("Site name is required for New Site tickets.")
            for site_file in request.site_files:
                if not site_file.label.strip():
                    problems.append(f"Site file '{site_file.name}' needs a label.")
        else:
            if not request.estate_or_building.strip():
                problems.append("Estate or building is required.")
            if not request.cml_location.strip():
                problems.append("Location (as per CML) is required.")
            limit = self.settings.max_attachments
            if len(request.attachments) > limit:
                problems.append(
                    f"At most {limit} attachments are allowed "
                    f"({len(request.attachments)} given)."
                )

        return problems

    def build_ticket(
        self,
        request: NewTicketRequest,
        created_by: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Ticket:
        """
        Validate and build the ticket payload.

        Raises IntakeError listing every problem found.
        """
        problems = self.validate(request)
        if problems:
            logger.info("Rejected new ticket: %s", "; ".join(problems))
            raise IntakeError(problems)

        now = now or utcnow()
        fields = {
            "user_id": request.user_id,
            "created_by": created_by,
            "client": request.client.strip(),
            "clickup_ticket": (request.clickup_ticket or "").strip() or None,
            "location": request.location,
            "issue": request.issue.strip(),
            "ticket_type": request.ticket_type,
        }

        if request.ticket_type == TicketType.NEW_SITE:
            fields.update(
                site_name=request.site_name.strip(),
                installers=request.installers,
                dependencies=request.dependencies,
                has_dependencies=bool(request.dependencies),
                dependency_name=", ".join(request.dependencies) or None,
                target_date=request.target_date,
                site_files=request.site_files,
            )
        else:
            fields.update(
                estate_or_building=request.estate_or_building.strip(),
                cml_location=request.cml_location.strip(),
                attachments=request.attachments,
            )

        ticket = Ticket(
            status=TicketStatus.OPEN,
            created_at=now,
            total_time_minutes=0,
            time_logs=[TimeLogEntry(
                minutes=0,
                description=OPENING_LOG_DESCRIPTION,
                timestamp=now,
                logged_by=SYSTEM_LOGGER,
                is_opening=True
            )],
            **fields
        )
        logger.info(
            "Accepted %s ticket for %s (client %s)",
            ticket.ticket_type.value, ticket.user_id, ticket.client
        )
        return ticket
