"""
TicketDesk Models

Read-side shapes of store records plus the export filter.
"""

from .ticket import (
    # Constants
    OPENING_LOG_DESCRIPTION,
    SYSTEM_LOGGER,
    ALL_MEMBERS,

    # Enums
    TicketType,
    TicketStatus,
    WorkLocation,

    # Core models
    Ticket,
    TicketUpdate,
    TimeLogEntry,
    Profile,
    ExportFilter,

    # Intake
    Attachment,
    SiteFile,
    NewTicketRequest,
)

__all__ = [
    "OPENING_LOG_DESCRIPTION", "SYSTEM_LOGGER", "ALL_MEMBERS",
    "TicketType", "TicketStatus", "WorkLocation",
    "Ticket", "TicketUpdate", "TimeLogEntry", "Profile", "ExportFilter",
    "Attachment", "SiteFile", "NewTicketRequest",
]
