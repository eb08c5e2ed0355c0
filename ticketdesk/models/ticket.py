"""
TicketDesk Ticket Model

Read-side shapes of the records owned by the managed backend.

Core principles:
1. Ticket = unit of support work, open until an admin closes it
2. Time logs and updates are APPEND-ONLY (store guarantees order)
3. Live minutes are NEVER stored, only derived on read
4. Field names match the store exactly (our only coupling to it)
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, List, Union
from pydantic import BaseModel, Field, model_validator


OPENING_LOG_DESCRIPTION = "Ticket opened"
SYSTEM_LOGGER = "System"
ALL_MEMBERS = "all"


# =============================================================================
# ENUMS
# =============================================================================

class TicketType(str, Enum):
    HARDWARE = "Hardware"
    SOFTWARE = "Software"
    NEW_SITE = "New Site"


class TicketStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"   # Terminal


class WorkLocation(str, Enum):
    ON_SITE = "on-site"
    REMOTE = "remote"


# =============================================================================
# TICKET PARTS
# =============================================================================

class TicketUpdate(BaseModel):
    """Progress note appended by the technician."""
    text: str = ""
    timestamp: Optional[datetime] = None


class TimeLogEntry(BaseModel):
    """
    Minutes explicitly logged against a ticket.

    is_opening marks the synthetic zero-minute record written when the
    ticket is created. Older records carry no flag; for those it is
    inferred from the "Ticket opened" description.
    """
    minutes: int = Field(0, ge=0)
    description: str = ""
    timestamp: Optional[datetime] = None
    logged_by: Optional[str] = None
    is_opening: bool = False

    @model_validator(mode="before")
    @classmethod
    def _infer_opening(cls, data):
        if isinstance(data, dict) and "is_opening" not in data:
            data = dict(data)
            data["is_opening"] = (
                data.get("description") == OPENING_LOG_DESCRIPTION
                and (data.get("minutes") or 0) == 0
            )
        return data


class Attachment(BaseModel):
    """Uploaded file on a Hardware/Software ticket."""
    url: str
    name: str
    type: Optional[str] = None


class SiteFile(BaseModel):
    """Uploaded file on a New Site ticket. The label is mandatory."""
    url: Optional[str] = None
    name: str
    type: Optional[str] = None
    label: str = ""


# =============================================================================
# CORE MODELS
# =============================================================================

class Ticket(BaseModel):
    """
    The core ticket entity, as fetched from the store.

    total_time_minutes only grows through explicit logs/close events.
    Everything after the last logged event is computed by the ledger.
    """
    id: Optional[str] = None
    ticket_number: Optional[Union[int, str]] = None

    ticket_type: Optional[TicketType] = None
    status: TicketStatus = TicketStatus.OPEN
    location: Optional[WorkLocation] = None

    # Assignment
    user_id: Optional[str] = None
    created_by: Optional[str] = None

    # Timestamps
    created_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None   # Set once, on close

    # Time accounting
    response_time_minutes: Optional[int] = Field(None, ge=0)
    total_time_minutes: Optional[int] = Field(None, ge=0)
    updates: List[TicketUpdate] = Field(default_factory=list)
    time_logs: List[TimeLogEntry] = Field(default_factory=list)

    # Business fields (not used by time/report logic)
    client: Optional[str] = None
    clickup_ticket: Optional[str] = None
    estate_or_building: Optional[str] = None
    cml_location: Optional[str] = None
    issue: Optional[str] = None
    resolution: Optional[str] = None
    has_dependencies: bool = False
    dependency_name: Optional[str] = None

    # New Site fields
    site_name: Optional[str] = None
    installers: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)
    target_date: Optional[date] = None

    attachments: List[Attachment] = Field(default_factory=list)
    site_files: List[SiteFile] = Field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.status == TicketStatus.OPEN

    @property
    def last_update(self) -> Optional[TicketUpdate]:
        return self.updates[-1] if self.updates else None


class Profile(BaseModel):
    """Team member. Only the name matters to reports."""
    id: str
    full_name: Optional[str] = None
    role: Optional[str] = None
    is_admin: bool = False
    avatar_url: Optional[str] = None


class ExportFilter(BaseModel):
    """
    KPI export window. Ephemeral, never persisted.

    Both bounds are inclusive calendar days. assignee is "all" or a
    Profile id.
    """
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    assignee: str = ALL_MEMBERS

    @classmethod
    def last_days(cls, today: date, days: int, assignee: str = ALL_MEMBERS) -> "ExportFilter":
        """Window ending today and starting `days` days earlier."""
        return cls(
            date_from=today - timedelta(days=days),
            date_to=today,
            assignee=assignee
        )

    @property
    def all_members(self) -> bool:
        return self.assignee == ALL_MEMBERS


# =============================================================================
# INTAKE
# =============================================================================

class NewTicketRequest(BaseModel):
    """
    Admin's new-ticket form.

    Validated by TicketIntakeService before anything reaches the store.
    """
    user_id: str = ""
    client: str = ""
    issue: str = ""
    ticket_type: Optional[TicketType] = None
    location: WorkLocation = WorkLocation.REMOTE
    clickup_ticket: Optional[str] = None

    # Hardware / Software
    estate_or_building: str = ""
    cml_location: str = ""
    attachments: List[Attachment] = Field(default_factory=list)

    # New Site
    site_name: str = ""
    installers: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)
    target_date: Optional[date] = None
    site_files: List[SiteFile] = Field(default_factory=list)
