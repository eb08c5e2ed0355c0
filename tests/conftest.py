"""
Pytest configuration and shared fixtures for TicketDesk tests.

This module provides:
- A fixed clock (T0) so live-minute figures are deterministic
- A ticket factory producing store-shaped records
- UTC settings so date boundaries are easy to reason about
"""

from datetime import datetime, timedelta, timezone

import pytest

from ticketdesk.config import Settings
from ticketdesk.models import Ticket, Profile
from ticketdesk.services import TimeLedgerService, ReportService, TicketIntakeService


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

T0 = datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc)


def minutes(n: float) -> timedelta:
    return timedelta(minutes=n)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def make_ticket(**overrides) -> Ticket:
    """Store-shaped open ticket created at T0, overridable per field."""
    data = {
        "id": "t-1",
        "ticket_number": 1,
        "ticket_type": "Hardware",
        "status": "open",
        "location": "remote",
        "user_id": "u-alice",
        "client": "Acme",
        "created_at": T0,
        "total_time_minutes": 0,
        "updates": [],
        "time_logs": [],
    }
    data.update(overrides)
    return Ticket(**data)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    return Settings(report_tz="UTC", report_window_days=30, max_attachments=5)


@pytest.fixture
def ledger() -> TimeLedgerService:
    return TimeLedgerService()


@pytest.fixture
def reports(ledger, settings) -> ReportService:
    return ReportService(ledger=ledger, settings=settings)


@pytest.fixture
def intake(settings) -> TicketIntakeService:
    return TicketIntakeService(settings=settings)


@pytest.fixture
def profiles():
    return [
        Profile(id="u-alice", full_name="Alice Dlamini", role="technician"),
        Profile(id="u-bongani", full_name="Bongani Nkosi", role="technician"),
        Profile(id="u-admin", full_name="Carol Admin", role="admin", is_admin=True),
    ]
