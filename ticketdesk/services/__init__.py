"""
TicketDesk Services

Time accounting, KPI reporting and ticket intake.
"""

from .time_ledger import (
    TimeLedgerService, ElapsedTime, TimeLogLine, TimeSheet,
    elapsed_minutes, format_duration
)
from .report import (
    ReportService, ReportError, ExportStats, ExportResult,
    BoardOverview, MemberLoad, EXPORT_HEADERS
)
from .intake import TicketIntakeService, IntakeError

__all__ = [
    # Time ledger (live + logged minutes)
    "TimeLedgerService", "ElapsedTime", "TimeLogLine", "TimeSheet",
    "elapsed_minutes", "format_duration",

    # KPI report and export
    "ReportService", "ReportError", "ExportStats", "ExportResult",
    "BoardOverview", "MemberLoad", "EXPORT_HEADERS",

    # New-ticket validation
    "TicketIntakeService", "IntakeError",
]
