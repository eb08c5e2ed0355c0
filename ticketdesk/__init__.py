"""
TicketDesk KPI Engine

Time accounting and reporting for the IT support ticket desk:
- Gap-tolerant time ledger (logged + live minutes)
- Filtered KPI statistics
- Fixed-format CSV export
- New-ticket intake validation
"""

__version__ = "0.1.0"
