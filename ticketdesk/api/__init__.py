"""
TicketDesk API

HTTP surface over the time ledger and report services.
"""
