"""
ledgermarket

A ledger-resident marketplace prototype:
- Timed ascending-price auctions with a strict increment rule
- A non-fungible asset registry
- SQLite persistence with an append-only event log
"""

__version__ = "0.1.0"
