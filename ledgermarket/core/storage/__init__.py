"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- Auction records, bid logs and seller indexes
- Asset records and owner indexes
- Marketplace and registry scalars
- The event log
"""

from ledgermarket.core.storage.sqlite_adapter import SQLiteAdapter
from ledgermarket.core.storage.storage_manager import StorageManager
from ledgermarket.core.storage.unit_of_work import UnitOfWork

__all__ = ["SQLiteAdapter", "StorageManager", "UnitOfWork"]
