"""Logging and input validation helpers"""
from ledgermarket.utils.logger import get_logger, setup_logging, LedgerMarketLogger

__all__ = [
    "get_logger",
    "setup_logging",
    "LedgerMarketLogger",
]
