"""
Sync tasks
"""

from .sync_symbol_master import SyncSummary, SyncSymbolMasterTask

__all__ = [
    "SyncSummary",
    "SyncSymbolMasterTask",
]
