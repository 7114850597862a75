"""
Errors raised by the symbol sync pipeline
"""

from typing import Optional


class SymbolSyncError(Exception):
    """Base error for the symbol sync job"""


class TransportError(SymbolSyncError):
    """A provider call could not complete (connection, timeout, bad status)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(SymbolSyncError):
    """A provider response could not be parsed into the expected shape"""


class RateLimitError(SymbolSyncError):
    """The provider answered HTTP 429"""


class EmptyUniverseError(SymbolSyncError):
    """The provider listed no symbols for the market"""
