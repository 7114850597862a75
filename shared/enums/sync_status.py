"""
Symbol Sync Enumerations
"""

from enum import Enum


class JobStatus(str, Enum):
    """Outcome recorded in job_status for one sync run"""

    SUCCESS = "success"
    FAILURE = "failure"

    def __str__(self) -> str:
        return self.value


class SyncErrorType(str, Enum):
    """Values of the `type` attribute on the symbol_sync_errors counter"""

    RATE_LIMIT = "rate_limit"      # Provider answered HTTP 429
    API_FETCH = "api_fetch"        # Connection error, timeout or bad status
    API_PARSE = "api_parse"        # Body could not be decoded into a profile
    DATA_VALIDATION = "data_validation"  # Active count far below universe size

    def __str__(self) -> str:
        return self.value
